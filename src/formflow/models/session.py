"""Session models — the contract between the engine and its drivers.

These models define what the engine exposes to presentation drivers and what
it writes to durable session storage.  They are intentionally decoupled from
the ORM models in ``formflow_db`` so that drivers never see database internals.

  - DisplayState: lifecycle value of a session
  - SessionSnapshot: read-only view drivers render from
  - PersistedSession: durable record used to resume a session after reload
  - FileReference / AddressValue: structured answer values
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class DisplayState(str, enum.Enum):
    """Lifecycle states for a form session.

    Transitions:
        idle -> active            (start_interaction)
        active -> uploading       (file upload in flight)
        uploading -> active       (upload finished)
        uploading -> error        (upload failed; recoverable)
        active -> error           (validation failure / resolution inconsistency)
        error -> active           (next successful record_answer; validation only)
        active -> completed       (resolver found no next visible question)
        completed -> saved        (final persistence intent emitted; terminal)
    """

    IDLE = "idle"
    ACTIVE = "active"
    UPLOADING = "uploading"
    ERROR = "error"
    COMPLETED = "completed"
    SAVED = "saved"


class InteractionMode(str, enum.Enum):
    """Which presentation driver is mounted for the session."""

    CONVERSATIONAL = "conversational"
    WIZARD = "wizard"


class FileReference(BaseModel):
    """Stable reference returned by the file-upload endpoint."""

    model_config = ConfigDict(frozen=True)

    url: str
    name: str
    size: int


class AddressValue(BaseModel):
    """Structured answer for address questions."""

    model_config = ConfigDict(frozen=True)

    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""


@dataclass(frozen=True)
class SessionSnapshot:
    """Driver-facing state snapshot.

    The session state proper is ``display_state``, ``current_question_id``,
    ``responses`` (a read-only mapping) and ``last_error``.  ``session_id``
    and ``form_id`` ride along as identity so a listener serving several
    sessions can tell them apart; they are never mutated through the
    snapshot and nothing else is exposed.
    """

    session_id: Optional[str]
    form_id: Optional[str]
    display_state: DisplayState
    current_question_id: Optional[str]
    responses: Mapping[str, Any]
    last_error: Optional[str] = None


class PersistedSession(BaseModel):
    """Durable session record keyed by form id.

    Transient fields (pending selection triggers, files mid-upload) are never
    part of this record.
    """

    form_id: str
    session_id: str
    version_id: Optional[str] = None
    current_question_id: Optional[str] = None
    display_state: DisplayState = DisplayState.IDLE
    responses: dict[str, Any] = {}
    is_test_mode: bool = False
    mode: InteractionMode = InteractionMode.WIZARD
    last_error: Optional[str] = None

    @property
    def is_in_progress(self) -> bool:
        """True while the session can still be resumed (not yet saved)."""
        return self.display_state != DisplayState.SAVED
