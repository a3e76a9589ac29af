"""Abstract interfaces for the collaborators the session core consumes.

These ABCs define the contract that external implementations must fulfil.
The core never depends on a concrete transport, expression language, or
storage backend; it receives implementations at construction time.

Typical integration flow::

    evaluator = JsonataConditionEvaluator()
    queue = IntentQueue()
    session = FormSession(
        conditions=evaluator,
        scheduler=PersistenceScheduler(queue),
        store=JsonFileSessionStore("./.sessions"),
    )
    session.begin_session(form, form_id="f1")

    # A background task drains persistence intents
    worker = PersistenceWorker(queue, HttpPersistenceTransport(base_url))
    await worker.run_once()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Protocol

from formflow.models.session import FileReference, PersistedSession, SessionSnapshot


class ConditionEvaluator(ABC):
    """Pluggable expression language for branching conditions and derived fields.

    The core treats this as a pure function.  Implementations may raise on
    malformed input; the visibility evaluator catches everything and treats a
    failure as ``False``.
    """

    @abstractmethod
    def evaluate(self, expression: str, context: Mapping[str, Any]) -> Any:
        """Evaluate ``expression`` against the Response Map ``context``.

        Returns:
            The raw result.  For branching conditions only a literal ``True``
            counts as a fired condition.
        """
        ...


class PersistenceTransport(ABC):
    """Delivers persistence payloads to the remote store."""

    @abstractmethod
    async def send(self, payload: dict[str, Any]) -> bool:
        """Send one payload.  Returns True on success, False on failure.

        Implementations may also raise; the worker treats an exception the
        same as a ``False`` result.
        """
        ...


class FileUploader(ABC):
    """Uploads raw file bytes and returns a stable reference."""

    @abstractmethod
    async def upload(
        self,
        content: bytes,
        filename: str,
        *,
        form_id: str,
        session_id: str,
        question_id: str,
    ) -> FileReference:
        """Upload a file for ``question_id`` and return its reference."""
        ...


class SessionStore(ABC):
    """Durable storage for session continuity across reloads.

    One record per form id: switching forms replaces the record.
    """

    @abstractmethod
    def load(self, form_id: str) -> PersistedSession | None:
        """Return the stored record for ``form_id``, or None."""
        ...

    @abstractmethod
    def save(self, record: PersistedSession) -> None:
        """Write (replace) the record for ``record.form_id``."""
        ...

    @abstractmethod
    def clear(self, form_id: str) -> None:
        """Drop the record for ``form_id`` if present."""
        ...


class StateListener(Protocol):
    """Implemented by presentation layers that want change notifications."""

    def on_state_change(self, snapshot: SessionSnapshot) -> None:
        ...
