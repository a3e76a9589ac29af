"""Durable session storage and form schema loading.

Session stores keep one :class:`PersistedSession` per form id so that a
reload of the same form resumes the same session, while opening a different
form starts over.

``FormStore`` loads authored form schemas from YAML or JSON files.

Usage::

    forms = FormStore("forms/")
    forms.load()
    form = forms.get("customer-feedback")

    sessions = JsonFileSessionStore(".sessions/")
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from formflow.errors import FormSchemaError
from formflow.interfaces import SessionStore
from formflow.models.form import FormSchema
from formflow.models.session import PersistedSession

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Session stores
# ---------------------------------------------------------------------------

class MemorySessionStore(SessionStore):
    """Process-local session store (tests, single-process embedding)."""

    def __init__(self) -> None:
        self._records: dict[str, PersistedSession] = {}

    def load(self, form_id: str) -> PersistedSession | None:
        record = self._records.get(form_id)
        return record.model_copy(deep=True) if record is not None else None

    def save(self, record: PersistedSession) -> None:
        self._records[record.form_id] = record.model_copy(deep=True)

    def clear(self, form_id: str) -> None:
        self._records.pop(form_id, None)


class JsonFileSessionStore(SessionStore):
    """One JSON document per form id under ``directory``.

    A record that fails to parse is treated as absent (logged), so a corrupt
    file starts a fresh session instead of breaking the form.
    """

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)

    def _path(self, form_id: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in form_id)
        return self._dir / f"{safe}.json"

    def load(self, form_id: str) -> PersistedSession | None:
        path = self._path(form_id)
        if not path.exists():
            return None
        try:
            return PersistedSession.model_validate_json(path.read_text(encoding="utf-8"))
        except ValueError as exc:
            logger.warning("Discarding unreadable session record %s: %s", path, exc)
            return None

    def save(self, record: PersistedSession) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        self._path(record.form_id).write_text(record.model_dump_json(), encoding="utf-8")

    def clear(self, form_id: str) -> None:
        self._path(form_id).unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# Form schemas
# ---------------------------------------------------------------------------

def load_document(path: Path | str) -> Any:
    """Load a single YAML or JSON file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing form file: {path}")
    with path.open("r", encoding="utf-8") as f:
        if path.suffix == ".json":
            return json.load(f)
        return yaml.safe_load(f)


class FormStore:
    """Loads every ``*.yaml``/``*.yml``/``*.json`` form under a directory.

    Attributes populated after :meth:`load`:

        forms — dict[form_id, FormSchema]
    """

    _SUFFIXES = (".yaml", ".yml", ".json")

    def __init__(self, forms_dir: str | Path) -> None:
        self._base = Path(forms_dir)
        self.forms: dict[str, FormSchema] = {}

    def load(self) -> None:
        """Parse all form files.  Raises ``FormSchemaError`` on duplicates."""
        if not self._base.is_dir():
            raise FileNotFoundError(f"Forms directory not found: {self._base}")

        for path in sorted(self._base.iterdir()):
            if path.suffix not in self._SUFFIXES:
                continue
            form = FormSchema.model_validate(load_document(path))
            if form.id in self.forms:
                raise FormSchemaError(f"Form id {form.id!r} defined twice (second in {path.name})")
            self.forms[form.id] = form

        logger.info("FormStore loaded %d forms from %s", len(self.forms), self._base)

    def get(self, form_id: str) -> FormSchema:
        """Return the form with ``form_id``.

        Raises:
            KeyError: if no such form was loaded.
        """
        return self.forms[form_id]

    def webhook_url(self, form_id: str) -> str | None:
        """Completion webhook configured for ``form_id``, if any."""
        form = self.forms.get(form_id)
        return form.settings.webhook_url if form is not None else None
