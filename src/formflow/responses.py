"""ResponseMap — the per-session store of collected answers.

Keys are question ids (written by ``record``) or declared derived-field ids
(written by ``record_derived``).  Any other key is refused, so the set of
keys is always a subset of ``question ids ∪ derived-field ids``.

Absence of a key means "not answered yet".  Falsy answers (``""``, ``0``,
``[]``) are real answers and are stored like any other value.

Structured answers (address, file reference) are stored as plain dicts so the
whole map stays JSON-serialisable for persistence and expression evaluation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)


def normalise_value(value: Any) -> Any:
    """Convert structured answer models into plain JSON-compatible values."""
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, tuple):
        return list(value)
    return value


def is_empty_answer(value: Any) -> bool:
    """True if ``value`` does not satisfy a required question.

    ``None`` and blank strings are empty.  ``0``, ``False``, and non-empty
    structures are not; an empty list is empty (nothing selected).
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


class ResponseMap(Mapping[str, Any]):
    """Mutable answer store with key isolation.

    Args:
        question_ids: ids of the form's questions
        derived_ids: ids of the form's derived fields
        initial: seed answers; keys outside the allowed sets are dropped
        parameter_ids: query parameter names that may only arrive as seeds
    """

    def __init__(
        self,
        question_ids: Iterable[str],
        derived_ids: Iterable[str] = (),
        initial: Mapping[str, Any] | None = None,
        *,
        parameter_ids: Iterable[str] = (),
    ) -> None:
        self._question_ids = frozenset(question_ids)
        self._derived_ids = frozenset(derived_ids)
        self._seed_ids = self._question_ids | self._derived_ids | frozenset(parameter_ids)
        self._data: dict[str, Any] = {}
        if initial:
            self.seed(initial)

    # ------------------------------------------------------------------
    # Mapping protocol
    # ------------------------------------------------------------------

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"ResponseMap({self._data!r})"

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record(self, question_id: str, value: Any) -> None:
        """Write an answer for ``question_id`` (last write wins)."""
        if question_id not in self._question_ids:
            raise KeyError(question_id)
        self._data[question_id] = normalise_value(value)

    def record_derived(self, field_id: str, value: Any) -> None:
        """Write a derived-field value computed at completion."""
        if field_id not in self._derived_ids:
            raise KeyError(field_id)
        self._data[field_id] = normalise_value(value)

    def seed(self, initial: Mapping[str, Any]) -> None:
        """Load initial answers, skipping keys the form does not declare."""
        for key, value in initial.items():
            if key in self._seed_ids:
                self._data[key] = normalise_value(value)
            else:
                logger.debug("Ignoring initial response for unknown key %r", key)

    def clear(self) -> None:
        self._data.clear()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def is_answered(self, question_id: str) -> bool:
        """True if a value (including a falsy one) was recorded."""
        return question_id in self._data

    def view(self) -> Mapping[str, Any]:
        """Read-only live view for drivers."""
        return MappingProxyType(self._data)

    def to_dict(self) -> dict[str, Any]:
        """Shallow copy for persistence and expression evaluation."""
        return dict(self._data)
