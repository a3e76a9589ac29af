"""ConversationalDriver — the form as a chat.

The assistant asks the current question, the user answers, and the next
question is asked.  Nothing advances on its own: every step is triggered by
an answer keyed to a question id.  Turns can arrive out of order relative to
state changes made elsewhere, so an answer whose question id is not the
session's current question is discarded.

Selecting an option in a chat widget queues a :class:`SelectionTrigger`
which is consumed once the UI has echoed it as a user message.  Pending
triggers are transient and never persisted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, Optional

from formflow.drivers.base import BaseDriver
from formflow.models.question import Question

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatTurn:
    role: Literal["assistant", "user"]
    text: str
    question_id: Optional[str] = None


@dataclass(frozen=True)
class SelectionTrigger:
    """A pending answer produced by clicking an option."""

    question_id: str
    value: Any
    display_text: str


class ConversationalDriver(BaseDriver):
    """Turn-based driver.  The cursor is the last question the assistant asked."""

    def __init__(self, session) -> None:
        super().__init__(session)
        self.turns: list[ChatTurn] = []
        self._last_presented: str | None = None
        self._pending: SelectionTrigger | None = None

    @property
    def last_presented(self) -> str | None:
        return self._last_presented

    def start(self) -> Question | None:
        self._ensure_started()
        return self.present()

    def present(self) -> Question | None:
        """Ask the current question (once) and return it."""
        question = self._resolve_visible()
        if question is None:
            return None
        if question.id != self._last_presented:
            self.turns.append(ChatTurn("assistant", question.title, question.id))
            self._last_presented = question.id
        return question

    def submit(self, question_id: str, value: Any, display_text: str | None = None) -> bool:
        """Answer ``question_id`` and move on.

        Returns False if the trigger was stale or the answer was rejected by
        validation; True once the answer is recorded and the session advanced.
        """
        current = self.session.current_question_id
        if question_id != current:
            logger.info(
                "Discarding stale answer for %s (current question is %s)", question_id, current,
            )
            return False

        text = display_text if display_text is not None else _display_value(value)
        self.turns.append(ChatTurn("user", text, question_id))

        if not self.session.record_answer(question_id, value):
            return False
        self.session.advance()
        self.present()
        return True

    # ------------------------------------------------------------------
    # Selection triggers
    # ------------------------------------------------------------------

    def queue_trigger(self, question_id: str, value: Any, display_text: str) -> None:
        """Remember an option click; replaces any trigger not yet consumed."""
        self._pending = SelectionTrigger(question_id, value, display_text)

    @property
    def pending_trigger(self) -> SelectionTrigger | None:
        return self._pending

    def consume_trigger(self) -> bool:
        """Submit the pending trigger, if any.  Stale triggers are dropped."""
        trigger, self._pending = self._pending, None
        if trigger is None:
            return False
        return self.submit(trigger.question_id, trigger.value, trigger.display_text)

    def restart(self) -> Question | None:
        self.session.restart()
        self.turns.clear()
        self._last_presented = None
        self._pending = None
        return self.start()


def _display_value(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    if isinstance(value, dict):
        return value.get("name") or ", ".join(str(v) for v in value.values() if v)
    return str(value)
