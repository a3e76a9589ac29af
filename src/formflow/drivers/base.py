"""Behaviour shared by both presentation drivers."""

from __future__ import annotations

import logging

from formflow.engine import FormSession
from formflow.models.question import Question
from formflow.models.session import DisplayState

logger = logging.getLogger(__name__)


class BaseDriver:
    """Holds the session and resolves the question to render.

    Drivers never touch session internals: they read the snapshot, call the
    session's public commands and use the navigation resolver.
    """

    def __init__(self, session: FormSession) -> None:
        self.session = session

    def _ensure_started(self) -> None:
        if self.session.display_state == DisplayState.IDLE:
            self.session.start_interaction()

    def _resolve_visible(self) -> Question | None:
        """Current question, skipping forward if it is no longer visible.

        This is where the first question of a form gets its visibility check:
        ``start_interaction`` points at it unconditionally, and the first
        render moves past it through ``advance`` if its rules hide it.
        """
        session = self.session
        question = session.current_question
        if question is None or session.display_state != DisplayState.ACTIVE:
            return question
        if session.visibility.is_visible(question, session.responses):
            return question
        logger.debug("Question %s is hidden, advancing", question.id)
        return session.advance()
