"""WizardDriver — one question per page, forward and back.

Single-gesture question types (single choice, rating, linear and likert
scales) advance as soon as their answer is recorded.  Everything else waits
for :meth:`WizardDriver.continue_`.
"""

from __future__ import annotations

import logging
from typing import Any

from formflow.constants import AUTO_ADVANCE_TYPES
from formflow.drivers.base import BaseDriver
from formflow.interfaces import FileUploader
from formflow.models.question import Question
from formflow.models.session import DisplayState
from formflow.navigation import index_of, progress

logger = logging.getLogger(__name__)


class WizardDriver(BaseDriver):
    """Paginated driver with an index cursor into the question list."""

    def start(self) -> Question | None:
        """Start the interaction if needed and return the page to render."""
        self._ensure_started()
        return self.current()

    def current(self) -> Question | None:
        return self._resolve_visible()

    @property
    def index(self) -> int | None:
        """Cursor: position of the current question in traversal order."""
        qid = self.session.current_question_id
        if qid is None:
            return None
        return index_of(qid, self.session.form.questions)

    def answer(self, question_id: str, value: Any) -> Question | None:
        """Record ``value``; auto-advance for single-gesture types.

        Returns the question to render next (the same one if the answer was
        rejected or the type needs an explicit continue).
        """
        if not self.session.record_answer(question_id, value):
            return self.session.current_question

        question = self.session.form.get_question(question_id)
        if (
            question is not None
            and question.question_type.value in AUTO_ADVANCE_TYPES
            and self.session.display_state == DisplayState.ACTIVE
        ):
            self.session.advance()
        return self.current()

    def continue_(self) -> Question | None:
        """Explicit "next" for multi-step question types.

        Stays on the current page while the session shows an error, and when
        a required question has no answer yet; the latter is reported through
        ``record_answer`` so the page shows the validation message.
        """
        session = self.session
        question = self.current()
        if question is None or session.display_state == DisplayState.ERROR:
            return question
        if question.is_required and question.id not in session.responses:
            session.record_answer(question.id, None)
            return question
        session.advance()
        return self.current()

    def back(self) -> Question | None:
        self.session.go_back()
        return self.current()

    def progress(self) -> float:
        """Percentage for the progress bar; 100 once the form is saved."""
        if self.session.display_state == DisplayState.SAVED:
            return 100.0
        return progress(self.session.current_question_id, self.session.form.questions)

    async def upload(
        self,
        question_id: str,
        content: bytes,
        filename: str,
        uploader: FileUploader,
    ) -> Question | None:
        """Upload a file for ``question_id`` and advance on success.

        A failed upload leaves the session in ``error`` on the same question.
        """
        session = self.session
        session.begin_upload(question_id)
        try:
            reference = await uploader.upload(
                content,
                filename,
                form_id=session.form_id,
                session_id=session.session_id,
                question_id=question_id,
            )
        except Exception as exc:
            logger.warning("Upload of %s for %s failed: %s", filename, question_id, exc)
            session.fail_upload(question_id, str(exc))
            return session.current_question

        if session.finish_upload(question_id, reference):
            session.advance()
        return self.current()

    def restart(self) -> Question | None:
        """Fresh answer pass on the same session, back on the first page."""
        self.session.restart()
        return self.start()
