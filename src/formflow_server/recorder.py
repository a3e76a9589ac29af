"""AnswerRecorder — server-side handling of the ``save-answers`` payloads.

Partial saves upsert one answer; final saves upsert every answer, set the
submission status and fire the completion webhook.  Like the repository it
wraps, the recorder flushes but never commits: the request dependency owns
the transaction.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from formflow.storage import FormStore
from formflow_db.models.enums import SubmissionStatus
from formflow_db.repository import SubmissionRepository

from formflow_server.webhooks import WebhookSender, build_webhook_payload

logger = logging.getLogger(__name__)


class AnswerRecorder:
    """Applies persistence payloads to the database.

    Args:
        forms: loaded form schemas, for per-form webhook URLs and
            additional field ids; optional
        webhooks: sender for completion webhooks
        default_webhook_url: used when a form has no webhook of its own
    """

    def __init__(
        self,
        forms: FormStore | None,
        webhooks: WebhookSender,
        *,
        default_webhook_url: str | None = None,
    ) -> None:
        self._forms = forms
        self._webhooks = webhooks
        self._default_webhook_url = default_webhook_url
        self._repo = SubmissionRepository()

    # ------------------------------------------------------------------
    # Form lookups
    # ------------------------------------------------------------------

    def _webhook_url(self, form_id: str) -> str | None:
        if self._forms is not None:
            url = self._forms.webhook_url(form_id)
            if url:
                return url
        return self._default_webhook_url

    def _additional_ids(self, form_id: str) -> set[str]:
        if self._forms is None or form_id not in self._forms.forms:
            return set()
        return self._forms.get(form_id).additional_field_ids

    # ------------------------------------------------------------------
    # Saves
    # ------------------------------------------------------------------

    async def save_partial(
        self,
        db: AsyncSession,
        *,
        form_id: str,
        submission_id: str,
        question_id: str,
        value: Any,
        version_id: str | None = None,
        test_mode: bool = False,
    ) -> dict[str, Any]:
        """Upsert one answer on an in-progress submission."""
        await self._repo.upsert_submission(
            db,
            submission_id=submission_id,
            form_id=form_id,
            version_id=version_id,
            status=SubmissionStatus.IN_PROGRESS,
            test_mode=test_mode,
        )
        await self._repo.upsert_answer(db, submission_id, question_id, value)
        logger.debug("Partial save %s/%s", submission_id, question_id)
        return {"success": True, "submissionId": submission_id, "isPartial": True}

    async def save_final(
        self,
        db: AsyncSession,
        *,
        form_id: str,
        submission_id: str,
        responses: Mapping[str, Any],
        status: str | None = None,
        version_id: str | None = None,
        test_mode: bool = False,
    ) -> dict[str, Any]:
        """Upsert every answer and set the submission status.

        Without an explicit ``status`` a submission carrying answers is
        ``completed``; an empty one (the opening save) stays ``in_progress``.
        A completed submission triggers the webhook.
        """
        if status is None:
            status = SubmissionStatus.COMPLETED if responses else SubmissionStatus.IN_PROGRESS
        status = SubmissionStatus(status)

        submission = await self._repo.upsert_submission(
            db,
            submission_id=submission_id,
            form_id=form_id,
            version_id=version_id,
            status=status,
            test_mode=test_mode,
        )
        await self._repo.upsert_answers(db, submission_id, responses)
        logger.info(
            "Saved %d answers for submission %s (status=%s)",
            len(responses), submission_id, status.value,
        )

        if status == SubmissionStatus.COMPLETED:
            await self._notify(form_id, submission_id, submission.version_id, status, test_mode, responses)

        return {
            "success": True,
            "submissionId": submission_id,
            "isPartial": False,
            "status": status.value,
        }

    async def _notify(
        self,
        form_id: str,
        submission_id: str,
        version_id: str | None,
        status: SubmissionStatus,
        test_mode: bool,
        responses: Mapping[str, Any],
    ) -> None:
        url = self._webhook_url(form_id)
        if not url:
            return
        payload = build_webhook_payload(
            submission_id, version_id, status.value, test_mode, responses,
            self._additional_ids(form_id),
        )
        await self._webhooks.send(url, payload)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_submission(
        self, db: AsyncSession, *, form_id: str, submission_id: str
    ) -> dict[str, Any]:
        """Submission status plus its answers keyed by question id.

        Raises:
            ValueError: if the submission does not exist for ``form_id``.
        """
        submission = await self._repo.get_submission(db, submission_id)
        if submission is None or submission.form_id != form_id:
            raise ValueError(f"Submission not found: {submission_id}")
        answers = await self._repo.list_answers(db, submission_id)
        return {
            "submissionId": submission.submission_id,
            "formId": submission.form_id,
            "versionId": submission.version_id,
            "status": SubmissionStatus(submission.status).value,
            "testMode": submission.test_mode,
            "answers": {a.question_id: a.answer_value for a in answers},
        }
