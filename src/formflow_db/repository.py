"""Async CRUD repository for submissions and answers.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries; nothing here commits.

Upserts are read-then-write inside the caller's transaction.  The unique
constraint on ``(submission_id, question_id)`` backs them up at the database
level.
"""

from datetime import datetime, timezone
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from formflow_db.models.enums import SubmissionStatus
from formflow_db.models.submission import FormAnswer, FormSubmission


class SubmissionRepository:
    """Read/write operations on ``form_submissions`` and ``form_answers``."""

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    async def get_submission(
        self, db: AsyncSession, submission_id: str
    ) -> FormSubmission | None:
        return await db.get(FormSubmission, submission_id)

    async def upsert_submission(
        self,
        db: AsyncSession,
        *,
        submission_id: str,
        form_id: str,
        version_id: str | None = None,
        status: SubmissionStatus = SubmissionStatus.IN_PROGRESS,
        test_mode: bool = False,
    ) -> FormSubmission:
        """Create the submission row, or update status/version on an existing one.

        A completed submission never goes back to ``in_progress``; late
        partial saves only touch answers.
        """
        now = datetime.now(timezone.utc)
        submission = await self.get_submission(db, submission_id)
        if submission is None:
            submission = FormSubmission(
                submission_id=submission_id,
                form_id=form_id,
                version_id=version_id,
                status=status,
                test_mode=test_mode,
                created_at=now,
                updated_at=now,
            )
            db.add(submission)
        else:
            if version_id is not None:
                submission.version_id = version_id
            if submission.status != SubmissionStatus.COMPLETED:
                submission.status = status
            submission.test_mode = test_mode
            submission.updated_at = now

        if status == SubmissionStatus.COMPLETED and submission.completed_at is None:
            submission.completed_at = now
        await db.flush()
        return submission

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    async def get_answer(
        self, db: AsyncSession, submission_id: str, question_id: str
    ) -> FormAnswer | None:
        stmt = select(FormAnswer).where(
            FormAnswer.submission_id == submission_id,
            FormAnswer.question_id == question_id,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_answer(
        self,
        db: AsyncSession,
        submission_id: str,
        question_id: str,
        value: Any,
    ) -> FormAnswer:
        """Write the answer for one question (last write wins)."""
        now = datetime.now(timezone.utc)
        answer = await self.get_answer(db, submission_id, question_id)
        if answer is None:
            answer = FormAnswer(
                submission_id=submission_id,
                question_id=question_id,
                answer_value=value,
                updated_at=now,
            )
            db.add(answer)
        else:
            answer.answer_value = value
            answer.updated_at = now
        await db.flush()
        return answer

    async def upsert_answers(
        self,
        db: AsyncSession,
        submission_id: str,
        answers: Mapping[str, Any],
    ) -> list[FormAnswer]:
        """Upsert every ``question_id -> value`` pair in ``answers``."""
        return [
            await self.upsert_answer(db, submission_id, qid, value)
            for qid, value in answers.items()
        ]

    async def list_answers(
        self, db: AsyncSession, submission_id: str
    ) -> list[FormAnswer]:
        """All answers of a submission, oldest write first."""
        stmt = (
            select(FormAnswer)
            .where(FormAnswer.submission_id == submission_id)
            .order_by(FormAnswer.updated_at, FormAnswer.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())
