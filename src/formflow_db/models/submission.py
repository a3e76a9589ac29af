"""FormSubmission and FormAnswer ORM models.

One submission row per form session (keyed by the session id the client
issued), one answer row per (submission, question).  Answers are upserted, so
the last write for a question wins.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from formflow_db.models.base import Base
from formflow_db.models.enums import SubmissionStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FormSubmission(Base):
    """One row per form session."""

    __tablename__ = "form_submissions"

    # Session id issued by the client
    submission_id: Mapped[str] = mapped_column(Text, primary_key=True)

    form_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    version_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[SubmissionStatus] = mapped_column(
        String(20),
        nullable=False,
        default=SubmissionStatus.IN_PROGRESS,
        index=True,
    )
    test_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    answers: Mapped[list["FormAnswer"]] = relationship(
        back_populates="submission",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<FormSubmission(id={self.submission_id!r}, form={self.form_id!r}, "
            f"status={self.status!r})>"
        )


class FormAnswer(Base):
    """Latest answer for one question of one submission."""

    __tablename__ = "form_answers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    submission_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("form_submissions.submission_id", ondelete="CASCADE"),
        nullable=False,
    )
    question_id: Mapped[str] = mapped_column(Text, nullable=False)
    # Any JSON answer: string, number, list, address/file dict, null
    answer_value: Mapped[Any] = mapped_column(JSONB, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    submission: Mapped[FormSubmission] = relationship(back_populates="answers")

    __table_args__ = (
        UniqueConstraint("submission_id", "question_id", name="uq_submission_question"),
        Index("ix_form_answers_submission", "submission_id"),
    )

    def __repr__(self) -> str:
        return f"<FormAnswer(submission={self.submission_id!r}, question={self.question_id!r})>"
