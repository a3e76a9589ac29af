"""ORM models for formflow_db."""

from formflow_db.models.base import Base
from formflow_db.models.enums import SubmissionStatus
from formflow_db.models.submission import FormAnswer, FormSubmission

__all__ = ["Base", "FormAnswer", "FormSubmission", "SubmissionStatus"]
