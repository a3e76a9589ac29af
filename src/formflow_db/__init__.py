"""formflow_db — PostgreSQL storage for form submissions and answers.

ORM models, the async engine factory and the repository used by the
``save-answers`` endpoint in ``formflow_server``.
"""

from formflow_db.models.submission import FormAnswer, FormSubmission
from formflow_db.models.enums import SubmissionStatus
from formflow_db.engine import get_engine, get_session_factory
from formflow_db.repository import SubmissionRepository

__all__ = [
    "FormAnswer",
    "FormSubmission",
    "SubmissionStatus",
    "get_engine",
    "get_session_factory",
    "SubmissionRepository",
]
