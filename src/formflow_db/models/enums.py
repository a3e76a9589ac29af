"""Database-level enumerations."""

import enum


class SubmissionStatus(str, enum.Enum):
    """Lifecycle of a stored submission.

    Transitions:
        in_progress -> completed  (final save received)
    """

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
