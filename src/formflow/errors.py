"""Exception types raised by the formflow SDK.

Only caller misuse is raised.  User-input problems (a missing required
answer) and resolution inconsistencies are surfaced through the session's
``display_state`` / ``last_error`` instead, so drivers can render them.

All exceptions subclass ``ValueError`` so that HTTP layers which map
``ValueError`` by message pattern keep working unchanged.
"""


class FormflowError(ValueError):
    """Base class for all formflow errors."""


class FormSchemaError(FormflowError):
    """The form schema violates a structural invariant (duplicate ids, ...)."""


class UnknownQuestion(FormflowError):
    """A question id does not belong to the session's form."""

    def __init__(self, question_id: str) -> None:
        super().__init__(f"Question not found in form: {question_id!r}")
        self.question_id = question_id


class InvalidTransition(FormflowError):
    """A command was issued in a display state that does not allow it."""

    def __init__(self, command: str, state: str) -> None:
        super().__init__(f"Cannot {command}: session is in state '{state}'")
        self.command = command
        self.state = state


class UploadRejected(FormflowError):
    """A file was refused before upload (e.g. disallowed extension)."""


class AnswerValidationError(FormflowError):
    """A required question received an empty answer.

    Never raised by the session; stored as its ``failure`` and rendered
    through ``last_error`` while the session is in the ``error`` state.
    """

    def __init__(self, question_id: str) -> None:
        super().__init__(f"An answer is required for question {question_id!r}")
        self.question_id = question_id


class ResolutionInconsistency(FormflowError):
    """The session's current question is not part of its form.

    Fatal for the session: only ``restart`` or ``begin_session`` recover.
    """

    def __init__(self, question_id: str | None) -> None:
        super().__init__(f"Current question {question_id!r} not found in form")
        self.question_id = question_id
