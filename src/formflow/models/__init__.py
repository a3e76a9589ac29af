"""Public model re-exports for formflow.

Consumers should import from ``formflow.models`` rather than reaching into
sub-modules directly.
"""

# --- Questions ---
from formflow.models.question import (
    BranchingRule,
    Option,
    Question,
    QuestionType,
    Validations,
)

# --- Form schema ---
from formflow.models.form import DerivedField, FormSchema, FormSettings

# --- Session ---
from formflow.models.session import (
    AddressValue,
    DisplayState,
    FileReference,
    InteractionMode,
    PersistedSession,
    SessionSnapshot,
)

__all__ = [
    # Questions
    "BranchingRule",
    "Option",
    "Question",
    "QuestionType",
    "Validations",
    # Form
    "DerivedField",
    "FormSchema",
    "FormSettings",
    # Session
    "AddressValue",
    "DisplayState",
    "FileReference",
    "InteractionMode",
    "PersistedSession",
    "SessionSnapshot",
]
