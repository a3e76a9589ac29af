"""formflow — form-session orchestration SDK.

Public API:
    FormSession         — state machine owning pointer, display state, answers
    WizardDriver        — paginated driver (auto-advance, back, progress)
    ConversationalDriver — turn-based driver with stale-trigger discard
    FormStore           — loads YAML/JSON form schemas with lookup helpers
    FormSchema          — a form: ordered questions plus settings
    SessionSnapshot     — the driver-facing view of a session

Evaluation:
    VisibilityEvaluator — branching-rule semantics over a ConditionEvaluator
    JsonataConditionEvaluator   — JSONata expressions
    PredicateConditionEvaluator — ``<qid> <op> <json>`` predicates

Persistence:
    PersistenceScheduler — turns session commands into intents
    PersistenceWorker    — drains intents into a PersistenceTransport
    HttpPersistenceTransport / InMemoryTransport
    MemorySessionStore / JsonFileSessionStore — resume across reloads
    HttpFileUploader     — file-upload questions
"""

from formflow.drivers import ConversationalDriver, WizardDriver
from formflow.engine import FormSession
from formflow.errors import (
    AnswerValidationError,
    FormflowError,
    FormSchemaError,
    InvalidTransition,
    ResolutionInconsistency,
    UnknownQuestion,
    UploadRejected,
)
from formflow.evaluator import VisibilityEvaluator, is_visible
from formflow.expressions import JsonataConditionEvaluator, PredicateConditionEvaluator
from formflow.interfaces import (
    ConditionEvaluator,
    FileUploader,
    PersistenceTransport,
    SessionStore,
    StateListener,
)
from formflow.models import (
    DisplayState,
    FileReference,
    FormSchema,
    InteractionMode,
    Question,
    SessionSnapshot,
)
from formflow.navigation import find_first_visible, find_next_visible, find_previous_visible
from formflow.persistence import (
    HttpPersistenceTransport,
    InMemoryTransport,
    IntentQueue,
    PersistenceIntent,
    PersistenceScheduler,
    PersistenceWorker,
)
from formflow.storage import FormStore, JsonFileSessionStore, MemorySessionStore
from formflow.uploads import HttpFileUploader

__all__ = [
    # Session & drivers
    "FormSession",
    "WizardDriver",
    "ConversationalDriver",
    "SessionSnapshot",
    "DisplayState",
    "InteractionMode",
    # Schema
    "FormSchema",
    "FormStore",
    "Question",
    "FileReference",
    # Evaluation & navigation
    "ConditionEvaluator",
    "VisibilityEvaluator",
    "JsonataConditionEvaluator",
    "PredicateConditionEvaluator",
    "is_visible",
    "find_next_visible",
    "find_previous_visible",
    "find_first_visible",
    # Persistence
    "PersistenceIntent",
    "IntentQueue",
    "PersistenceScheduler",
    "PersistenceWorker",
    "PersistenceTransport",
    "HttpPersistenceTransport",
    "InMemoryTransport",
    "SessionStore",
    "MemorySessionStore",
    "JsonFileSessionStore",
    "FileUploader",
    "HttpFileUploader",
    "StateListener",
    # Errors
    "FormflowError",
    "FormSchemaError",
    "UnknownQuestion",
    "InvalidTransition",
    "AnswerValidationError",
    "ResolutionInconsistency",
    "UploadRejected",
]
