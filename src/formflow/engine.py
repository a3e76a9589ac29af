"""FormSession — the state machine behind every form, whatever the driver.

The session owns the current-question pointer, the display state and the
Response Map.  Presentation drivers (wizard, conversational) read it through
:meth:`FormSession.snapshot` and mutate it only through the commands below:

    begin_session      bind a form; resume or issue a session id
    start_interaction  idle -> active, pointer on the first question
    record_answer      validate and write one answer
    advance            move to the next visible question, or complete
    go_back            move to the previous visible question (wizard)
    restart            fresh answer pass, same session identity
    begin_upload / finish_upload / fail_upload
                       active -> uploading -> active | error

Every command runs to completion synchronously.  Durability work is never
performed here: the session emits persistence intents into a
:class:`~formflow.persistence.PersistenceScheduler` and a worker delivers
them later.

Failure handling:
    - empty answer to a required question: state ``error`` with a message,
      Response Map untouched, recovered by the next successful answer
    - current question missing from the form: state ``error``, fatal; only
      ``restart`` or ``begin_session`` are accepted afterwards
    - caller misuse (unknown question id, command in the wrong state):
      raised as :class:`~formflow.errors.FormflowError` subclasses
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable, Mapping

from formflow.errors import (
    AnswerValidationError,
    FormflowError,
    InvalidTransition,
    ResolutionInconsistency,
    UnknownQuestion,
)
from formflow.evaluator import VisibilityEvaluator
from formflow.interfaces import ConditionEvaluator, SessionStore, StateListener
from formflow.models.form import FormSchema
from formflow.models.question import Question
from formflow.models.session import (
    DisplayState,
    FileReference,
    InteractionMode,
    PersistedSession,
    SessionSnapshot,
)
from formflow.navigation import find_next_visible, find_previous_visible, index_of
from formflow.persistence import PersistenceScheduler
from formflow.responses import ResponseMap, is_empty_answer

logger = logging.getLogger(__name__)


def _response_map(form: FormSchema, initial: Mapping[str, Any] | None) -> ResponseMap:
    return ResponseMap(
        form.question_ids,
        form.derived_field_ids,
        initial,
        parameter_ids=form.settings.query_parameters,
    )


class FormSession:
    """Explicit, injectable form-session state.

    Args:
        conditions: expression language for branching rules and derived fields
        scheduler: receives persistence intents; a private one is created if
            omitted (its queue is then simply never drained)
        store: durable session storage used for resume; optional
        listeners: notified with a fresh snapshot after every command
    """

    def __init__(
        self,
        conditions: ConditionEvaluator,
        *,
        scheduler: PersistenceScheduler | None = None,
        store: SessionStore | None = None,
        listeners: Iterable[StateListener] = (),
    ) -> None:
        self._conditions = conditions
        self._visibility = VisibilityEvaluator(conditions)
        self._scheduler = scheduler if scheduler is not None else PersistenceScheduler()
        self._store = store
        self._listeners: list[StateListener] = list(listeners)

        self._form: FormSchema | None = None
        self._form_id: str | None = None
        self._session_id: str | None = None
        self._responses: ResponseMap | None = None
        self._current_question_id: str | None = None
        self._display_state = DisplayState.IDLE
        self._failure: FormflowError | None = None
        self._fatal = False
        self._test_mode = False
        self._mode = InteractionMode.WIZARD

    # ==================================================================
    # Read access
    # ==================================================================

    @property
    def form(self) -> FormSchema:
        if self._form is None:
            raise InvalidTransition("read form", "unbound")
        return self._form

    @property
    def form_id(self) -> str | None:
        return self._form_id

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def display_state(self) -> DisplayState:
        return self._display_state

    @property
    def current_question_id(self) -> str | None:
        return self._current_question_id

    @property
    def current_question(self) -> Question | None:
        if self._form is None or self._current_question_id is None:
            return None
        return self._form.get_question(self._current_question_id)

    @property
    def responses(self) -> Mapping[str, Any]:
        """Read-only live view of the Response Map."""
        if self._responses is None:
            return {}
        return self._responses.view()

    @property
    def last_error(self) -> str | None:
        return str(self._failure) if self._failure is not None else None

    @property
    def failure(self) -> FormflowError | None:
        """The validation or resolution error behind the ``error`` state."""
        return self._failure

    @property
    def is_fatal(self) -> bool:
        """True after a resolution inconsistency, until restart."""
        return self._fatal

    @property
    def is_test_mode(self) -> bool:
        return self._test_mode

    @property
    def mode(self) -> InteractionMode:
        return self._mode

    @property
    def visibility(self) -> VisibilityEvaluator:
        """The evaluator drivers pass to the navigation resolver."""
        return self._visibility

    def snapshot(self) -> SessionSnapshot:
        """Driver-facing view; the only state drivers should render from."""
        return SessionSnapshot(
            session_id=self._session_id,
            form_id=self._form_id,
            display_state=self._display_state,
            current_question_id=self._current_question_id,
            responses=self.responses,
            last_error=self.last_error,
        )

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener.on_state_change(snap)

    # ==================================================================
    # Session lifecycle
    # ==================================================================

    def begin_session(
        self,
        form: FormSchema,
        form_id: str | None = None,
        initial_responses: Mapping[str, Any] | None = None,
        test_mode: bool = False,
        mode: InteractionMode | str = InteractionMode.WIZARD,
    ) -> str:
        """Bind ``form`` to this session and return the session id.

        An in-progress session for the same form id is resumed (pointer,
        answers and display state preserved), first from this object, then
        from the durable store.  Otherwise a new session id is issued and the
        Response Map is reset to ``initial_responses`` (unknown keys dropped).

        Switching to a different form id discards the previous form's
        durable record.
        """
        form_id = form_id or form.id
        mode = InteractionMode(mode)

        if self._form_id is not None and self._form_id != form_id and self._store is not None:
            self._store.clear(self._form_id)

        # A session that lost its place is never resumed
        resumed = not self._fatal and self._try_resume(form, form_id, mode)
        if not resumed:
            self._form = form
            self._form_id = form_id
            self._session_id = str(uuid.uuid4())
            self._responses = _response_map(form, initial_responses)
            self._current_question_id = None
            self._display_state = DisplayState.IDLE
            self._failure = None
            self._fatal = False
            self._test_mode = test_mode
            self._mode = mode
            logger.info("New session %s for form %s (test_mode=%s)", self._session_id, form_id, test_mode)

        self._persist()
        self._notify()
        return self._session_id

    def _try_resume(self, form: FormSchema, form_id: str, mode: InteractionMode) -> bool:
        """Resume an in-progress session for ``form_id`` if one exists."""
        # Same object already bound to this form
        if (
            self._form_id == form_id
            and self._session_id is not None
            and self._display_state != DisplayState.SAVED
        ):
            self._form = form
            self._mode = mode
            logger.info("Resuming live session %s for form %s", self._session_id, form_id)
            return True

        if self._store is None:
            return False
        record = self._store.load(form_id)
        if record is None or not record.is_in_progress:
            return False

        self._form = form
        self._form_id = form_id
        self._session_id = record.session_id
        self._responses = _response_map(form, record.responses)
        self._current_question_id = record.current_question_id
        self._display_state = record.display_state
        self._failure = None
        self._fatal = False
        self._test_mode = record.is_test_mode
        self._mode = mode
        if self._display_state == DisplayState.ERROR:
            # The message is not durable; resume ready for the next answer
            self._display_state = DisplayState.ACTIVE
        logger.info(
            "Resumed session %s for form %s at question %s",
            self._session_id, form_id, self._current_question_id,
        )
        return True

    def start_interaction(self) -> None:
        """``idle -> active`` with the pointer on the first question.

        The first question is not checked for visibility; drivers resolve the
        first *visible* question when they render.
        """
        self._require_bound("start_interaction")
        if self._display_state != DisplayState.IDLE:
            raise InvalidTransition("start_interaction", self._display_state.value)

        first = self.form.first_question()
        self._current_question_id = first.id if first is not None else None
        self._display_state = DisplayState.ACTIVE
        self._scheduler.open_submission(
            self._session_id,
            form_id=self._form_id,
            version_id=self.form.version_id,
            test_mode=self._test_mode,
        )
        logger.debug("Session %s started at question %s", self._session_id, self._current_question_id)

        if first is None:
            # Nothing to ask; an empty form completes on the spot
            self._complete()

        self._persist()
        self._notify()

    def restart(self) -> None:
        """Clear answers, pointer and error; keep id, form and test mode."""
        self._require_bound("restart")
        self._responses.clear()
        self._current_question_id = None
        self._display_state = DisplayState.IDLE
        self._failure = None
        self._fatal = False
        logger.info("Session %s restarted", self._session_id)
        self._persist()
        self._notify()

    # ==================================================================
    # Answers
    # ==================================================================

    def record_answer(self, question_id: str, value: Any) -> bool:
        """Validate and write one answer.

        Returns:
            True if the answer was written, False if it was rejected by
            required validation (the session is then in ``error``).

        Raises:
            UnknownQuestion: ``question_id`` is not a question of the form.
            InvalidTransition: the session is not accepting answers.
        """
        self._require_answering("record_answer")
        question = self.form.get_question(question_id)
        if question is None:
            raise UnknownQuestion(question_id)

        if question.is_required and is_empty_answer(value):
            self._failure = AnswerValidationError(question_id)
            self._display_state = DisplayState.ERROR
            logger.debug("Session %s: required answer missing for %s", self._session_id, question_id)
            self._persist()
            self._notify()
            return False

        self._responses.record(question_id, value)
        self._failure = None
        self._display_state = DisplayState.ACTIVE
        self._scheduler.save_partial(
            self._session_id,
            question_id,
            self._responses[question_id],
            self._test_mode,
            form_id=self._form_id,
            version_id=self.form.version_id,
        )
        self._persist()
        self._notify()
        return True

    # ==================================================================
    # Navigation
    # ==================================================================

    def advance(self) -> Question | None:
        """Move to the next visible question.

        Returns the new current question, or None when the session completed
        or hit a resolution inconsistency (check :attr:`display_state`).
        """
        self._require_state("advance", DisplayState.ACTIVE)
        questions = self.form.questions
        current_id = self._current_question_id

        if current_id is None or index_of(current_id, questions) is None:
            self._mark_inconsistent(current_id)
            return None

        current = questions[index_of(current_id, questions)]
        nxt = find_next_visible(current, questions, self._responses, self._visibility)
        if nxt is not None:
            self._current_question_id = nxt.id
            logger.debug("Session %s advanced %s -> %s", self._session_id, current_id, nxt.id)
            self._persist()
            self._notify()
            return nxt

        self._complete()
        self._persist()
        self._notify()
        return None

    def go_back(self) -> Question | None:
        """Move to the previous visible question; stay put if there is none."""
        self._require_answering("go_back")
        questions = self.form.questions
        current_id = self._current_question_id

        if current_id is None or index_of(current_id, questions) is None:
            self._mark_inconsistent(current_id)
            return None

        current = questions[index_of(current_id, questions)]
        prev = find_previous_visible(current, questions, self._responses, self._visibility)
        if prev is None:
            return None

        self._current_question_id = prev.id
        self._failure = None
        self._display_state = DisplayState.ACTIVE
        self._persist()
        self._notify()
        return prev

    def _complete(self) -> None:
        """Derived-field pass, final intent, ``completed -> saved``."""
        self._compute_derived_fields()
        self._display_state = DisplayState.COMPLETED
        self._notify()

        self._scheduler.save_final(
            self._session_id,
            self._responses.to_dict(),
            self._test_mode,
            form_id=self._form_id,
            version_id=self.form.version_id,
        )
        self._current_question_id = None
        self._display_state = DisplayState.SAVED
        logger.info("Session %s completed (%d responses)", self._session_id, len(self._responses))

    def _compute_derived_fields(self) -> None:
        """Evaluate derived fields in declaration order.

        Each expression sees the answers plus the derived values computed
        before it.  A failing expression is logged and its field skipped.
        """
        for derived in self.form.settings.derived_fields:
            try:
                value = self._conditions.evaluate(derived.expression, self._responses.to_dict())
            except Exception as exc:
                logger.warning(
                    "Derived field %s failed to evaluate: %s", derived.field_id, exc,
                )
                continue
            self._responses.record_derived(derived.field_id, value)

    def _mark_inconsistent(self, question_id: str | None) -> None:
        self._failure = ResolutionInconsistency(question_id)
        self._fatal = True
        self._display_state = DisplayState.ERROR
        logger.error("Session %s: %s", self._session_id, self._failure)
        self._persist()
        self._notify()

    # ==================================================================
    # File uploads
    # ==================================================================

    def begin_upload(self, question_id: str) -> None:
        """``active -> uploading`` for ``question_id``."""
        self._require_answering("begin_upload")
        if self.form.get_question(question_id) is None:
            raise UnknownQuestion(question_id)
        self._display_state = DisplayState.UPLOADING
        logger.debug("Session %s uploading for %s", self._session_id, question_id)
        self._persist()
        self._notify()

    def finish_upload(self, question_id: str, reference: FileReference) -> bool:
        """``uploading -> active``; the reference is recorded as the answer."""
        self._require_state("finish_upload", DisplayState.UPLOADING)
        self._display_state = DisplayState.ACTIVE
        return self.record_answer(question_id, reference)

    def fail_upload(self, question_id: str, message: str) -> None:
        """``uploading -> error`` with ``message``; the next answer recovers."""
        self._require_state("fail_upload", DisplayState.UPLOADING)
        self._failure = FormflowError(f"Upload for {question_id!r} failed: {message}")
        self._display_state = DisplayState.ERROR
        logger.warning("Session %s: %s", self._session_id, self._failure)
        self._persist()
        self._notify()

    # ==================================================================
    # Guards / persistence
    # ==================================================================

    def _require_bound(self, command: str) -> None:
        if self._form is None:
            raise InvalidTransition(command, "unbound")

    def _require_state(self, command: str, state: DisplayState) -> None:
        self._require_bound(command)
        if self._fatal or self._display_state != state:
            raise InvalidTransition(command, self._display_state.value)

    def _require_answering(self, command: str) -> None:
        """Answers are accepted while active, or in a recoverable error."""
        self._require_bound(command)
        if self._fatal or self._display_state not in (DisplayState.ACTIVE, DisplayState.ERROR):
            raise InvalidTransition(command, self._display_state.value)

    def _persist(self) -> None:
        """Write the durable record.  Uploads in flight are stored as active."""
        if self._store is None or self._form_id is None:
            return
        state = self._display_state
        if state == DisplayState.UPLOADING:
            state = DisplayState.ACTIVE
        self._store.save(PersistedSession(
            form_id=self._form_id,
            session_id=self._session_id,
            version_id=self.form.version_id,
            current_question_id=self._current_question_id,
            display_state=state,
            responses=self._responses.to_dict(),
            is_test_mode=self._test_mode,
            mode=self._mode,
            last_error=self.last_error,
        ))
