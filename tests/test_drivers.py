"""Tests for the wizard and conversational drivers.

Both drivers run on the shared ``session`` fixture (predicate language,
in-memory store, inspectable intent queue).
"""

import pytest

from formflow.drivers import ConversationalDriver, WizardDriver
from formflow.errors import UploadRejected
from formflow.interfaces import FileUploader
from formflow.models import DisplayState, FileReference

from helpers.forms import hide_if, make_form, question, show_if


class FakeUploader(FileUploader):
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def upload(self, content, filename, *, form_id, session_id, question_id):
        self.calls.append((filename, form_id, session_id, question_id))
        if self.error is not None:
            raise self.error
        return FileReference(url=f"https://files/{filename}", name=filename, size=len(content))


@pytest.fixture
def survey():
    return make_form(
        question("mood", "singleChoice"),
        question("why", "text", rules=[show_if('mood = "bad"')]),
        question("topics", "multipleChoice"),
        question("score", "rating"),
        question("cv", "fileUpload"),
    )


# =====================================================================
# Wizard
# =====================================================================

class TestWizardDriver:

    @pytest.fixture
    def wizard(self, session, survey):
        session.begin_session(survey)
        return WizardDriver(session)

    def test_start_renders_first_question(self, wizard):
        assert wizard.start().id == "mood"
        assert wizard.index == 0

    def test_single_choice_auto_advances(self, wizard):
        wizard.start()
        assert wizard.answer("mood", "good").id == "topics"

    def test_multi_step_type_waits_for_continue(self, wizard):
        wizard.start()
        wizard.answer("mood", "bad")
        assert wizard.current().id == "why"
        assert wizard.answer("why", "slow").id == "why"
        assert wizard.continue_().id == "topics"
        assert wizard.answer("topics", ["a", "b"]).id == "topics"
        assert wizard.continue_().id == "score"

    def test_rating_auto_advances(self, wizard):
        wizard.start()
        wizard.answer("mood", "good")
        wizard.continue_()
        assert wizard.answer("score", 4).id == "cv"

    def test_back_uses_visibility(self, wizard):
        wizard.start()
        wizard.answer("mood", "good")
        assert wizard.back().id == "mood"

    def test_changed_answer_rehides_question(self, wizard):
        """Going back and changing an answer re-resolves visibility."""
        wizard.start()
        wizard.answer("mood", "bad")
        assert wizard.current().id == "why"
        wizard.back()
        assert wizard.answer("mood", "good").id == "topics"

    def test_progress(self, wizard, survey):
        assert wizard.progress() == 0.0
        wizard.start()
        assert wizard.progress() == pytest.approx(20.0)
        wizard.answer("mood", "good")
        assert wizard.progress() == pytest.approx(60.0)

    def test_progress_full_when_saved(self, session):
        session.begin_session(make_form(question("only", "rating")))
        wizard = WizardDriver(session)
        wizard.start()
        assert wizard.answer("only", 5) is None
        assert session.display_state == DisplayState.SAVED
        assert wizard.progress() == 100.0

    def test_rejected_answer_stays_put(self, session):
        session.begin_session(make_form(question("a", "singleChoice", required=True), question("b")))
        wizard = WizardDriver(session)
        wizard.start()
        assert wizard.answer("a", None).id == "a"
        assert session.display_state == DisplayState.ERROR

    def test_continue_refuses_unanswered_required_question(self, session):
        session.begin_session(make_form(question("topics", "multipleChoice", required=True), question("next")))
        wizard = WizardDriver(session)
        wizard.start()

        assert wizard.continue_().id == "topics"
        assert session.current_question_id == "topics"
        assert session.display_state == DisplayState.ERROR
        assert "required" in session.last_error
        assert session.responses == {}

    def test_continue_skips_unanswered_optional_question(self, wizard):
        wizard.start()
        wizard.answer("mood", "good")
        assert wizard.continue_().id == "score"

    def test_continue_while_in_error_stays_put(self, session):
        session.begin_session(make_form(question("topics", "multipleChoice", required=True), question("next")))
        wizard = WizardDriver(session)
        wizard.start()
        assert wizard.answer("topics", []).id == "topics"
        assert session.display_state == DisplayState.ERROR

        assert wizard.continue_().id == "topics"
        assert session.display_state == DisplayState.ERROR

        wizard.answer("topics", ["a"])
        assert wizard.continue_().id == "next"

    def test_restart_returns_to_first_page(self, wizard, session):
        sid = session.session_id
        wizard.start()
        wizard.answer("mood", "good")
        assert wizard.restart().id == "mood"
        assert session.session_id == sid
        assert session.responses == {}


class TestWizardFirstQuestion:
    """The first question is resolved for visibility when rendered."""

    def test_hidden_first_question_skipped_on_render(self, session, queue):
        form = make_form(
            question("ref_only", rules=[show_if('ref = "partner"')]),
            question("name"),
        )
        session.begin_session(form)
        wizard = WizardDriver(session)
        assert wizard.start().id == "name"
        assert session.current_question_id == "name"

    def test_seeded_answer_reveals_first_question(self, session):
        form = make_form(
            question("ref_only", rules=[hide_if('ref = "direct"')]),
            question("ref"),
        )
        session.begin_session(form, initial_responses={"ref": "direct"})
        wizard = WizardDriver(session)
        assert wizard.start().id == "ref"


class TestWizardUpload:

    @pytest.fixture
    def at_upload(self, session):
        session.begin_session(make_form(question("cv", "fileUpload"), question("end")))
        wizard = WizardDriver(session)
        wizard.start()
        return wizard

    @pytest.mark.asyncio
    async def test_upload_success_advances(self, at_upload, session):
        uploader = FakeUploader()
        nxt = await at_upload.upload("cv", b"%PDF", "cv.pdf", uploader)

        assert nxt.id == "end"
        assert session.responses["cv"] == {"url": "https://files/cv.pdf", "name": "cv.pdf", "size": 4}
        assert uploader.calls == [("cv.pdf", "f1", session.session_id, "cv")]

    @pytest.mark.asyncio
    async def test_upload_failure_sets_error(self, at_upload, session):
        uploader = FakeUploader(error=UploadRejected("Invalid file type"))
        current = await at_upload.upload("cv", b"MZ", "virus.exe", uploader)

        assert current.id == "cv"
        assert session.display_state == DisplayState.ERROR
        assert "Invalid file type" in session.last_error
        assert "cv" not in session.responses


# =====================================================================
# Conversational
# =====================================================================

class TestConversationalDriver:

    @pytest.fixture
    def chat(self, session, survey):
        session.begin_session(survey, mode="conversational")
        driver = ConversationalDriver(session)
        driver.start()
        return driver

    def test_start_asks_first_question(self, chat):
        assert chat.last_presented == "mood"
        assert chat.turns[-1].role == "assistant"
        assert chat.turns[-1].question_id == "mood"

    def test_present_is_idempotent(self, chat):
        chat.present()
        chat.present()
        assert len(chat.turns) == 1

    def test_submit_records_and_moves_on(self, chat, session):
        assert chat.submit("mood", "good") is True
        assert session.responses["mood"] == "good"
        assert session.current_question_id == "topics"
        assert [t.role for t in chat.turns] == ["assistant", "user", "assistant"]

    def test_stale_trigger_discarded(self, chat, session):
        assert chat.submit("score", 5) is False
        assert "score" not in session.responses
        assert session.current_question_id == "mood"
        assert len(chat.turns) == 1

    def test_never_auto_advances(self, chat, session):
        """Answers only arrive through submit; nothing moves on its own."""
        chat.present()
        assert session.current_question_id == "mood"

    def test_multi_step_type_still_waits_for_its_own_trigger(self, chat, session):
        chat.submit("mood", "good")
        assert chat.submit("topics", ["a"]) is True
        assert session.current_question_id == "score"

    def test_validation_failure_keeps_question(self, session):
        session.begin_session(make_form(question("email", required=True), question("next")))
        chat = ConversationalDriver(session)
        chat.start()
        assert chat.submit("email", "") is False
        assert session.display_state == DisplayState.ERROR
        assert chat.submit("email", "a@b.c") is True
        assert session.current_question_id == "next"

    def test_completion(self, session):
        session.begin_session(make_form(question("only")))
        chat = ConversationalDriver(session)
        chat.start()
        assert chat.submit("only", "done") is True
        assert session.display_state == DisplayState.SAVED
        assert chat.present() is None


class TestSelectionTriggers:

    @pytest.fixture
    def chat(self, session, survey):
        session.begin_session(survey)
        driver = ConversationalDriver(session)
        driver.start()
        return driver

    def test_queue_and_consume(self, chat, session):
        chat.queue_trigger("mood", "bad", "Bad, honestly")
        assert chat.pending_trigger is not None
        assert chat.consume_trigger() is True
        assert chat.pending_trigger is None
        assert session.responses["mood"] == "bad"
        assert chat.turns[1].text == "Bad, honestly"
        assert session.current_question_id == "why"

    def test_consume_without_trigger(self, chat):
        assert chat.consume_trigger() is False

    def test_stale_trigger_dropped_on_consume(self, chat, session):
        chat.queue_trigger("mood", "good", "Good")
        chat.submit("mood", "bad")
        assert chat.consume_trigger() is False
        assert session.responses["mood"] == "bad"

    def test_restart_clears_transcript_and_trigger(self, chat, session):
        chat.queue_trigger("mood", "good", "Good")
        chat.submit("mood", "good")
        chat.restart()
        assert chat.pending_trigger is None
        assert [t.question_id for t in chat.turns] == ["mood"]
        assert session.responses == {}
