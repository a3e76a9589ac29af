"""Tests for session stores (memory and JSON file)."""

import logging

import pytest

from formflow.engine import FormSession
from formflow.models import DisplayState, InteractionMode, PersistedSession
from formflow.storage import JsonFileSessionStore, MemorySessionStore

from helpers.forms import make_form, question


def _record(**overrides):
    data = dict(
        form_id="f1",
        session_id="s1",
        version_id="v1",
        current_question_id="Q2",
        display_state=DisplayState.ACTIVE,
        responses={"Q1": {"url": "u", "name": "n", "size": 3}},
        is_test_mode=True,
        mode=InteractionMode.CONVERSATIONAL,
    )
    data.update(overrides)
    return PersistedSession(**data)


@pytest.fixture(params=["memory", "json"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return MemorySessionStore()
    return JsonFileSessionStore(tmp_path / "sessions")


class TestStores:

    def test_missing_record(self, any_store):
        assert any_store.load("f1") is None

    def test_save_and_load(self, any_store):
        any_store.save(_record())
        loaded = any_store.load("f1")
        assert loaded == _record()
        assert loaded.is_in_progress

    def test_one_record_per_form(self, any_store):
        any_store.save(_record(session_id="old"))
        any_store.save(_record(session_id="new"))
        assert any_store.load("f1").session_id == "new"

    def test_clear(self, any_store):
        any_store.save(_record())
        any_store.clear("f1")
        any_store.clear("f1")
        assert any_store.load("f1") is None

    def test_saved_record_not_in_progress(self, any_store):
        any_store.save(_record(display_state=DisplayState.SAVED))
        assert not any_store.load("f1").is_in_progress

    def test_memory_store_returns_copies(self):
        store = MemorySessionStore()
        store.save(_record())
        store.load("f1").responses["Q9"] = "tampered"
        assert "Q9" not in store.load("f1").responses


class TestJsonFileStore:

    def test_form_id_sanitised_into_filename(self, tmp_path):
        store = JsonFileSessionStore(tmp_path)
        store.save(_record(form_id="../etc/passwd"))
        assert [p.name for p in tmp_path.iterdir()] == ["___etc_passwd.json"]
        assert store.load("../etc/passwd").form_id == "../etc/passwd"

    def test_corrupt_file_treated_as_absent(self, tmp_path, caplog):
        store = JsonFileSessionStore(tmp_path)
        (tmp_path / "f1.json").write_text("{not json")
        with caplog.at_level(logging.WARNING, logger="formflow.storage"):
            assert store.load("f1") is None
        assert "unreadable" in caplog.text

    def test_session_resumes_across_store_instances(self, tmp_path, predicates):
        form = make_form(question("Q1"), question("Q2"))
        first = FormSession(predicates, store=JsonFileSessionStore(tmp_path))
        sid = first.begin_session(form)
        first.start_interaction()
        first.record_answer("Q1", "hello")
        first.advance()

        second = FormSession(predicates, store=JsonFileSessionStore(tmp_path))
        assert second.begin_session(form) == sid
        assert second.current_question_id == "Q2"
        assert second.responses["Q1"] == "hello"
