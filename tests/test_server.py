"""Tests for the persistence API server.

The database is replaced by an in-memory repository swapped into the
recorder (``recorder._repo``), and outgoing webhooks go through
``httpx.MockTransport``.  The lifespan does not run: dependencies are
overridden on the app instead.
"""

import json
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from formflow.storage import FormStore
from formflow_db.models.enums import SubmissionStatus
from formflow_server.app import create_app
from formflow_server.config import ServerSettings
from formflow_server.dependencies import get_db, get_recorder
from formflow_server.recorder import AnswerRecorder
from formflow_server.webhooks import WebhookSender, build_webhook_payload

FORMS_DIR = Path(__file__).parent / "fixtures" / "forms"


class MockRepository:
    """In-memory stand-in for SubmissionRepository."""

    def __init__(self):
        self.submissions: dict[str, SimpleNamespace] = {}
        self.answers: dict[str, dict[str, object]] = {}

    async def get_submission(self, db, submission_id):
        return self.submissions.get(submission_id)

    async def upsert_submission(self, db, *, submission_id, form_id, version_id=None,
                                status=SubmissionStatus.IN_PROGRESS, test_mode=False):
        row = self.submissions.get(submission_id)
        if row is None:
            row = SimpleNamespace(
                submission_id=submission_id, form_id=form_id, version_id=version_id,
                status=status, test_mode=test_mode,
            )
            self.submissions[submission_id] = row
        else:
            if version_id is not None:
                row.version_id = version_id
            if row.status != SubmissionStatus.COMPLETED:
                row.status = status
            row.test_mode = test_mode
        return row

    async def upsert_answer(self, db, submission_id, question_id, value):
        self.answers.setdefault(submission_id, {})[question_id] = value

    async def upsert_answers(self, db, submission_id, answers):
        for qid, value in answers.items():
            await self.upsert_answer(db, submission_id, qid, value)

    async def list_answers(self, db, submission_id):
        return [
            SimpleNamespace(question_id=qid, answer_value=value)
            for qid, value in self.answers.get(submission_id, {}).items()
        ]


class WebhookLog:
    """MockTransport handler that records every webhook request."""

    def __init__(self, status: int = 200):
        self.status = status
        self.requests: list[httpx.Request] = []

    def __call__(self, request):
        self.requests.append(request)
        return httpx.Response(self.status)

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]


def _recorder(hooks: WebhookLog, **kwargs) -> AnswerRecorder:
    forms = FormStore(FORMS_DIR)
    forms.load()
    sender = WebhookSender(client=httpx.AsyncClient(transport=httpx.MockTransport(hooks)))
    recorder = AnswerRecorder(forms, sender, **kwargs)
    recorder._repo = MockRepository()
    return recorder


def _client(recorder: AnswerRecorder) -> TestClient:
    app = create_app(ServerSettings())

    async def fake_db():
        yield AsyncMock()

    app.dependency_overrides[get_db] = fake_db
    app.dependency_overrides[get_recorder] = lambda: recorder
    return TestClient(app)


@pytest.fixture
def hooks():
    return WebhookLog()


@pytest.fixture
def recorder(hooks):
    return _recorder(hooks)


@pytest.fixture
def client(recorder):
    return _client(recorder)


def _save(client, form_id, body):
    return client.post(f"/api/v1/forms/{form_id}/save-answers", json=body)


# =====================================================================
# save-answers
# =====================================================================

class TestPartialSave:

    def test_partial_save_upserts_one_answer(self, client, recorder):
        resp = _save(client, "customer-feedback", {
            "sessionId": "s1", "formVersionId": "v3", "isPartial": True,
            "status": "in_progress", "testMode": False,
            "questionId": "satisfied", "value": "no",
        })
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "submissionId": "s1", "isPartial": True}
        assert recorder._repo.answers["s1"] == {"satisfied": "no"}
        assert recorder._repo.submissions["s1"].status == SubmissionStatus.IN_PROGRESS

    def test_last_write_wins(self, client, recorder):
        for value in ("yes", "no"):
            _save(client, "customer-feedback", {
                "sessionId": "s1", "isPartial": True, "questionId": "satisfied", "value": value,
            })
        assert recorder._repo.answers["s1"]["satisfied"] == "no"

    def test_legacy_field_names_accepted(self, client, recorder):
        resp = _save(client, "customer-feedback", {
            "submissionId": "s2", "isPartial": True,
            "questionId": "score", "answerValue": 4,
        })
        assert resp.status_code == 200
        assert recorder._repo.answers["s2"] == {"score": 4}

    def test_null_value_is_a_value(self, client, recorder):
        resp = _save(client, "customer-feedback", {
            "sessionId": "s1", "isPartial": True, "questionId": "reason", "value": None,
        })
        assert resp.status_code == 200
        assert recorder._repo.answers["s1"] == {"reason": None}

    @pytest.mark.parametrize("body", [
        {"sessionId": "s1", "isPartial": True, "value": "x"},
        {"sessionId": "s1", "isPartial": True, "questionId": "reason"},
    ])
    def test_missing_fields_rejected(self, client, body):
        resp = _save(client, "customer-feedback", body)
        assert resp.status_code == 400

    def test_missing_session_id_is_422(self, client):
        resp = _save(client, "customer-feedback", {"isPartial": True, "questionId": "q", "value": 1})
        assert resp.status_code == 422


class TestFinalSave:

    def test_completion_fires_webhook(self, client, recorder, hooks):
        resp = _save(client, "customer-feedback", {
            "sessionId": "s1", "formVersionId": "v3", "isPartial": False,
            "status": "completed", "testMode": True,
            "allResponses": {"satisfied": "yes", "score": 5, "score_doubled": 10, "utm_source": "ads"},
        })
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"
        assert recorder._repo.submissions["s1"].status == SubmissionStatus.COMPLETED

        assert [str(r.url) for r in hooks.requests] == ["https://hooks.example.com/feedback"]
        payload = hooks.payloads[0]
        assert payload["submissionId"] == "s1"
        assert payload["versionId"] == "v3"
        assert payload["submissionStatus"] == "completed"
        assert payload["testmode"] is True
        assert {a["q_id"]: a["is_additional_field"] for a in payload["answers"]} == {
            "satisfied": False, "score": False, "score_doubled": True, "utm_source": True,
        }

    def test_status_defaults_to_completed(self, client, hooks):
        resp = _save(client, "customer-feedback", {
            "sessionId": "s1", "isPartial": False, "allResponses": {"satisfied": "yes"},
        })
        assert resp.json()["status"] == "completed"
        assert len(hooks.requests) == 1

    def test_opening_save_stays_in_progress(self, client, recorder, hooks):
        resp = _save(client, "customer-feedback", {
            "sessionId": "s1", "isPartial": False, "allResponses": {},
        })
        assert resp.json()["status"] == "in_progress"
        assert recorder._repo.submissions["s1"].status == SubmissionStatus.IN_PROGRESS
        assert hooks.requests == []

    def test_completed_never_downgraded(self, client, recorder):
        _save(client, "customer-feedback", {
            "sessionId": "s1", "isPartial": False, "allResponses": {"satisfied": "yes"},
        })
        _save(client, "customer-feedback", {
            "sessionId": "s1", "isPartial": True, "questionId": "score", "value": 2,
        })
        assert recorder._repo.submissions["s1"].status == SubmissionStatus.COMPLETED

    def test_unknown_status_rejected(self, client):
        resp = _save(client, "customer-feedback", {
            "sessionId": "s1", "isPartial": False, "status": "archived",
            "allResponses": {"satisfied": "yes"},
        })
        assert resp.status_code == 400

    def test_webhook_failure_does_not_fail_save(self):
        hooks = WebhookLog(status=503)
        resp = _save(_client(_recorder(hooks)), "customer-feedback", {
            "sessionId": "s1", "isPartial": False, "allResponses": {"satisfied": "yes"},
        })
        assert resp.status_code == 200
        assert len(hooks.requests) == 1

    def test_form_without_webhook_uses_default(self, hooks):
        recorder = _recorder(hooks, default_webhook_url="https://hooks.example.com/default")
        _save(_client(recorder), "signup", {
            "sessionId": "s9", "isPartial": False, "allResponses": {"name": "Ann"},
        })
        assert [str(r.url) for r in hooks.requests] == ["https://hooks.example.com/default"]

    def test_no_webhook_configured(self, client, hooks):
        _save(client, "signup", {
            "sessionId": "s9", "isPartial": False, "allResponses": {"name": "Ann"},
        })
        assert hooks.requests == []


# =====================================================================
# Submission reads
# =====================================================================

class TestGetSubmission:

    def test_returns_status_and_answers(self, client):
        _save(client, "customer-feedback", {
            "sessionId": "s1", "formVersionId": "v3", "isPartial": True,
            "questionId": "satisfied", "value": "no",
        })
        resp = client.get("/api/v1/forms/customer-feedback/submissions/s1")
        assert resp.status_code == 200
        assert resp.json() == {
            "submissionId": "s1",
            "formId": "customer-feedback",
            "versionId": "v3",
            "status": "in_progress",
            "testMode": False,
            "answers": {"satisfied": "no"},
        }

    def test_unknown_submission_404(self, client):
        resp = client.get("/api/v1/forms/customer-feedback/submissions/nope")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Resource not found"}

    def test_submission_of_other_form_404(self, client):
        _save(client, "signup", {"sessionId": "s1", "isPartial": True, "questionId": "name", "value": "A"})
        resp = client.get("/api/v1/forms/customer-feedback/submissions/s1")
        assert resp.status_code == 404


# =====================================================================
# Recorder and payload helpers
# =====================================================================

class TestRecorder:

    @pytest.mark.asyncio
    async def test_final_save_writes_every_answer(self, recorder, hooks):
        db = AsyncMock()
        result = await recorder.save_final(
            db, form_id="customer-feedback", submission_id="s1",
            responses={"satisfied": "no", "reason": "slow"},
        )
        assert result == {"success": True, "submissionId": "s1", "isPartial": False, "status": "completed"}
        assert recorder._repo.answers["s1"] == {"satisfied": "no", "reason": "slow"}

    def test_webhook_payload_shape(self):
        payload = build_webhook_payload("s1", None, "completed", False, {"a": 1, "d": 2}, {"d"})
        assert payload == {
            "submissionId": "s1",
            "versionId": None,
            "submissionStatus": "completed",
            "testmode": False,
            "answers": [
                {"q_id": "a", "answer": 1, "is_additional_field": False},
                {"q_id": "d", "answer": 2, "is_additional_field": True},
            ],
        }

    @pytest.mark.asyncio
    async def test_sender_network_error_returns_false(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        sender = WebhookSender(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        assert await sender.send("https://hooks.example.com/x", {"submissionId": "s1"}) is False
        await sender.aclose()
