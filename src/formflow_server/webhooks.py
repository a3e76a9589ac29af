"""Completion webhooks.

When a submission is completed the server POSTs every answer to the form's
webhook URL::

    {
      "submissionId": "...",
      "versionId": "...",
      "submissionStatus": "completed",
      "testmode": false,
      "answers": [{"q_id": "Q1", "answer": "yes", "is_additional_field": false}, ...]
    }

``is_additional_field`` marks derived fields and seeded query parameters.
Delivery is best-effort: a failed webhook is logged and never fails the save
request.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import httpx

logger = logging.getLogger(__name__)


def build_webhook_payload(
    submission_id: str,
    version_id: str | None,
    status: str,
    test_mode: bool,
    answers: Mapping[str, Any],
    additional_ids: Iterable[str] = (),
) -> dict[str, Any]:
    additional = set(additional_ids)
    return {
        "submissionId": submission_id,
        "versionId": version_id,
        "submissionStatus": status,
        "testmode": test_mode,
        "answers": [
            {"q_id": qid, "answer": value, "is_additional_field": qid in additional}
            for qid, value in answers.items()
        ],
    }


class WebhookSender:
    """POSTs webhook payloads with a shared ``httpx.AsyncClient``."""

    def __init__(self, *, timeout: float = 10.0, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, url: str, payload: dict[str, Any]) -> bool:
        """Deliver one payload.  Returns False (and logs) on any failure."""
        try:
            response = await self._client.post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Webhook to %s failed: %s", url, exc)
            return False
        if response.is_error:
            logger.error("Webhook to %s returned %d", url, response.status_code)
            return False
        logger.info("Webhook delivered for submission %s", payload.get("submissionId"))
        return True

    async def aclose(self) -> None:
        await self._client.aclose()
