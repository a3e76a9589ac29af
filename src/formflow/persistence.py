"""Answer persistence — intents emitted by the session, drained by a worker.

The session state machine never performs I/O.  Each transition that needs
durability appends a :class:`PersistenceIntent` to an :class:`IntentQueue`;
a :class:`PersistenceWorker` drains the queue asynchronously and hands each
payload to a :class:`~formflow.interfaces.PersistenceTransport`.

Delivery semantics:
  - best-effort, fire-and-forget: failures are logged and dropped
  - no automatic retry
  - intents are sent in issue order, so consecutive saves for the same
    question reach the remote store in the order they were issued
  - the session never awaits delivery; local state stays the source of truth

Intent kinds:
  - ``open``:    submission record created when interaction starts
  - ``partial``: one answer saved (``isPartial=True``, ``in_progress``)
  - ``final``:   full Response Map incl. derived fields (``completed``)
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Literal, Optional

import httpx
from pydantic import BaseModel, Field

from formflow.constants import (
    HTTP_TIMEOUT,
    PERSIST_INTERVAL,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
)
from formflow.interfaces import PersistenceTransport

logger = logging.getLogger(__name__)


class PersistenceIntent(BaseModel):
    """A single persistence command emitted by the session."""

    kind: Literal["open", "partial", "final"]
    session_id: str
    form_id: Optional[str] = None
    version_id: Optional[str] = None
    question_id: Optional[str] = None
    value: Any = None
    all_responses: Optional[dict[str, Any]] = None
    is_partial: bool
    status: Literal["in_progress", "completed"]
    test_mode: bool = False
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> dict[str, Any]:
        """Body for the remote persistence endpoint (camelCase keys)."""
        payload: dict[str, Any] = {
            "sessionId": self.session_id,
            "formId": self.form_id,
            "formVersionId": self.version_id,
            "isPartial": self.is_partial,
            "status": self.status,
            "testMode": self.test_mode,
        }
        if self.kind == "partial":
            payload["questionId"] = self.question_id
            payload["value"] = self.value
        else:
            payload["allResponses"] = self.all_responses or {}
        return payload


class IntentQueue:
    """FIFO of pending intents.  ``put`` is synchronous; ``drain`` empties it."""

    def __init__(self) -> None:
        self._items: deque[PersistenceIntent] = deque()

    def put(self, intent: PersistenceIntent) -> None:
        self._items.append(intent)

    def drain(self) -> list[PersistenceIntent]:
        """Remove and return all queued intents in issue order."""
        items = list(self._items)
        self._items.clear()
        return items

    def __len__(self) -> int:
        return len(self._items)


class PersistenceScheduler:
    """Builds intents for the session and enqueues them.

    Args:
        queue: where intents go; shared with a :class:`PersistenceWorker`
    """

    def __init__(self, queue: IntentQueue | None = None) -> None:
        self.queue = queue if queue is not None else IntentQueue()

    def open_submission(
        self,
        session_id: str,
        *,
        form_id: str | None,
        version_id: str | None,
        test_mode: bool,
    ) -> PersistenceIntent:
        """Create the in-progress submission record with no answers."""
        return self._put(PersistenceIntent(
            kind="open",
            session_id=session_id,
            form_id=form_id,
            version_id=version_id,
            all_responses={},
            is_partial=False,
            status=STATUS_IN_PROGRESS,
            test_mode=test_mode,
        ))

    def save_partial(
        self,
        session_id: str,
        question_id: str,
        value: Any,
        test_mode: bool,
        *,
        form_id: str | None = None,
        version_id: str | None = None,
    ) -> PersistenceIntent:
        """Schedule a best-effort save of one answer."""
        return self._put(PersistenceIntent(
            kind="partial",
            session_id=session_id,
            form_id=form_id,
            version_id=version_id,
            question_id=question_id,
            value=value,
            is_partial=True,
            status=STATUS_IN_PROGRESS,
            test_mode=test_mode,
        ))

    def save_final(
        self,
        session_id: str,
        all_responses: dict[str, Any],
        test_mode: bool,
        *,
        form_id: str | None = None,
        version_id: str | None = None,
    ) -> PersistenceIntent:
        """Schedule the completion save with the full Response Map."""
        return self._put(PersistenceIntent(
            kind="final",
            session_id=session_id,
            form_id=form_id,
            version_id=version_id,
            all_responses=dict(all_responses),
            is_partial=False,
            status=STATUS_COMPLETED,
            test_mode=test_mode,
        ))

    def _put(self, intent: PersistenceIntent) -> PersistenceIntent:
        self.queue.put(intent)
        logger.debug(
            "Queued %s intent for session %s (question=%s)",
            intent.kind, intent.session_id, intent.question_id,
        )
        return intent


class PersistenceWorker:
    """Drains an :class:`IntentQueue` into a transport.

    Args:
        queue: the queue the scheduler writes to
        transport: delivers payloads to the remote store
    """

    def __init__(self, queue: IntentQueue, transport: PersistenceTransport) -> None:
        self._queue = queue
        self._transport = transport
        self._stopped = asyncio.Event()
        self._sending = asyncio.Lock()

    async def run_once(self) -> int:
        """Send every queued intent in order.  Returns the number delivered.

        A failed send is logged and dropped; it never stops later intents.
        Overlapping calls run one after the other, so intents are delivered
        in issue order.
        """
        async with self._sending:
            return await self._deliver(self._queue.drain())

    async def _deliver(self, intents: list[PersistenceIntent]) -> int:
        delivered = 0
        for intent in intents:
            try:
                ok = await self._transport.send(intent.to_payload())
            except Exception as exc:
                logger.warning(
                    "Persistence %s for session %s failed: %s",
                    intent.kind, intent.session_id, exc,
                )
                continue
            if ok:
                delivered += 1
            else:
                logger.warning(
                    "Persistence %s for session %s rejected by remote store",
                    intent.kind, intent.session_id,
                )
        return delivered

    async def run_forever(self, interval: float = PERSIST_INTERVAL) -> None:
        """Drain the queue every ``interval`` seconds until :meth:`stop`."""
        self._stopped.clear()
        while not self._stopped.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
        # Flush whatever was queued between the last drain and stop()
        await self.run_once()

    def stop(self) -> None:
        self._stopped.set()


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------

class InMemoryTransport(PersistenceTransport):
    """Records payloads in a list.  Useful for tests and local runs."""

    def __init__(self, *, fail: bool = False) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = fail

    async def send(self, payload: dict[str, Any]) -> bool:
        if self.fail:
            return False
        self.sent.append(payload)
        return True


class HttpPersistenceTransport(PersistenceTransport):
    """POSTs payloads to ``{base_url}/api/v1/forms/{form_id}/save-answers``.

    A single ``httpx.AsyncClient`` is reused so requests share a connection
    and keep their issue order.

    Args:
        base_url: root URL of the persistence service
        timeout: per-request timeout in seconds
        client: optional pre-built client (tests inject a mock transport)
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = HTTP_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def send(self, payload: dict[str, Any]) -> bool:
        form_id = payload.get("formId")
        if not form_id:
            logger.error("Persistence payload without formId for session %s", payload.get("sessionId"))
            return False
        try:
            response = await self._client.post(
                f"/api/v1/forms/{form_id}/save-answers", json=payload,
            )
        except httpx.HTTPError as exc:
            logger.warning("Persistence request failed: %s", exc)
            return False
        if response.is_error:
            logger.warning(
                "Persistence request returned %d: %s", response.status_code, response.text,
            )
            return False
        return True

    async def aclose(self) -> None:
        await self._client.aclose()
