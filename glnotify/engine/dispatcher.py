"""Fire-and-forget dispatch of notifications to the sink.

The ingestion task must never wait on the OS notification service.
Payloads are queued and a worker task delivers them one at a time.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging

from .collaborators import NotificationSink
from .errors import NotifySinkError
from .models import NotificationPayload

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Async queue bridging the ingestion task to the notification sink."""

    def __init__(self, sink: NotificationSink, maxsize: int = 100) -> None:
        self._sink = sink
        self._queue: asyncio.Queue[NotificationPayload] = asyncio.Queue(
            maxsize=maxsize
        )
        self._worker: asyncio.Task | None = None
        self._closed = False
        self.sent = 0
        self.failed = 0
        self.dropped = 0

    def start(self) -> None:
        """Start the delivery worker on the running loop (idempotent)."""
        if self._closed:
            return
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(
                self._run(), name="glnotify-dispatch"
            )

    def submit(self, payload: NotificationPayload) -> bool:
        """Queue a payload without blocking. Returns False if dropped."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(payload)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.error(
                "Notification queue full, dropping: %s (queue size: %d)",
                payload.title,
                self._queue.qsize(),
            )
            return False
        return True

    async def _run(self) -> None:
        while True:
            payload = await self._queue.get()
            try:
                await self._sink.send(payload.title, payload.body, payload.metadata)
                self.sent += 1
            except NotifySinkError as exc:
                self.failed += 1
                logger.warning("%s", exc)
            except Exception:
                self.failed += 1
                logger.exception("Notification sink error for %r", payload.title)
            finally:
                self._queue.task_done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        """Stop delivering. Queued payloads are discarded."""
        self._closed = True
        if self._worker is not None:
            self._worker.cancel()

    async def wait_closed(self) -> None:
        if self._worker is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
