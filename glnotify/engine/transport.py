"""WebSocket transport for the notifier stream.

One logical connection per instance. Frames are yielded raw; decoding
happens downstream. Every send/receive failure surfaces as
StreamConnectionError so the supervisor can back off and reconnect.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable

import aiohttp

from .errors import StreamConnectionError

logger = logging.getLogger(__name__)

# Errors aiohttp raises when writing to a socket that went away.
_SEND_ERRORS = (OSError, aiohttp.ClientError, RuntimeError)


class WebSocketTransport:
    """aiohttp WebSocket client with a timer-driven liveness probe.

    The probe pings every ``heartbeat_interval`` seconds. A failed ping
    is only logged. If nothing (pong or data) has arrived for two full
    intervals the socket is closed, which ends ``frames()`` with a
    StreamConnectionError.
    """

    def __init__(
        self,
        heartbeat_interval: float = 30.0,
        connect_timeout: float = 10.0,
        session_factory: Callable[[], aiohttp.ClientSession] | None = None,
    ) -> None:
        self._heartbeat_interval = heartbeat_interval
        self._connect_timeout = connect_timeout
        self._session_factory = session_factory
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._probe_task: asyncio.Task | None = None
        self._last_activity = 0.0
        self._probe_timed_out = False
        self._closing = False
        self.endpoint: str | None = None

    @property
    def closing(self) -> bool:
        return self._closing

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    def _new_session(self) -> aiohttp.ClientSession:
        if self._session_factory is not None:
            return self._session_factory()
        timeout = aiohttp.ClientTimeout(
            total=None,
            connect=self._connect_timeout,
            sock_connect=self._connect_timeout,
        )
        return aiohttp.ClientSession(timeout=timeout)

    async def open(self, endpoint: str) -> None:
        """Connect to *endpoint*. Raises StreamConnectionError on failure."""
        if self._ws is not None:
            raise RuntimeError("Transport is already open")
        self._closing = False
        self._probe_timed_out = False
        self.endpoint = endpoint
        self._session = self._new_session()
        try:
            self._ws = await self._session.ws_connect(endpoint, autoping=False)
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
            await self._release_session()
            raise StreamConnectionError(
                f"Cannot connect to {endpoint}: {exc}", benign=self._closing
            ) from exc

        self._last_activity = asyncio.get_running_loop().time()
        if self._heartbeat_interval > 0:
            self._probe_task = asyncio.create_task(
                self._probe_loop(), name="glnotify-probe"
            )
        logger.debug("WebSocket open to %s", endpoint)

    async def frames(self) -> AsyncIterator[str | bytes]:
        """Yield raw text/binary frames until the connection fails."""
        ws = self._ws
        if ws is None:
            raise StreamConnectionError("Transport is not open", benign=self._closing)
        loop = asyncio.get_running_loop()
        while True:
            try:
                msg = await ws.receive()
            except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
                raise StreamConnectionError(
                    f"Receive failed: {exc}", benign=self._closing
                ) from exc
            self._last_activity = loop.time()

            if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                yield msg.data
            elif msg.type == aiohttp.WSMsgType.PING:
                try:
                    await ws.pong(msg.data)
                except _SEND_ERRORS as exc:
                    logger.warning("Failed to answer ping: %s", exc)
            elif msg.type == aiohttp.WSMsgType.PONG:
                continue
            elif msg.type == aiohttp.WSMsgType.ERROR:
                raise StreamConnectionError(
                    f"WebSocket error: {ws.exception()}", benign=self._closing
                )
            else:
                if self._probe_timed_out:
                    reason = "liveness probe unanswered"
                else:
                    reason = f"connection closed (code {ws.close_code})"
                raise StreamConnectionError(reason, benign=self._closing)

    async def _probe_loop(self) -> None:
        interval = self._heartbeat_interval
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(interval)
            ws = self._ws
            if ws is None or ws.closed:
                return
            silent_for = loop.time() - self._last_activity
            if silent_for > 2 * interval:
                logger.warning(
                    "No traffic from %s for %.1fs, closing silent connection",
                    self.endpoint, silent_for,
                )
                self._probe_timed_out = True
                with contextlib.suppress(*_SEND_ERRORS):
                    await ws.close(code=aiohttp.WSCloseCode.GOING_AWAY)
                return
            try:
                await ws.ping()
            except _SEND_ERRORS as exc:
                logger.warning("Liveness probe to %s failed: %s", self.endpoint, exc)

    async def close(self) -> None:
        """Cancel pending receive and release the connection. Idempotent."""
        self._closing = True
        probe, self._probe_task = self._probe_task, None
        if probe is not None:
            probe.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await probe
        ws, self._ws = self._ws, None
        if ws is not None and not ws.closed:
            try:
                await ws.close()
            except _SEND_ERRORS as exc:
                logger.debug("Error while closing WebSocket: %s", exc)
        await self._release_session()

    async def _release_session(self) -> None:
        session, self._session = self._session, None
        if session is not None and not session.closed:
            await session.close()
