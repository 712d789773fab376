"""Supervisor: connection lifecycle and retry loop around the transport.

Owns the single ingestion task. Gate and tracker state are created
once per supervisor and survive reconnects; only the transport is
replaced on each attempt.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from urllib.parse import urlparse

from .collaborators import LivenessIndicator, NotificationSink, SettingsProvider
from .config import NotifierConfig
from .decoder import Decoder
from .dispatcher import NotificationDispatcher
from .errors import ConfigError, StreamConnectionError, SupervisorStoppedError
from .lifecycle import validate_transition
from .models import SupervisorState
from .policy import NotificationPolicy
from .processor import IngestionPipeline
from .project_tracker import IndicatorController, ProjectStateTracker
from .sequence_gate import SequenceGate
from .transport import WebSocketTransport

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = {"ws", "wss", "http", "https"}

StateListener = Callable[[SupervisorState], None]


def validate_endpoint(endpoint: str | None) -> str:
    """Return the stripped endpoint or raise ConfigError."""
    value = (endpoint or "").strip()
    if not value:
        raise ConfigError("endpoint", "no notifier service URL configured")
    parsed = urlparse(value)
    if parsed.scheme.lower() not in _ALLOWED_SCHEMES:
        raise ConfigError(
            "endpoint",
            f"unsupported scheme {parsed.scheme!r} in {value!r} "
            f"(expected one of {', '.join(sorted(_ALLOWED_SCHEMES))})",
        )
    if not parsed.netloc:
        raise ConfigError("endpoint", f"missing host in {value!r}")
    return value


class Supervisor:
    """Drives Transport -> Decoder -> Gate -> Tracker -> Policy.

    Usage::

        supervisor = Supervisor(settings, notifier, indicator)
        await supervisor.start()
        ...
        supervisor.stop()          # any thread
        await supervisor.wait_closed()
    """

    def __init__(
        self,
        settings: SettingsProvider,
        notifier: NotificationSink,
        indicator: LivenessIndicator,
        config: NotifierConfig | None = None,
        transport_factory: Callable[[], WebSocketTransport] | None = None,
        state_listener: StateListener | None = None,
    ) -> None:
        self._config = config or NotifierConfig()
        self._settings = settings
        self._transport_factory = transport_factory or self._default_transport
        self._state_listener = state_listener

        self.gate = SequenceGate()
        self.tracker = ProjectStateTracker(
            window_seconds=self._config.running_window_seconds,
        )
        self.dispatcher = NotificationDispatcher(
            notifier, maxsize=self._config.notify_queue_size,
        )
        self.indicator = IndicatorController(indicator, self.tracker)
        self.pipeline = IngestionPipeline(
            decoder=Decoder(),
            gate=self.gate,
            tracker=self.tracker,
            policy=NotificationPolicy(
                max_event_age_seconds=self._config.max_event_age_seconds,
            ),
            dispatcher=self.dispatcher,
            indicator=self.indicator,
        )

        self._state = SupervisorState.IDLE
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task | None = None
        self._refresh_task: asyncio.Task | None = None
        self._stop_requested = False
        self.reconnect_attempts = 0

    def _default_transport(self) -> WebSocketTransport:
        return WebSocketTransport(
            heartbeat_interval=self._config.heartbeat_interval_seconds,
            connect_timeout=self._config.connect_timeout_seconds,
        )

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def config(self) -> NotifierConfig:
        return self._config

    def _transition(self, target: SupervisorState) -> None:
        if self._state is SupervisorState.STOPPED:
            return
        validate_transition(self._state, target)
        logger.debug("Supervisor %s -> %s", self._state.value, target.value)
        self._state = target
        if self._state_listener is not None:
            try:
                self._state_listener(target)
            except Exception:
                logger.exception("State listener failed on %s", target.value)

    # ── Lifecycle ──

    async def start(self, endpoint: str | None = None) -> None:
        """Start (or restart) ingestion.

        *endpoint* pins the URL for this run; when omitted the settings
        provider is polled at every (re)connect. Raises ConfigError
        for a missing or malformed endpoint, without retrying.
        """
        if self._state is SupervisorState.STOPPED:
            raise SupervisorStoppedError()
        validate_endpoint(endpoint if endpoint is not None else self._settings.get_endpoint())

        self._loop = asyncio.get_running_loop()
        if self._task is not None and not self._task.done():
            logger.info("Restarting ingestion, cancelling the current attempt")
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

        self.dispatcher.start()
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(
                self._refresh_indicator_loop(), name="glnotify-indicator"
            )
        self._task = asyncio.create_task(
            self._run(endpoint), name="glnotify-ingest"
        )

    def stop(self) -> None:
        """Stop for good. Safe to call from any thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            self._stop_now()
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._stop_now()
        else:
            loop.call_soon_threadsafe(self._stop_now)

    def _stop_now(self) -> None:
        if self._state is SupervisorState.STOPPED:
            return
        logger.info("Stopping notifier supervisor")
        self._stop_requested = True
        self._transition(SupervisorState.STOPPED)
        for task in (self._task, self._refresh_task):
            if task is not None:
                task.cancel()
        self.dispatcher.close()
        self.indicator.reset()

    async def wait_closed(self) -> None:
        """Wait for the background tasks to finish after stop()."""
        tasks = [t for t in (self._task, self._refresh_task) if t is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self.dispatcher.wait_closed()

    # ── Ingestion loop ──

    async def _run(self, pinned_endpoint: str | None) -> None:
        while not self._stop_requested:
            self._transition(SupervisorState.CONNECTING)
            try:
                endpoint = validate_endpoint(
                    pinned_endpoint
                    if pinned_endpoint is not None
                    else self._settings.get_endpoint()
                )
                self.pipeline.filters = self._settings.get_filters()
                await self._stream(endpoint)
            except StreamConnectionError as exc:
                if exc.benign:
                    logger.debug("Connection closed during shutdown: %s", exc)
                else:
                    logger.error("Connection failed: %s", exc)
            except ConfigError as exc:
                logger.error("Cannot reconnect: %s", exc)
            except Exception:
                logger.exception("Ingestion error, reconnecting")

            if self._stop_requested:
                break
            self._transition(SupervisorState.BACKOFF)
            self.reconnect_attempts += 1
            await asyncio.sleep(self._config.reconnect_delay_seconds)
            logger.info("Retry connect (attempt %d)", self.reconnect_attempts)

    async def _stream(self, endpoint: str) -> None:
        transport = self._transport_factory()
        try:
            await transport.open(endpoint)
            self._transition(SupervisorState.STREAMING)
            logger.info("Listening to %s", endpoint)
            async for frame in transport.frames():
                self.pipeline.process(frame)
            raise StreamConnectionError("stream ended", benign=transport.closing)
        finally:
            await transport.close()

    async def _refresh_indicator_loop(self) -> None:
        """Turn the indicator off once running entries age out."""
        while True:
            try:
                await asyncio.sleep(self._config.indicator_refresh_seconds)
                self.indicator.refresh()
            except asyncio.CancelledError:
                logger.debug("Indicator refresh stopped")
                return
            except Exception:
                logger.exception("Indicator refresh error")
