"""Liveness indicators: show that some pipeline is currently running."""
from __future__ import annotations

import logging

from rich.console import Console
from rich.status import Status
from rich.text import Text

from glnotify.engine.models import SupervisorState

logger = logging.getLogger(__name__)

_STATE_COLORS = {
    SupervisorState.IDLE: "dim",
    SupervisorState.CONNECTING: "yellow",
    SupervisorState.STREAMING: "green",
    SupervisorState.BACKOFF: "red",
    SupervisorState.STOPPED: "red bold",
}


class ConsoleIndicator:
    """rich spinner on stderr while any pipeline is running.

    Also usable as the supervisor's state listener so connection
    changes are printed on the same console.
    """

    def __init__(
        self,
        console: Console | None = None,
        message: str = "Pipelines running",
        spinner: str = "dots",
    ) -> None:
        self.console = console or Console(stderr=True)
        self._message = message
        self._spinner = spinner
        self._status: Status | None = None

    @property
    def active(self) -> bool:
        return self._status is not None

    def set_active(self, active: bool) -> None:
        if active and self._status is None:
            self._status = self.console.status(
                Text(self._message, style="bold yellow"), spinner=self._spinner
            )
            self._status.start()
        elif not active and self._status is not None:
            status, self._status = self._status, None
            status.stop()

    def show_state(self, state: SupervisorState) -> None:
        color = _STATE_COLORS.get(state, "white")
        line = Text()
        line.append(" glnotify ", style="bold")
        line.append(state.value, style=color)
        self.console.print(line)


class LogIndicator:
    """Logs indicator transitions. Used with --no-spinner."""

    def __init__(self) -> None:
        self.active = False

    def set_active(self, active: bool) -> None:
        self.active = active
        logger.info("Pipelines %s", "running" if active else "idle")
