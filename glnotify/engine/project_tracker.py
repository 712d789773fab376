"""Per-project pipeline status and the "anything running?" signal."""
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from .models import PipelineEvent, PipelineStatus, ProjectStatusEntry

if TYPE_CHECKING:
    from .collaborators import LivenessIndicator

logger = logging.getLogger(__name__)

DEFAULT_RUNNING_WINDOW_SECONDS = 300.0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProjectStateTracker:
    """Latest known status per project name.

    Last write wins by acceptance order, not by event timestamp. A
    "running" entry stops counting once it is older than the window,
    so a lost "success" event cannot pin the indicator on forever.
    """

    def __init__(
        self,
        window_seconds: float = DEFAULT_RUNNING_WINDOW_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._window = timedelta(seconds=window_seconds)
        self._clock = clock
        self._entries: dict[str, ProjectStatusEntry] = {}

    def apply(self, event: PipelineEvent) -> None:
        self._entries[event.project_name] = ProjectStatusEntry(
            project_name=event.project_name,
            status=event.status,
            last_updated_at=self._clock(),
        )
        logger.debug("Project %s is now %s", event.project_name, event.raw_status)

    def _is_running(self, entry: ProjectStatusEntry, now: datetime) -> bool:
        return (
            entry.status is PipelineStatus.RUNNING
            and now - entry.last_updated_at < self._window
        )

    def is_any_running(self) -> bool:
        now = self._clock()
        return any(self._is_running(e, now) for e in self._entries.values())

    def running_projects(self) -> list[str]:
        now = self._clock()
        return sorted(
            name for name, entry in self._entries.items()
            if self._is_running(entry, now)
        )

    def snapshot(self) -> dict[str, ProjectStatusEntry]:
        """Copy of the mapping for readers outside the ingestion task."""
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class IndicatorController:
    """Toggles the liveness indicator on is_any_running() transitions only."""

    def __init__(
        self,
        indicator: LivenessIndicator,
        tracker: ProjectStateTracker,
    ) -> None:
        self._indicator = indicator
        self._tracker = tracker
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def refresh(self) -> None:
        running = self._tracker.is_any_running()
        if running != self._active:
            self._set(running)

    def reset(self) -> None:
        """Turn the indicator off (used on shutdown)."""
        if self._active:
            self._set(False)

    def _set(self, active: bool) -> None:
        self._active = active
        logger.info("Liveness indicator %s", "on" if active else "off")
        try:
            self._indicator.set_active(active)
        except Exception:
            logger.exception("Liveness indicator failed to switch %s", "on" if active else "off")
