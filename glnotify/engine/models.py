"""Core data models for the notifier engine.

All dataclasses, enums, and type aliases. Single source of truth
to avoid circular imports.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PipelineStatus(str, Enum):
    """GitLab pipeline statuses. UNKNOWN covers anything newer."""
    CREATED = "created"
    WAITING_FOR_RESOURCE = "waiting_for_resource"
    PREPARING = "preparing"
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    SKIPPED = "skipped"
    MANUAL = "manual"
    SCHEDULED = "scheduled"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str) -> PipelineStatus:
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class Decision(str, Enum):
    """SequenceGate classification of an envelope."""
    ACCEPT = "accept"
    REPLAY = "replay"
    STALE = "stale"


class SupervisorState(str, Enum):
    """Supervisor lifecycle states. See lifecycle.py for transition rules."""
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    BACKOFF = "backoff"
    STOPPED = "stopped"


@dataclass(frozen=True)
class PipelineEvent:
    """One pipeline-status change for one project."""
    project_id: int
    project_name: str
    namespace: str
    status: PipelineStatus
    raw_status: str
    commit_message: str
    project_url: str
    pipeline_id: int
    timestamp: datetime


@dataclass(frozen=True)
class Envelope:
    """A decoded inbound frame.

    ``inner_event`` is None for the replay-complete marker the server
    sends once historical catch-up is done.
    """
    seq: int
    epoch: int
    received_at: datetime
    version: int = 0
    inner_event: PipelineEvent | None = None

    @property
    def is_marker(self) -> bool:
        return self.inner_event is None


@dataclass(frozen=True)
class GateState:
    """Ordering state of the SequenceGate.

    Reset only when a strictly greater epoch is observed.
    """
    current_epoch: int = 0
    latest_accepted_seq: int = 0
    replay_watermark: int | None = None


@dataclass(frozen=True)
class ProjectStatusEntry:
    project_name: str
    status: PipelineStatus
    last_updated_at: datetime


@dataclass(frozen=True)
class UserFilterConfig:
    """User notification filters. Empty string means "not set"."""
    namespace: str = ""
    ignore_project: str = ""


@dataclass(frozen=True)
class NotificationPayload:
    """What gets handed to the notification sink."""
    title: str
    body: str
    project_url: str
    pipeline_id: int

    @property
    def metadata(self) -> dict[str, str]:
        return {
            "projectUrl": self.project_url,
            "pipelineId": str(self.pipeline_id),
        }
