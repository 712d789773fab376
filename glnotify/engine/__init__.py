"""Notifier engine: ordering, state tracking and notification decisions."""
from .models import (
    Decision,
    Envelope,
    GateState,
    NotificationPayload,
    PipelineEvent,
    PipelineStatus,
    ProjectStatusEntry,
    SupervisorState,
    UserFilterConfig,
)
from .config import NotifierConfig
from .decoder import Decoder
from .sequence_gate import SequenceGate, classify
from .project_tracker import IndicatorController, ProjectStateTracker
from .policy import NotificationPolicy
from .errors import (
    ConfigError,
    DecodeError,
    NotifierError,
    NotifySinkError,
    StreamConnectionError,
    SupervisorStoppedError,
)

__all__ = [
    # Supervisor and transport (lazy import, pulls in aiohttp)
    "Supervisor",
    "WebSocketTransport",
    # Models
    "Decision",
    "Envelope",
    "GateState",
    "NotificationPayload",
    "PipelineEvent",
    "PipelineStatus",
    "ProjectStatusEntry",
    "SupervisorState",
    "UserFilterConfig",
    # Pipeline stages
    "Decoder",
    "SequenceGate",
    "classify",
    "ProjectStateTracker",
    "IndicatorController",
    "NotificationPolicy",
    # Config
    "NotifierConfig",
    # YAML config (lazy import)
    "FileConfig",
    "load_yaml_config",
    # Errors
    "ConfigError",
    "DecodeError",
    "NotifierError",
    "NotifySinkError",
    "StreamConnectionError",
    "SupervisorStoppedError",
]


def __getattr__(name: str):
    if name == "Supervisor":
        from .supervisor import Supervisor
        return Supervisor
    if name == "WebSocketTransport":
        from .transport import WebSocketTransport
        return WebSocketTransport
    if name == "FileConfig":
        from .yaml_config import FileConfig
        return FileConfig
    if name == "load_yaml_config":
        from .yaml_config import load_yaml_config
        return load_yaml_config
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
