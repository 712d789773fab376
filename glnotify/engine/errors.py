"""Exception hierarchy for the notifier engine.

Specific exceptions for each failure mode. None of them is fatal to
the process: the supervisor's retry loop is the only recovery path for
connectivity loss.
"""
from __future__ import annotations


class NotifierError(Exception):
    """Base exception for all notifier errors."""


class StreamConnectionError(NotifierError, ConnectionError):
    """Transport-level failure. Triggers backoff and reconnect."""
    def __init__(self, reason: str, benign: bool = False):
        self.reason = reason
        # True when the failure was caused by our own close() call.
        self.benign = benign
        super().__init__(reason)


class DecodeError(NotifierError):
    """A single frame could not be decoded. The frame is dropped."""
    def __init__(self, reason: str, frame: str | bytes | None = None):
        self.reason = reason
        self.frame = frame
        super().__init__(f"Cannot decode frame: {reason}")


class ConfigError(NotifierError):
    """Missing or invalid configuration (e.g. empty endpoint)."""
    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class NotifySinkError(NotifierError):
    """The notification sink failed to deliver. Logged, never propagated."""
    def __init__(self, sink: str, reason: str):
        self.sink = sink
        self.reason = reason
        super().__init__(f"Notification sink {sink} failed: {reason}")


class SupervisorStoppedError(NotifierError):
    """start() was called on a supervisor that has been stopped."""
    def __init__(self) -> None:
        super().__init__("Supervisor is stopped and cannot be restarted")
