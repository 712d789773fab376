"""Supervisor lifecycle state machine.

Defines valid transitions and enforces them. Invalid transitions
raise ValueError rather than silently proceeding.

State Diagram:

    IDLE ──> CONNECTING ──> STREAMING ──> BACKOFF ──> CONNECTING ...
                 │                           ▲
                 └───────── open failed ─────┘

    CONNECTING / STREAMING ──> CONNECTING  (restart)
    Any state ──> STOPPED  (explicit stop, terminal)
"""
from __future__ import annotations

from .models import SupervisorState

VALID_TRANSITIONS: dict[SupervisorState, set[SupervisorState]] = {
    SupervisorState.IDLE: {
        SupervisorState.CONNECTING,
        SupervisorState.STOPPED,
    },
    SupervisorState.CONNECTING: {
        SupervisorState.STREAMING,
        SupervisorState.BACKOFF,
        SupervisorState.CONNECTING,  # restart with new endpoint
        SupervisorState.STOPPED,
    },
    SupervisorState.STREAMING: {
        SupervisorState.BACKOFF,
        SupervisorState.CONNECTING,  # restart with new endpoint
        SupervisorState.STOPPED,
    },
    SupervisorState.BACKOFF: {
        SupervisorState.CONNECTING,
        SupervisorState.STOPPED,
    },
    SupervisorState.STOPPED: set(),
}


def validate_transition(current: SupervisorState, target: SupervisorState) -> None:
    """Validate a state transition. Raises ValueError if invalid."""
    allowed = VALID_TRANSITIONS.get(current, set())
    if target not in allowed:
        allowed_str = ", ".join(sorted(s.value for s in allowed)) or "none (terminal)"
        raise ValueError(
            f"Invalid state transition: {current.value} -> {target.value}. "
            f"Allowed from {current.value}: {allowed_str}"
        )
