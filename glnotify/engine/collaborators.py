"""Interfaces of the external collaborators the engine calls.

Concrete implementations live in glnotify.adapters; tests use mocks.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import UserFilterConfig


@runtime_checkable
class NotificationSink(Protocol):
    """Delivers a user-facing notification.

    May raise NotifySinkError; the dispatcher logs it and moves on.
    """

    async def send(self, title: str, body: str, metadata: dict[str, str]) -> None:
        ...


@runtime_checkable
class LivenessIndicator(Protocol):
    """Status indicator animated while any pipeline is running."""

    def set_active(self, active: bool) -> None:
        ...


@runtime_checkable
class SettingsProvider(Protocol):
    """User settings, polled at every (re)connect."""

    def get_filters(self) -> UserFilterConfig:
        ...

    def get_endpoint(self) -> str:
        ...
