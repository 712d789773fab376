"""Adapters package - concrete collaborators for the notifier engine.

Notification sinks, liveness indicators and settings providers that
plug into the protocols defined in glnotify.engine.collaborators.
"""
from __future__ import annotations

__all__ = [
    "DesktopNotifier",
    "LogNotifier",
    "ConsoleIndicator",
    "LogIndicator",
    "StaticSettings",
    "YamlSettingsProvider",
    "OverrideSettings",
]

from glnotify.adapters.notifiers import DesktopNotifier, LogNotifier
from glnotify.adapters.indicator import ConsoleIndicator, LogIndicator
from glnotify.adapters.settings import (
    OverrideSettings,
    StaticSettings,
    YamlSettingsProvider,
)
