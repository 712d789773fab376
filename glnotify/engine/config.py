"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via GLNOTIFY_* env vars
or the ``notifier:`` section of the YAML config file.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class NotifierConfig:
    """Runtime tuning for the ingestion engine."""

    # Fixed delay between a connection failure and the next attempt.
    reconnect_delay_seconds: float = 1.0
    # Interval between WebSocket pings. 0 disables the liveness probe.
    heartbeat_interval_seconds: float = 30.0
    connect_timeout_seconds: float = 10.0

    # A "running" entry older than this no longer counts as running.
    running_window_seconds: float = 300.0
    # How often the liveness indicator is re-evaluated without new events.
    indicator_refresh_seconds: float = 5.0

    # Pending notifications waiting for the sink.
    notify_queue_size: int = 100
    # Suppress notifications for events older than this. 0 disables.
    max_event_age_seconds: float = 10.0

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> NotifierConfig:
        """Load configuration from GLNOTIFY_* environment variables."""
        env_vars = {
            k: v for k, v in os.environ.items() if k.startswith("GLNOTIFY_")
        }
        if env_vars:
            logger.info(
                "NotifierConfig.from_env: GLNOTIFY_* env overrides: %s",
                ", ".join(f"{k}={v}" for k, v in sorted(env_vars.items())),
            )
        else:
            logger.debug("NotifierConfig.from_env: no GLNOTIFY_* env vars set, using defaults")

        config = cls(
            reconnect_delay_seconds=float(os.getenv(
                "GLNOTIFY_RECONNECT_DELAY", str(cls.reconnect_delay_seconds)
            )),
            heartbeat_interval_seconds=float(os.getenv(
                "GLNOTIFY_HEARTBEAT_INTERVAL",
                str(cls.heartbeat_interval_seconds),
            )),
            connect_timeout_seconds=float(os.getenv(
                "GLNOTIFY_CONNECT_TIMEOUT", str(cls.connect_timeout_seconds)
            )),
            running_window_seconds=float(os.getenv(
                "GLNOTIFY_RUNNING_WINDOW", str(cls.running_window_seconds)
            )),
            indicator_refresh_seconds=float(os.getenv(
                "GLNOTIFY_INDICATOR_REFRESH",
                str(cls.indicator_refresh_seconds),
            )),
            notify_queue_size=int(os.getenv(
                "GLNOTIFY_QUEUE_SIZE", str(cls.notify_queue_size)
            )),
            max_event_age_seconds=float(os.getenv(
                "GLNOTIFY_MAX_EVENT_AGE", str(cls.max_event_age_seconds)
            )),
            log_level=os.getenv("GLNOTIFY_LOG_LEVEL", cls.log_level),
        )
        logger.info(
            "NotifierConfig.from_env: reconnect_delay=%.2fs heartbeat=%.1fs log_level=%s",
            config.reconnect_delay_seconds,
            config.heartbeat_interval_seconds,
            config.log_level,
        )
        return config
