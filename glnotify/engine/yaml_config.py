"""YAML configuration loader.

Loads a single YAML file holding engine tuning and user settings.
Env vars (GLNOTIFY_*) provide the base values; the ``notifier:``
section overrides them.

Example YAML:
    notifier:
      reconnect_delay_seconds: 1
      heartbeat_interval_seconds: 30
      running_window_seconds: 300
      log_level: INFO

    settings:
      backend_url: wss://notifier.example.com/ws
      namespace: my-group
      ignore: noisy-project
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .config import NotifierConfig
from .models import UserFilterConfig

logger = logging.getLogger(__name__)


def default_config_path() -> Path:
    """Return the per-user config path (~/.glnotify/config.yaml)."""
    return Path.home() / ".glnotify" / "config.yaml"


@dataclass
class FileConfig:
    """Complete parsed YAML configuration."""
    notifier: NotifierConfig
    endpoint: str = ""
    filters: UserFilterConfig = field(default_factory=UserFilterConfig)


def _parse_notifier(raw: dict, base: NotifierConfig) -> NotifierConfig:
    return NotifierConfig(
        reconnect_delay_seconds=float(raw.get(
            "reconnect_delay_seconds", base.reconnect_delay_seconds
        )),
        heartbeat_interval_seconds=float(raw.get(
            "heartbeat_interval_seconds", base.heartbeat_interval_seconds
        )),
        connect_timeout_seconds=float(raw.get(
            "connect_timeout_seconds", base.connect_timeout_seconds
        )),
        running_window_seconds=float(raw.get(
            "running_window_seconds", base.running_window_seconds
        )),
        indicator_refresh_seconds=float(raw.get(
            "indicator_refresh_seconds", base.indicator_refresh_seconds
        )),
        notify_queue_size=int(raw.get(
            "notify_queue_size", base.notify_queue_size
        )),
        max_event_age_seconds=float(raw.get(
            "max_event_age_seconds", base.max_event_age_seconds
        )),
        log_level=str(raw.get("log_level", base.log_level)),
    )


def parse_settings_section(raw: dict) -> tuple[str, UserFilterConfig]:
    """Extract (endpoint, filters) from a ``settings:`` mapping."""
    endpoint = str(raw.get("backend_url") or "").strip()
    filters = UserFilterConfig(
        namespace=str(raw.get("namespace") or "").strip(),
        ignore_project=str(raw.get("ignore") or "").strip(),
    )
    return endpoint, filters


def load_yaml_config(
    path: str | Path,
    base: NotifierConfig | None = None,
) -> FileConfig:
    """Load and parse a YAML config file.

    Raises FileNotFoundError / yaml.YAMLError so the caller decides
    whether a broken file is fatal.
    """
    path = Path(path)
    logger.info(
        "load_yaml_config: attempting to load config from %s (exists=%s)",
        path, path.exists()
    )
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error(
            "load_yaml_config: config file not found at %s (absolute path: %s)",
            path, path.absolute()
        )
        raise
    except yaml.YAMLError as exc:
        logger.error("load_yaml_config: YAML parse error in %s: %s", path, exc)
        raise

    if not isinstance(raw, dict):
        logger.warning(
            "load_yaml_config: %s does not contain a mapping; using defaults", path
        )
        raw = {}

    top_sections = sorted(raw.keys())
    logger.info(
        "Parsed YAML config %s, sections: %s",
        path.name, ", ".join(top_sections) if top_sections else "(empty)",
    )

    notifier = _parse_notifier(
        raw.get("notifier") or {}, base or NotifierConfig()
    )
    endpoint, filters = parse_settings_section(raw.get("settings") or {})
    return FileConfig(notifier=notifier, endpoint=endpoint, filters=filters)
