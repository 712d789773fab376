"""Settings providers - where the endpoint and user filters come from.

The supervisor polls these at every (re)connect, so edits to the
YAML file take effect on the next reconnect or SIGHUP restart.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

from glnotify.engine.collaborators import SettingsProvider
from glnotify.engine.models import UserFilterConfig
from glnotify.engine.yaml_config import default_config_path, parse_settings_section

logger = logging.getLogger(__name__)


@dataclass
class StaticSettings:
    """Fixed in-memory settings."""

    endpoint: str = ""
    filters: UserFilterConfig = field(default_factory=UserFilterConfig)

    def get_filters(self) -> UserFilterConfig:
        return self.filters

    def get_endpoint(self) -> str:
        return self.endpoint


class YamlSettingsProvider:
    """Reads the ``settings:`` section of the YAML config on each poll."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else default_config_path()

    def _load_raw(self) -> dict:
        try:
            if not self.path.exists():
                logger.debug("Settings file not found at %s; using defaults", self.path)
                return {}
            raw = yaml.safe_load(self.path.read_text()) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning(
                "Failed to load settings from %s; using defaults: %s", self.path, exc
            )
            return {}
        if not isinstance(raw, dict):
            logger.warning("Settings file %s is not a mapping; using defaults", self.path)
            return {}
        return raw

    def _load(self) -> tuple[str, UserFilterConfig]:
        section = self._load_raw().get("settings") or {}
        if not isinstance(section, dict):
            logger.warning("'settings' in %s is not a mapping; ignoring", self.path)
            section = {}
        return parse_settings_section(section)

    def get_filters(self) -> UserFilterConfig:
        return self._load()[1]

    def get_endpoint(self) -> str:
        return self._load()[0]

    def save(self, endpoint: str, filters: UserFilterConfig) -> None:
        """Write the ``settings:`` section, keeping the other sections."""
        raw = self._load_raw()
        raw["settings"] = {
            "backend_url": endpoint,
            "namespace": filters.namespace,
            "ignore": filters.ignore_project,
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(yaml.safe_dump(raw, sort_keys=False))
        logger.info("Saved settings to %s", self.path)


class OverrideSettings:
    """Command-line values layered over another provider.

    A value of None leaves the base provider's value in place.
    """

    def __init__(
        self,
        base: SettingsProvider,
        endpoint: str | None = None,
        namespace: str | None = None,
        ignore_project: str | None = None,
    ) -> None:
        self._base = base
        self._endpoint = endpoint
        self._namespace = namespace
        self._ignore_project = ignore_project

    def get_filters(self) -> UserFilterConfig:
        filters = self._base.get_filters()
        if self._namespace is not None:
            filters = replace(filters, namespace=self._namespace.strip())
        if self._ignore_project is not None:
            filters = replace(filters, ignore_project=self._ignore_project.strip())
        return filters

    def get_endpoint(self) -> str:
        if self._endpoint is not None:
            return self._endpoint.strip()
        return self._base.get_endpoint()
