"""Configuration sources for the FSO Tables client.

The editor host owns configuration; the client only ever asks for a value
by its dotted setting key (``fsoTables.serverPath``).  Every source here is
read fresh on each lookup so a changed value takes effect on the next
session start.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Protocol

import yaml

from fso_tables import config
from fso_tables.errors import ConfigurationError

logger = logging.getLogger("fso_tables.settings")


class SettingsSource(Protocol):
    """Anything that can resolve a dotted setting key to a value."""

    def get(self, key: str) -> Any:
        ...


class StaticSettings:
    """In-memory settings, mutable between lookups."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})

    def get(self, key: str) -> Any:
        return self._values.get(key)

    def update(self, key: str, value: Any) -> None:
        self._values[key] = value


class EnvironmentSettings:
    """Settings backed by environment variables.

    Args:
        mapping: Setting key -> environment variable name.
    """

    DEFAULT_MAPPING: dict[str, str] = {
        config.SERVER_PATH_SETTING: config.SERVER_PATH_ENV,
    }

    def __init__(self, mapping: Mapping[str, str] | None = None) -> None:
        self._mapping = dict(mapping or self.DEFAULT_MAPPING)

    def get(self, key: str) -> Any:
        env_name = self._mapping.get(key)
        if env_name is None:
            return None
        value = os.environ.get(env_name)
        return value or None


class YamlSettings:
    """Settings stored in a YAML file, re-read on every lookup.

    Both layouts are accepted::

        fsoTables.serverPath: /opt/fso/server

        fsoTables:
          serverPath: /opt/fso/server

    A missing file resolves every key to ``None``.  A file that exists but
    cannot be parsed raises :class:`ConfigurationError`.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, Any]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("Settings file %s does not exist", self.path)
            return {}
        except OSError as exc:
            raise ConfigurationError(
                f"Cannot read settings file {self.path}: {exc}",
                details={"path": str(self.path)},
            ) from exc

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                f"Invalid settings file {self.path}: {exc}",
                details={"path": str(self.path)},
            ) from exc

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Settings file {self.path} must contain a mapping",
                details={"path": str(self.path)},
            )
        return data

    def get(self, key: str) -> Any:
        data = self._load()
        if key in data:
            return data[key]

        node: Any = data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node


class ChainedSettings:
    """First source returning a non-null value wins."""

    def __init__(self, *sources: SettingsSource) -> None:
        self.sources = list(sources)

    def get(self, key: str) -> Any:
        for source in self.sources:
            value = source.get(key)
            if value is not None:
                return value
        return None


def default_settings(
    server_path: str | None = None,
    settings_file: str | Path | None = None,
) -> ChainedSettings:
    """Build the settings chain used by the bundled hosts.

    Precedence: explicit ``server_path`` override, then the YAML settings
    file, then the environment.
    """
    sources: list[SettingsSource] = []
    if server_path:
        sources.append(StaticSettings({config.SERVER_PATH_SETTING: server_path}))
    sources.append(YamlSettings(settings_file or config.SETTINGS_FILE))
    sources.append(EnvironmentSettings())
    return ChainedSettings(*sources)
