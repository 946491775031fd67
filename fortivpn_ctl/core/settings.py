"""User configuration loaded from YAML with environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from ..utils.logging import get_logger
from .errors import ConfigError

logger = get_logger("settings")

CONFIG_DIR_NAME = "fortivpn"
CONFIG_FILE_NAME = "config.yaml"

_NUMERIC = {
    "app_launch_timeout",
    "connect_timeout",
    "disconnect_timeout",
    "poll_interval",
    "watch_interval",
    "watch_reconnect_timeout",
    "bridge_timeout",
}

# environment variable -> settings field
ENV_OVERRIDES = {
    "FORTIVPN_BRIDGE": "bridge_script",
    "FORTIVPN_MODULE_PATH": "module_path",
    "FORTIVPN_NODE": "node_binary",
}


@dataclass
class Settings:
    bridge_script: Optional[str] = None
    node_binary: str = "node"
    module_path: Optional[str] = None
    app_name: str = "FortiClient"
    app_launch_timeout: float = 5.0
    connect_timeout: float = 20.0
    disconnect_timeout: float = 10.0
    poll_interval: float = 1.0
    watch_interval: float = 5.0
    watch_reconnect_timeout: float = 20.0
    bridge_timeout: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Settings":
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                logger.warning("Ignoring unknown configuration key %r", key)
                continue
            if value is None:
                continue
            if key in _NUMERIC:
                try:
                    value = float(value)
                except (TypeError, ValueError):
                    raise ConfigError(f"configuration key {key!r} must be a number, got {value!r}") from None
            else:
                value = str(value)
            values[key] = value
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def default_config_path(environ: Mapping[str, str] = os.environ) -> Path:
    explicit = environ.get("FORTIVPN_CONFIG", "").strip()
    if explicit:
        return Path(explicit).expanduser()
    base = environ.get("XDG_CONFIG_HOME", "").strip() or str(Path.home() / ".config")
    return Path(base) / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def load_settings(path: Optional[Path] = None, environ: Mapping[str, str] = os.environ) -> Settings:
    path = path or default_config_path(environ)
    data: Any = {}
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"failed to read configuration {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"configuration {path} must contain a mapping")
        logger.debug("Loaded configuration from %s", path)

    settings = Settings.from_dict(data)
    for variable, attribute in ENV_OVERRIDES.items():
        value = environ.get(variable, "").strip()
        if value:
            setattr(settings, attribute, value)
    return settings
