"""Configuration access for plughost."""

from typing import Any, Dict, List

from plughost.config.loader import (
    CONFIG_FILENAME,
    ConfigError,
    _get_config_dir,
    load_config,
    load_default_config,
)


def get_config_dir():
    """Return the user configuration directory."""
    return _get_config_dir()


def plugin_identifiers(config: Dict[str, Any]) -> List[str]:
    """Return the configured plugin identifiers, blanks dropped."""
    raw = config.get("plugins", {}).get("load", [])
    if isinstance(raw, str):
        raw = [raw]
    return [str(item).strip() for item in raw if str(item or "").strip()]


def namespace_names(config: Dict[str, Any]) -> List[str]:
    raw = config.get("plugins", {}).get("namespaces", [])
    if isinstance(raw, str):
        raw = [raw]
    return [str(item).strip() for item in raw if str(item or "").strip()]


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "get_config_dir",
    "load_config",
    "load_default_config",
    "namespace_names",
    "plugin_identifiers",
]
