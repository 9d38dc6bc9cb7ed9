"""Configuration loading and merging logic."""

import copy
import logging
import tomllib
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)
CONFIG_FILENAME = "plughost.toml"


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or parsed."""


def _get_config_dir() -> Path:
    """Return the configuration directory path."""
    return Path.home() / ".config" / "plughost"


def _merge(base: Dict[str, Any], update: Dict[str, Any]) -> None:
    for k, v in update.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _merge(base[k], v)
        else:
            base[k] = v


def load_default_config() -> Dict[str, Any]:
    """Load the bundled default configuration."""
    resource_path = resources.files("plughost.data.config").joinpath(CONFIG_FILENAME)
    with resource_path.open("rb") as f:
        return tomllib.load(f)


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load configuration, layering the user file over bundled defaults.

    An explicit ``config_path`` must exist. Without one, the user file in the
    config directory is used when present.
    """
    final_config = copy.deepcopy(load_default_config())

    if config_path is not None:
        path = Path(config_path).expanduser()
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
    else:
        path = _get_config_dir() / CONFIG_FILENAME
        if not path.exists():
            logger.debug("No user configuration at %s, using defaults", path)
            return final_config

    try:
        with open(path, "rb") as f:
            user_config = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid configuration file at {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read configuration from {path}: {e}") from e

    _merge(final_config, user_config)
    logger.debug("Loaded configuration from %s", path)
    return final_config
