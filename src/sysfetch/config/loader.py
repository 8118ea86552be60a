"""YAML configuration file loading with Pydantic validation."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from .models import FetchConfig


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""


def default_config_path() -> Path:
    """Return ``$XDG_CONFIG_HOME/sysfetch/config.yaml``."""
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "sysfetch" / "config.yaml"


def load_yaml(path: Path) -> dict:
    """Load a YAML file and return its contents as a dict.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML contents.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
            if data is None:
                return {}
            if not isinstance(data, dict):
                raise ConfigError(f"Expected a mapping at the top of {path}")
            return data
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e


def load_config(path: Optional[Path] = None, **overrides) -> FetchConfig:
    """Load and validate the sysfetch configuration.

    An explicit ``path`` must exist. Without one, the default location is
    used if present and built-in defaults otherwise.

    Args:
        path: Path to a YAML configuration file.
        **overrides: Top-level fields that take precedence over the file
            (typically from command-line flags).

    Returns:
        Validated, frozen configuration.

    Raises:
        ConfigError: If the file is missing, unparseable or invalid.
    """
    data: dict = {}
    if path is not None:
        data = load_yaml(path)
    else:
        default = default_config_path()
        if default.is_file():
            data = load_yaml(default)

    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return FetchConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed for {path or 'defaults'}: {e}") from e
