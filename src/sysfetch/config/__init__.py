"""Configuration models and loading."""

from .loader import ConfigError, load_config
from .models import CacheConfig, FetchConfig, ThemeConfig

__all__ = ["CacheConfig", "ConfigError", "FetchConfig", "ThemeConfig", "load_config"]
