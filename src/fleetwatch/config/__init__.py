"""Configuration loading."""

from fleetwatch.config.loader import Config, ConfigError, default_config, load_config
from fleetwatch.config.settings import Settings

__all__ = ["Config", "ConfigError", "Settings", "default_config", "load_config"]
