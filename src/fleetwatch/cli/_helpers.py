"""Shared utilities for CLI entrypoints."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from fleetwatch.config.loader import Config, ConfigError, default_config, load_config
from fleetwatch.config.settings import Settings

DEFAULT_CONFIG_PATH = "config/example.yaml"
LOCAL_CONFIG_PATH = "config/local.yaml"


def add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        dest="config",
        default=None,
        help=(
            "Path to YAML config file (default: $FLEETWATCH_CONFIG, else "
            f"{LOCAL_CONFIG_PATH} if present, else {DEFAULT_CONFIG_PATH})"
        ),
    )
    parser.add_argument(
        "--redis-url",
        dest="redis_url",
        default=None,
        help="Redis URL overriding config and environment",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging for troubleshooting",
    )


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(name)s: %(message)s")
    if not verbose:
        # redis-py logs reconnect chatter at INFO
        logging.getLogger("redis").setLevel(logging.WARNING)


def load_settings(redis_url: Optional[str] = None) -> Settings:
    settings = Settings()
    if redis_url:
        settings = settings.model_copy(update={"REDIS_URL": redis_url})
    return settings


def load_cli_config(config_path: Optional[str], settings: Optional[Settings] = None) -> Config:
    resolved = config_path or (settings.FLEETWATCH_CONFIG if settings is not None else None)
    if not resolved:
        local = Path(LOCAL_CONFIG_PATH)
        default = Path(DEFAULT_CONFIG_PATH)
        if local.exists():
            resolved = str(local)
        elif default.exists():
            resolved = str(default)
        else:
            return default_config()
    try:
        return load_config(resolved)
    except ConfigError as exc:
        raise SystemExit(f"Config validation failed: {exc}") from exc


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "LOCAL_CONFIG_PATH",
    "add_common_args",
    "configure_logging",
    "load_cli_config",
    "load_settings",
]
