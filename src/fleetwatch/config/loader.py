"""Config loader with schema validation for the fleet core."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

VALID_DATA_POINT_MODES = ("estimate", "count")


class ConfigError(ValueError):
    """Raised when a configuration file fails validation."""


@dataclass(frozen=True)
class BackendConfig:
    url: Optional[str] = None
    connect_timeout_ms: int = 5000
    command_timeout_ms: int = 3000


@dataclass(frozen=True)
class SimulationConfig:
    enabled: bool = True
    interval_seconds: float = 10.0
    seed: Optional[int] = None
    run_immediately: bool = True


@dataclass(frozen=True)
class RetentionConfig:
    telemetry_per_device: int = 100
    fanout_per_device: int = 10
    cascade_delete: bool = True


@dataclass(frozen=True)
class AlertsConfig:
    battery_critical_below: float = 20.0
    temperature_warning_above: float = 70.0
    dedupe_open_alerts: bool = False


@dataclass(frozen=True)
class StatsConfig:
    data_points_mode: str = "estimate"


@dataclass(frozen=True)
class DemoConfig:
    seed_on_empty: bool = True
    with_history: bool = False


@dataclass(frozen=True)
class Config:
    source: Optional[Path]
    config_version: str
    backend: BackendConfig
    simulation: SimulationConfig
    retention: RetentionConfig
    alerts: AlertsConfig
    stats: StatsConfig
    demo: DemoConfig


def default_config() -> Config:
    """Built-in defaults, used when no config file is given."""
    return Config(
        source=None,
        config_version="default",
        backend=BackendConfig(),
        simulation=SimulationConfig(),
        retention=RetentionConfig(),
        alerts=AlertsConfig(),
        stats=StatsConfig(),
        demo=DemoConfig(),
    )


def load_config(path: str | Path) -> Config:
    """Load and validate a YAML/JSON config file."""
    source = Path(path)
    if not source.exists():
        raise ConfigError(f"Config file not found: {source}")

    data = _deserialize(source)
    if not isinstance(data, dict):
        raise ConfigError("Config root must be a mapping")
    return _parse_config(data, source)


def _deserialize(source: Path) -> Any:
    text = source.read_text(encoding="utf-8")
    suffix = source.suffix.lower()
    try:
        if suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Could not parse {source}: {exc}") from exc


def _parse_config(data: Dict[str, Any], source: Path) -> Config:
    config_version = _require_str(data, "config_version")

    backend_section = _optional_dict(data, "backend")
    url = backend_section.get("url")
    if url is not None and (not isinstance(url, str) or not url.strip()):
        raise ConfigError("'backend.url' must be a non-empty string when provided")
    if isinstance(url, str) and not url.startswith(("redis://", "rediss://", "unix://")):
        raise ConfigError("'backend.url' must use the redis://, rediss:// or unix:// scheme")
    backend = BackendConfig(
        url=url,
        connect_timeout_ms=_coerce_int(backend_section.get("connect_timeout_ms", 5000), "backend.connect_timeout_ms", minimum=1),
        command_timeout_ms=_coerce_int(backend_section.get("command_timeout_ms", 3000), "backend.command_timeout_ms", minimum=1),
    )

    simulation_section = _optional_dict(data, "simulation")
    simulation = SimulationConfig(
        enabled=bool(simulation_section.get("enabled", True)),
        interval_seconds=_require_float(
            simulation_section.get("interval_seconds", 10.0), "simulation.interval_seconds", minimum=0.0
        ),
        seed=_optional_int(simulation_section.get("seed"), "simulation.seed", minimum=0),
        run_immediately=bool(simulation_section.get("run_immediately", True)),
    )

    retention_section = _optional_dict(data, "retention")
    retention = RetentionConfig(
        telemetry_per_device=_coerce_int(
            retention_section.get("telemetry_per_device", 100), "retention.telemetry_per_device", minimum=1
        ),
        fanout_per_device=_coerce_int(
            retention_section.get("fanout_per_device", 10), "retention.fanout_per_device", minimum=1
        ),
        cascade_delete=bool(retention_section.get("cascade_delete", True)),
    )

    alerts_section = _optional_dict(data, "alerts")
    alerts = AlertsConfig(
        battery_critical_below=_require_number(
            alerts_section.get("battery_critical_below", 20.0), "alerts.battery_critical_below", 0.0, 100.0
        ),
        temperature_warning_above=_require_number(
            alerts_section.get("temperature_warning_above", 70.0), "alerts.temperature_warning_above", -50.0, 150.0
        ),
        dedupe_open_alerts=bool(alerts_section.get("dedupe_open_alerts", False)),
    )

    stats_section = _optional_dict(data, "stats")
    mode = stats_section.get("data_points_mode", "estimate")
    if mode not in VALID_DATA_POINT_MODES:
        raise ConfigError(f"'stats.data_points_mode' must be one of {', '.join(VALID_DATA_POINT_MODES)}")
    stats = StatsConfig(data_points_mode=mode)

    demo_section = _optional_dict(data, "demo")
    demo = DemoConfig(
        seed_on_empty=bool(demo_section.get("seed_on_empty", True)),
        with_history=bool(demo_section.get("with_history", False)),
    )

    return Config(
        source=source,
        config_version=config_version,
        backend=backend,
        simulation=simulation,
        retention=retention,
        alerts=alerts,
        stats=stats,
        demo=demo,
    )


def _optional_dict(obj: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = obj.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{key} block must be a mapping if provided")
    return value


def _require_str(obj: Dict[str, Any], key: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{key}' must be a non-empty string")
    return value


def _coerce_int(value: Any, field: str, minimum: Optional[int] = None) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"'{field}' must be an integer, not boolean")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{field}' must be an integer") from exc
    if minimum is not None and parsed < minimum:
        raise ConfigError(f"'{field}' must be >= {minimum}")
    return parsed


def _optional_int(value: Any, field: str, minimum: Optional[int] = None) -> Optional[int]:
    if value in (None, ""):
        return None
    return _coerce_int(value, field, minimum=minimum)


def _require_float(
    value: Any,
    field: str,
    *,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{field}' must be a number")
    result = float(value)
    if minimum is not None and result <= minimum:
        raise ConfigError(f"'{field}' must be greater than {minimum}")
    if maximum is not None and result > maximum:
        raise ConfigError(f"'{field}' must be <= {maximum}")
    return result


def _require_number(value: Any, field: str, lower: float, upper: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{field}' must be a number")
    if not lower <= value <= upper:
        raise ConfigError(f"'{field}' must be between {lower} and {upper}")
    return float(value)


__all__ = [
    "AlertsConfig",
    "BackendConfig",
    "Config",
    "ConfigError",
    "DemoConfig",
    "RetentionConfig",
    "SimulationConfig",
    "StatsConfig",
    "VALID_DATA_POINT_MODES",
    "default_config",
    "load_config",
]
