"""Fleet-wide statistics read through the repository."""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict

from fleetwatch.models.types import AlertSeverity, DeviceStatus
from fleetwatch.repository.store import FleetRepository

LOGGER = logging.getLogger(__name__)

# Demo estimate: one sample every ten minutes for a day, per device.
SAMPLES_PER_HOUR = 6
HOURS_PER_DAY = 24


class DataPointsMode(str, Enum):
    ESTIMATE = "estimate"
    COUNT = "count"


@dataclass(frozen=True)
class FleetStats:
    total_devices: int
    online_devices: int
    active_alerts: int
    critical_alerts: int
    data_points: int
    uptime_percentage: int

    @property
    def data_points_label(self) -> str:
        return format_data_points(self.data_points)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


class StatsService:
    def __init__(self, repository: FleetRepository, *, data_points_mode: DataPointsMode | str = DataPointsMode.ESTIMATE) -> None:
        self._repo = repository
        self._mode = DataPointsMode(data_points_mode)

    @property
    def data_points_mode(self) -> DataPointsMode:
        return self._mode

    def compute_stats(self) -> FleetStats:
        devices = self._repo.list_devices()
        open_alerts = self._repo.list_unacknowledged_alerts()
        total = len(devices)
        online = sum(1 for device in devices if device.status is DeviceStatus.ONLINE)
        critical = sum(1 for alert in open_alerts if alert.severity is AlertSeverity.CRITICAL)
        if self._mode is DataPointsMode.COUNT:
            data_points = self._repo.count_telemetry()
        else:
            data_points = estimate_data_points(total)
        LOGGER.debug("Computed stats for %d devices (%d open alerts)", total, len(open_alerts))
        return FleetStats(
            total_devices=total,
            online_devices=online,
            active_alerts=len(open_alerts),
            critical_alerts=critical,
            data_points=data_points,
            uptime_percentage=uptime_percentage(online, total),
        )


def estimate_data_points(total_devices: int) -> int:
    return total_devices * HOURS_PER_DAY * SAMPLES_PER_HOUR


def uptime_percentage(online: int, total: int) -> int:
    if total <= 0:
        return 0
    return math.floor(online / total * 100 + 0.5)


def format_data_points(value: int) -> str:
    """``1440 -> "1.4K"``; values up to 1000 are shown as-is."""

    if value > 1000:
        return f"{value / 1000:.1f}K"
    return str(value)


__all__ = [
    "DataPointsMode",
    "FleetStats",
    "StatsService",
    "estimate_data_points",
    "format_data_points",
    "uptime_percentage",
]
