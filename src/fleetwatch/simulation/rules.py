"""Threshold rules turning a reading into at most one alert and status change."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from fleetwatch.models.types import AlertSeverity, Device, DeviceStatus
from fleetwatch.simulation.sampler import SensorReading

BATTERY_ALERT = "battery"
TEMPERATURE_ALERT = "temperature"


@dataclass(frozen=True)
class AlertThresholds:
    battery_critical_below: float = 20.0
    temperature_warning_above: float = 70.0


@dataclass(frozen=True)
class AlertDecision:
    alert_type: str
    severity: AlertSeverity
    message: str
    next_status: DeviceStatus


def evaluate_reading(
    device: Device,
    reading: SensorReading,
    thresholds: Optional[AlertThresholds] = None,
) -> Optional[AlertDecision]:
    """Return the alert to raise for ``reading``, or ``None``.

    The battery rule is checked first; the temperature rule only applies when
    the battery rule does not fire. Each rule is guarded by the device's
    current status so a device already escalated does not alert again.
    """

    limits = thresholds or AlertThresholds()
    status = DeviceStatus(device.status)
    if reading.battery_level < limits.battery_critical_below and status is not DeviceStatus.CRITICAL:
        return AlertDecision(
            alert_type=BATTERY_ALERT,
            severity=AlertSeverity.CRITICAL,
            message=f"{device.name} battery level critically low ({_whole(reading.battery_level)}%)",
            next_status=DeviceStatus.CRITICAL,
        )
    if reading.temperature > limits.temperature_warning_above and status not in (
        DeviceStatus.WARNING,
        DeviceStatus.CRITICAL,
    ):
        return AlertDecision(
            alert_type=TEMPERATURE_ALERT,
            severity=AlertSeverity.WARNING,
            message=f"{device.name} temperature exceeded threshold ({_whole(reading.temperature)}°C)",
            next_status=DeviceStatus.WARNING,
        )
    return None


def _whole(value: float) -> int:
    # round half up, matching how the values are shown on the dashboard
    return math.floor(value + 0.5)


__all__ = [
    "AlertDecision",
    "AlertThresholds",
    "BATTERY_ALERT",
    "TEMPERATURE_ALERT",
    "evaluate_reading",
]
