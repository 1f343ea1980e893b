"""Shared dataclasses and enums for devices, telemetry and alerts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict


class DeviceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    WARNING = "warning"
    CRITICAL = "critical"


class DeviceType(str, Enum):
    PUMP_CONTROLLER = "Industrial Pump Controller"
    TEMPERATURE_SENSOR = "Temperature Monitoring Sensor"
    VIBRATION_UNIT = "Vibration Analysis Unit"
    PRESSURE_VALVE = "Pressure Control Valve"
    FLOW_METER = "Flow Rate Meter"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


DEFAULT_ICON = "fas fa-microchip"

DEVICE_ICONS: Dict[DeviceType, str] = {
    DeviceType.PUMP_CONTROLLER: "fas fa-tint",
    DeviceType.TEMPERATURE_SENSOR: "fas fa-thermometer-half",
    DeviceType.VIBRATION_UNIT: "fas fa-wave-square",
    DeviceType.PRESSURE_VALVE: "fas fa-gauge",
    DeviceType.FLOW_METER: "fas fa-tachometer-alt",
}

# Memory capacity in GB per archetype; anything else gets DEFAULT_MEMORY_TOTAL.
DEFAULT_MEMORY_TOTAL = 2.0
MEMORY_CAPACITY: Dict[DeviceType, float] = {
    DeviceType.VIBRATION_UNIT: 8.0,
    DeviceType.PRESSURE_VALVE: 4.0,
}


def icon_for(device_type: DeviceType | str) -> str:
    try:
        return DEVICE_ICONS[DeviceType(device_type)]
    except ValueError:
        return DEFAULT_ICON


def memory_capacity_for(device_type: DeviceType | str) -> float:
    try:
        return MEMORY_CAPACITY.get(DeviceType(device_type), DEFAULT_MEMORY_TOTAL)
    except ValueError:
        return DEFAULT_MEMORY_TOTAL


@dataclass(frozen=True)
class Device:
    id: int
    name: str
    device_type: DeviceType
    location: str
    status: DeviceStatus
    registered_at: datetime


@dataclass(frozen=True)
class Telemetry:
    id: int
    device_id: int
    battery_level: float
    temperature: float
    cpu_usage: float
    memory_usage: float
    memory_total: float
    timestamp: datetime


@dataclass(frozen=True)
class Alert:
    id: int
    device_id: int
    alert_type: str
    message: str
    severity: AlertSeverity
    acknowledged: bool
    created_at: datetime


__all__ = [
    "Alert",
    "AlertSeverity",
    "DEFAULT_ICON",
    "DEFAULT_MEMORY_TOTAL",
    "DEVICE_ICONS",
    "Device",
    "DeviceStatus",
    "DeviceType",
    "MEMORY_CAPACITY",
    "Telemetry",
    "icon_for",
    "memory_capacity_for",
]
