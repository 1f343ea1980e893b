"""Domain entities."""

from fleetwatch.models.types import (
    Alert,
    AlertSeverity,
    Device,
    DeviceStatus,
    DeviceType,
    Telemetry,
    icon_for,
    memory_capacity_for,
)

__all__ = [
    "Alert",
    "AlertSeverity",
    "Device",
    "DeviceStatus",
    "DeviceType",
    "Telemetry",
    "icon_for",
    "memory_capacity_for",
]
