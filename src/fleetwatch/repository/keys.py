"""Key layout for entities stored in the key-value backend."""

from __future__ import annotations

DEVICES_ALL = "devices:all"
ALERTS_ALL = "alerts:all"
COUNTERS = "counters"

DEVICE_COUNTER = "deviceId"
TELEMETRY_COUNTER = "telemetryId"
ALERT_COUNTER = "alertId"


def device(device_id: int) -> str:
    return f"device:{device_id}"


def device_telemetry(device_id: int) -> str:
    return f"telemetry:device:{device_id}"


def telemetry(telemetry_id: int | str) -> str:
    return f"telemetry:{telemetry_id}"


def alert(alert_id: int | str) -> str:
    return f"alert:{alert_id}"


def open_alerts(device_id: int) -> str:
    """Set of alert types with at least one unacknowledged alert for the device."""
    return f"alerts:open:device:{device_id}"
