"""Per-entity conversion between dataclasses and string-valued hashes.

The backend stores every field as text. This module is the single place that
knows field names and their types: booleans are ``"true"``/``"false"``,
numbers are decimal text, timestamps are ISO-8601 UTC with a ``Z`` suffix.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Dict, Mapping, Optional, TypeVar

from fleetwatch.errors import CodecError
from fleetwatch.models.types import Alert, AlertSeverity, Device, DeviceStatus, DeviceType, Telemetry

_T = TypeVar("_T")


def encode_device(device: Device) -> Dict[str, str]:
    return {
        "id": str(device.id),
        "name": device.name,
        "type": device.device_type.value,
        "location": device.location,
        "status": device.status.value,
        "registeredAt": format_timestamp(device.registered_at),
    }


def decode_device(fields: Mapping[str, str]) -> Optional[Device]:
    if not fields:
        return None
    return Device(
        id=_field(fields, "id", int),
        name=_field(fields, "name", str),
        device_type=_field(fields, "type", DeviceType),
        location=_field(fields, "location", str),
        status=_field(fields, "status", DeviceStatus),
        registered_at=_field(fields, "registeredAt", parse_timestamp),
    )


def encode_telemetry(sample: Telemetry) -> Dict[str, str]:
    return {
        "id": str(sample.id),
        "deviceId": str(sample.device_id),
        "batteryLevel": _format_number(sample.battery_level),
        "temperature": _format_number(sample.temperature),
        "cpuUsage": _format_number(sample.cpu_usage),
        "memoryUsage": _format_number(sample.memory_usage),
        "memoryTotal": _format_number(sample.memory_total),
        "timestamp": format_timestamp(sample.timestamp),
    }


def decode_telemetry(fields: Mapping[str, str]) -> Optional[Telemetry]:
    if not fields:
        return None
    return Telemetry(
        id=_field(fields, "id", int),
        device_id=_field(fields, "deviceId", int),
        battery_level=_field(fields, "batteryLevel", float),
        temperature=_field(fields, "temperature", float),
        cpu_usage=_field(fields, "cpuUsage", float),
        memory_usage=_field(fields, "memoryUsage", float),
        memory_total=_field(fields, "memoryTotal", float),
        timestamp=_field(fields, "timestamp", parse_timestamp),
    )


def encode_alert(alert: Alert) -> Dict[str, str]:
    return {
        "id": str(alert.id),
        "deviceId": str(alert.device_id),
        "type": alert.alert_type,
        "message": alert.message,
        "severity": alert.severity.value,
        "acknowledged": format_bool(alert.acknowledged),
        "createdAt": format_timestamp(alert.created_at),
    }


def decode_alert(fields: Mapping[str, str]) -> Optional[Alert]:
    if not fields:
        return None
    return Alert(
        id=_field(fields, "id", int),
        device_id=_field(fields, "deviceId", int),
        alert_type=_field(fields, "type", str),
        message=_field(fields, "message", str),
        severity=_field(fields, "severity", AlertSeverity),
        acknowledged=_field(fields, "acknowledged", parse_bool),
        created_at=_field(fields, "createdAt", parse_timestamp),
    )


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_bool(value: bool) -> str:
    return "true" if value else "false"


def parse_bool(value: str) -> bool:
    if value == "true":
        return True
    if value == "false":
        return False
    raise ValueError(f"expected 'true' or 'false', got {value!r}")


def _format_number(value: float) -> str:
    return repr(float(value))


def _field(fields: Mapping[str, str], name: str, convert: Callable[[str], _T]) -> _T:
    raw = fields.get(name)
    if raw is None:
        raise CodecError(f"missing field '{name}'")
    try:
        return convert(raw)
    except (TypeError, ValueError) as exc:
        raise CodecError(f"field '{name}' has invalid value {raw!r}") from exc


__all__ = [
    "decode_alert",
    "decode_device",
    "decode_telemetry",
    "encode_alert",
    "encode_device",
    "encode_telemetry",
    "format_bool",
    "format_timestamp",
    "parse_bool",
    "parse_timestamp",
]
