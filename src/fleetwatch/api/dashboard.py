"""
Core-facing contract consumed by route handlers.

``FleetDashboard`` exposes one method per dashboard operation, returning
pydantic views and raising ``FleetError`` subclasses. ``FleetDashboard.call``
wraps any of them into an ``ApiResponse`` (status code + JSON-ready body) so a
router only has to forward the result.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

import pydantic
from pydantic import BaseModel

from fleetwatch.analytics.stats import StatsService
from fleetwatch.errors import NotFoundError, ValidationError
from fleetwatch.repository.store import FleetRepository
from fleetwatch.schemas import (
    AlertCreate,
    AlertView,
    AlertWithDevice,
    DeviceCreate,
    DeviceDetail,
    DeviceListItem,
    DeviceUpdate,
    DeviceView,
    StatsResponse,
    TelemetryCreate,
    TelemetryView,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_DEVICE_TELEMETRY_LIMIT = 100
DEFAULT_TELEMETRY_LIMIT = 100
DEFAULT_ALERT_LIMIT = 50
DEFAULT_WINDOW_HOURS = 24

_M = TypeVar("_M", bound=BaseModel)


@dataclass(frozen=True)
class ApiResponse:
    status_code: int
    body: Any


class FleetDashboard:
    def __init__(self, repository: FleetRepository, stats: StatsService) -> None:
        self._repo = repository
        self._stats = stats

    # Devices

    def list_devices(self) -> List[DeviceListItem]:
        return [
            DeviceListItem.build(device, self._repo.get_latest_telemetry(device.id))
            for device in self._repo.list_devices()
        ]

    def get_device(self, device_id: int) -> DeviceDetail:
        device = self._repo.get_device(device_id)
        if device is None:
            raise NotFoundError("Device", device_id)
        history = self._repo.list_telemetry_for_device(device_id, DEFAULT_DEVICE_TELEMETRY_LIMIT)
        alerts = self._repo.list_alerts_for_device(device_id)
        return DeviceDetail.build(device, history, alerts)

    def create_device(self, payload: Mapping[str, Any]) -> DeviceView:
        data = _validate(DeviceCreate, payload, "Invalid device data")
        device = self._repo.create_device(data.name, data.device_type, data.location, data.status)
        LOGGER.info("Registered device %s (%s)", device.id, device.name)
        return DeviceView.from_device(device)

    def update_device(self, device_id: int, payload: Mapping[str, Any]) -> DeviceView:
        data = _validate(DeviceUpdate, payload, "Invalid device data")
        return DeviceView.from_device(self._repo.update_device(device_id, data.changes()))

    def delete_device(self, device_id: int) -> None:
        self._repo.delete_device(device_id)

    # Telemetry

    def list_telemetry(self, limit: Optional[int] = None) -> List[TelemetryView]:
        samples = self._repo.list_all_telemetry(_positive_or(limit, DEFAULT_TELEMETRY_LIMIT))
        return [TelemetryView.from_telemetry(sample) for sample in samples]

    def device_telemetry(self, device_id: int, hours: Optional[float] = None) -> List[TelemetryView]:
        samples = self._repo.list_telemetry_since(device_id, _positive_or(hours, DEFAULT_WINDOW_HOURS))
        return [TelemetryView.from_telemetry(sample) for sample in samples]

    def ingest_telemetry(self, payload: Mapping[str, Any]) -> TelemetryView:
        data = _validate(TelemetryCreate, payload, "Invalid telemetry data")
        self._require_device(data.device_id)
        sample = self._repo.create_telemetry(
            data.device_id,
            battery_level=data.battery_level,
            temperature=data.temperature,
            cpu_usage=data.cpu_usage,
            memory_usage=data.memory_usage,
            memory_total=data.memory_total,
        )
        return TelemetryView.from_telemetry(sample)

    # Alerts

    def list_alerts(self, limit: Optional[int] = None) -> List[AlertWithDevice]:
        alerts = self._repo.list_alerts(_positive_or(limit, DEFAULT_ALERT_LIMIT))
        devices: Dict[int, Any] = {}
        views = []
        for alert in alerts:
            if alert.device_id not in devices:
                devices[alert.device_id] = self._repo.get_device(alert.device_id)
            views.append(AlertWithDevice.build(alert, devices[alert.device_id]))
        return views

    def create_alert(self, payload: Mapping[str, Any]) -> AlertView:
        data = _validate(AlertCreate, payload, "Invalid alert data")
        self._require_device(data.device_id)
        alert = self._repo.create_alert(data.device_id, data.alert_type, data.message, data.severity)
        return AlertView.from_alert(alert)

    def acknowledge_alert(self, alert_id: int) -> AlertView:
        return AlertView.from_alert(self._repo.acknowledge_alert(alert_id))

    def stats(self) -> StatsResponse:
        return StatsResponse.from_stats(self._stats.compute_stats())

    # Response mapping

    def call(self, operation: str, *args: Any, **kwargs: Any) -> ApiResponse:
        """Run ``operation`` and map its outcome onto a status code and body."""

        try:
            success_status, failure_message, message_body = _OPERATIONS[operation]
        except KeyError:
            raise ValueError(f"Unknown operation: {operation}") from None
        handler: Callable[..., Any] = getattr(self, operation)
        try:
            result = handler(*args, **kwargs)
        except NotFoundError as exc:
            return ApiResponse(404, {"message": f"{exc.entity} not found"})
        except ValidationError as exc:
            return ApiResponse(400, {"message": exc.message, "errors": exc.errors})
        except Exception:  # pylint: disable=broad-exception-caught
            LOGGER.exception("Operation %s failed", operation)
            return ApiResponse(500, {"message": failure_message})
        if message_body is not None:
            return ApiResponse(success_status, {"message": message_body})
        return ApiResponse(success_status, _to_body(result))

    def _require_device(self, device_id: int) -> None:
        if self._repo.get_device(device_id) is None:
            raise NotFoundError("Device", device_id)


# operation -> (success status, 500 message, fixed success message or None)
_OPERATIONS: Dict[str, Tuple[int, str, Optional[str]]] = {
    "list_devices": (200, "Failed to fetch devices", None),
    "get_device": (200, "Failed to fetch device details", None),
    "create_device": (201, "Failed to create device", None),
    "update_device": (200, "Failed to update device", None),
    "delete_device": (200, "Failed to delete device", "Device deleted successfully"),
    "list_telemetry": (200, "Failed to fetch telemetry data", None),
    "device_telemetry": (200, "Failed to fetch telemetry data", None),
    "ingest_telemetry": (201, "Failed to create telemetry", None),
    "list_alerts": (200, "Failed to fetch alerts", None),
    "create_alert": (201, "Failed to create alert", None),
    "acknowledge_alert": (200, "Failed to acknowledge alert", "Alert acknowledged"),
    "stats": (200, "Failed to fetch stats", None),
}


def _validate(model: Type[_M], payload: Mapping[str, Any], message: str) -> _M:
    try:
        return model.model_validate(dict(payload))
    except pydantic.ValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]) or "__root__", "message": error["msg"]}
            for error in exc.errors()
        ]
        raise ValidationError(message, errors) from exc


def _positive_or(value: Optional[float], default: Any) -> Any:
    if value is None or value <= 0:
        return default
    return value


def _to_body(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", by_alias=True)
    if isinstance(result, list):
        return [_to_body(item) for item in result]
    return result


__all__ = [
    "ApiResponse",
    "DEFAULT_ALERT_LIMIT",
    "DEFAULT_TELEMETRY_LIMIT",
    "DEFAULT_WINDOW_HOURS",
    "FleetDashboard",
]
