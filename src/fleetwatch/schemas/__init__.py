"""Request and response shapes for the fleet contract."""

from fleetwatch.schemas.alert import AlertCreate, AlertView
from fleetwatch.schemas.device import (
    AlertWithDevice,
    DeviceCreate,
    DeviceDetail,
    DeviceListItem,
    DeviceUpdate,
    DeviceView,
)
from fleetwatch.schemas.stats import StatsResponse
from fleetwatch.schemas.telemetry import TelemetryCreate, TelemetryView

__all__ = [
    "AlertCreate",
    "AlertView",
    "AlertWithDevice",
    "DeviceCreate",
    "DeviceDetail",
    "DeviceListItem",
    "DeviceUpdate",
    "DeviceView",
    "StatsResponse",
    "TelemetryCreate",
    "TelemetryView",
]
