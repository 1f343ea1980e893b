"""
Pydantic schemas for device operations.

Request payloads for create/update and the list/detail views handed to routers.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from fleetwatch.models.types import Alert, Device, DeviceStatus, DeviceType, Telemetry, icon_for
from fleetwatch.schemas.alert import AlertView
from fleetwatch.schemas.telemetry import TelemetryView


class DeviceCreate(BaseModel):
    """Request payload for registering a device."""
    name: str = Field(min_length=1, description="Human-readable device name")
    device_type: DeviceType = Field(alias="type", description="Device archetype")
    location: str = Field(min_length=1, description="Where the device is installed")
    status: DeviceStatus = Field(DeviceStatus.OFFLINE, description="Initial status, offline when omitted")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "name": "Pump Controller 01",
                "type": "Industrial Pump Controller",
                "location": "Factory Floor A",
                "status": "online",
            }
        }


class DeviceUpdate(BaseModel):
    """Partial device update; omitted fields keep their stored value."""
    name: Optional[str] = Field(None, min_length=1, description="Human-readable device name")
    device_type: Optional[DeviceType] = Field(None, alias="type", description="Device archetype")
    location: Optional[str] = Field(None, min_length=1, description="Where the device is installed")
    status: Optional[DeviceStatus] = Field(None, description="Device status")

    class Config:
        populate_by_name = True

    def changes(self) -> Dict[str, object]:
        provided = self.model_dump(exclude_unset=True)
        return {name: value for name, value in provided.items() if value is not None}


class DeviceView(BaseModel):
    """Device record as returned to callers."""
    id: int = Field(gt=0, description="Device id")
    name: str = Field(description="Human-readable device name")
    device_type: DeviceType = Field(alias="type", description="Device archetype")
    location: str = Field(description="Where the device is installed")
    status: DeviceStatus = Field(description="Current status")
    registered_at: datetime = Field(description="Registration timestamp (UTC)")

    class Config:
        populate_by_name = True
        alias_generator = to_camel

    @classmethod
    def from_device(cls, device: Device) -> "DeviceView":
        return cls(
            id=device.id,
            name=device.name,
            device_type=device.device_type,
            location=device.location,
            status=device.status,
            registered_at=device.registered_at,
        )


class DeviceListItem(DeviceView):
    """Device with its latest telemetry sample and display icon."""
    telemetry: Optional[TelemetryView] = Field(None, description="Most recent sample, if any")
    icon: str = Field(description="Display icon keyed by device type")

    @classmethod
    def build(cls, device: Device, latest: Optional[Telemetry]) -> "DeviceListItem":
        base = DeviceView.from_device(device).model_dump()
        return cls(
            **base,
            telemetry=TelemetryView.from_telemetry(latest) if latest is not None else None,
            icon=icon_for(device.device_type),
        )


class DeviceDetail(DeviceView):
    """Device with recent telemetry history and every alert it raised."""
    telemetry_history: List[TelemetryView] = Field(default_factory=list, description="Newest first")
    alerts: List[AlertView] = Field(default_factory=list, description="Alerts for this device, newest first")
    icon: str = Field(description="Display icon keyed by device type")

    @classmethod
    def build(cls, device: Device, history: List[Telemetry], alerts: List[Alert]) -> "DeviceDetail":
        base = DeviceView.from_device(device).model_dump()
        return cls(
            **base,
            telemetry_history=[TelemetryView.from_telemetry(sample) for sample in history],
            alerts=[AlertView.from_alert(alert) for alert in alerts],
            icon=icon_for(device.device_type),
        )


class AlertWithDevice(AlertView):
    """Alert with its device embedded; ``device`` is null once the device is deleted."""
    device: Optional[DeviceView] = Field(None, description="Device that raised the alert")

    @classmethod
    def build(cls, alert: Alert, device: Optional[Device]) -> "AlertWithDevice":
        base = AlertView.from_alert(alert).model_dump()
        return cls(**base, device=DeviceView.from_device(device) if device is not None else None)


__all__ = [
    "AlertWithDevice",
    "DeviceCreate",
    "DeviceDetail",
    "DeviceListItem",
    "DeviceUpdate",
    "DeviceView",
]
