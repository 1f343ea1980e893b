"""
Pydantic schemas for alert creation and views.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from fleetwatch.models.types import Alert, AlertSeverity


class AlertCreate(BaseModel):
    """Request payload for raising an alert; alerts always start unacknowledged."""
    device_id: int = Field(gt=0, description="Device ID must be a positive integer")
    alert_type: str = Field(alias="type", min_length=1, description="Alert category, e.g. battery")
    message: str = Field(min_length=1, description="Human-readable message")
    severity: AlertSeverity = Field(description="info, warning or critical")

    class Config:
        populate_by_name = True
        alias_generator = to_camel


class AlertView(BaseModel):
    """Stored alert."""
    id: int = Field(gt=0, description="Alert id")
    device_id: int = Field(description="Device that raised the alert")
    alert_type: str = Field(alias="type", description="Alert category")
    message: str = Field(description="Human-readable message")
    severity: AlertSeverity = Field(description="info, warning or critical")
    acknowledged: bool = Field(description="True once acknowledged")
    created_at: datetime = Field(description="Creation time (UTC)")

    class Config:
        populate_by_name = True
        alias_generator = to_camel

    @classmethod
    def from_alert(cls, alert: Alert) -> "AlertView":
        return cls(
            id=alert.id,
            device_id=alert.device_id,
            alert_type=alert.alert_type,
            message=alert.message,
            severity=alert.severity,
            acknowledged=alert.acknowledged,
            created_at=alert.created_at,
        )


__all__ = ["AlertCreate", "AlertView"]
