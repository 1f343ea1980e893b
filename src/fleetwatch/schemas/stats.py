"""
Pydantic schema for the fleet statistics view.
"""
from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from fleetwatch.analytics.stats import FleetStats


class StatsResponse(BaseModel):
    """Fleet-wide counters shown on the overview page."""
    total_devices: int = Field(ge=0, description="Registered devices")
    online_devices: int = Field(ge=0, description="Devices with status online")
    active_alerts: int = Field(ge=0, description="Unacknowledged alerts")
    critical_alerts: int = Field(ge=0, description="Unacknowledged critical alerts")
    data_points: int = Field(ge=0, description="Telemetry volume (estimate or count)")
    data_points_label: str = Field(description="Display form of data_points, e.g. 1.4K")
    uptime_percentage: int = Field(ge=0, le=100, description="Online share of the fleet, rounded")

    class Config:
        populate_by_name = True
        alias_generator = to_camel
        json_schema_extra = {
            "example": {
                "totalDevices": 5,
                "onlineDevices": 2,
                "activeAlerts": 3,
                "criticalAlerts": 1,
                "dataPoints": 720,
                "dataPointsLabel": "720",
                "uptimePercentage": 40,
            }
        }

    @classmethod
    def from_stats(cls, stats: FleetStats) -> "StatsResponse":
        return cls(**stats.to_dict(), data_points_label=stats.data_points_label)


__all__ = ["StatsResponse"]
