"""
Pydantic schemas for telemetry ingestion and views.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from fleetwatch.models.types import Telemetry


class TelemetryCreate(BaseModel):
    """Request payload for ingesting one sensor reading."""
    device_id: int = Field(gt=0, description="Device ID must be a positive integer")
    battery_level: float = Field(ge=0, le=100, description="Battery level percentage (0-100)")
    temperature: float = Field(ge=-50, le=150, description="Temperature in °C (-50 to 150)")
    cpu_usage: float = Field(ge=0, le=100, description="CPU usage percentage (0-100)")
    memory_usage: float = Field(ge=0, description="Memory in use (GB)")
    memory_total: float = Field(ge=0, description="Installed memory (GB)")

    class Config:
        populate_by_name = True
        alias_generator = to_camel
        json_schema_extra = {
            "example": {
                "deviceId": 1,
                "batteryLevel": 87.5,
                "temperature": 42.1,
                "cpuUsage": 23.0,
                "memoryUsage": 0.5,
                "memoryTotal": 2.0,
            }
        }


class TelemetryView(BaseModel):
    """Stored telemetry sample."""
    id: int = Field(gt=0, description="Telemetry id")
    device_id: int = Field(description="Owning device id")
    battery_level: float = Field(description="Battery level percentage")
    temperature: float = Field(description="Temperature in °C")
    cpu_usage: float = Field(description="CPU usage percentage")
    memory_usage: float = Field(description="Memory in use (GB)")
    memory_total: float = Field(description="Installed memory (GB)")
    timestamp: datetime = Field(description="Sample time (UTC)")

    class Config:
        populate_by_name = True
        alias_generator = to_camel

    @classmethod
    def from_telemetry(cls, sample: Telemetry) -> "TelemetryView":
        return cls(
            id=sample.id,
            device_id=sample.device_id,
            battery_level=sample.battery_level,
            temperature=sample.temperature,
            cpu_usage=sample.cpu_usage,
            memory_usage=sample.memory_usage,
            memory_total=sample.memory_total,
            timestamp=sample.timestamp,
        )


__all__ = ["TelemetryCreate", "TelemetryView"]
