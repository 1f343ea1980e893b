"""Status-dependent synthetic sensor readings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from fleetwatch.models.types import DeviceStatus, DeviceType, memory_capacity_for

Range = Tuple[float, float]


@dataclass(frozen=True)
class SensorProfile:
    battery: Range
    temperature: Range
    cpu: Range


# Half-open [low, high) ranges; statuses without an entry use NORMAL_PROFILE.
NORMAL_PROFILE = SensorProfile(battery=(60.0, 100.0), temperature=(20.0, 60.0), cpu=(0.0, 50.0))
STATUS_PROFILES: Dict[DeviceStatus, SensorProfile] = {
    DeviceStatus.CRITICAL: SensorProfile(battery=(0.0, 20.0), temperature=(80.0, 100.0), cpu=(80.0, 100.0)),
    DeviceStatus.WARNING: SensorProfile(battery=(20.0, 50.0), temperature=(60.0, 80.0), cpu=(50.0, 80.0)),
}

MEMORY_JITTER: Range = (0.8, 1.2)


@dataclass(frozen=True)
class SensorReading:
    battery_level: float
    temperature: float
    cpu_usage: float
    memory_usage: float
    memory_total: float


def profile_for(status: DeviceStatus | str) -> SensorProfile:
    try:
        return STATUS_PROFILES.get(DeviceStatus(status), NORMAL_PROFILE)
    except ValueError:
        return NORMAL_PROFILE


class TelemetrySampler:
    """Draws one reading per call from the profile of the device's current status."""

    def __init__(self, seed: Optional[int] = None, *, rng: Optional[np.random.Generator] = None) -> None:
        self._rng = rng if rng is not None else np.random.default_rng(seed)

    def sample(self, status: DeviceStatus | str, device_type: DeviceType | str) -> SensorReading:
        profile = profile_for(status)
        battery = self._uniform(profile.battery)
        temperature = self._uniform(profile.temperature)
        cpu = self._uniform(profile.cpu)
        memory_total = memory_capacity_for(device_type)
        memory_usage = (cpu / 100.0) * memory_total * self._uniform(MEMORY_JITTER)
        return SensorReading(
            battery_level=battery,
            temperature=temperature,
            cpu_usage=cpu,
            memory_usage=memory_usage,
            memory_total=memory_total,
        )

    def _uniform(self, bounds: Range) -> float:
        low, high = bounds
        return float(self._rng.uniform(low, high))


__all__ = [
    "MEMORY_JITTER",
    "NORMAL_PROFILE",
    "STATUS_PROFILES",
    "SensorProfile",
    "SensorReading",
    "TelemetrySampler",
    "profile_for",
]
