"""Sample fleet used when the store starts empty."""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Callable, List, Optional, Sequence, Tuple

from fleetwatch.models.types import Device, DeviceStatus, DeviceType
from fleetwatch.repository import keys
from fleetwatch.repository.store import FleetRepository
from fleetwatch.simulation.sampler import TelemetrySampler

LOGGER = logging.getLogger(__name__)

HISTORY_HOURS = 24

SampleDevice = Tuple[str, DeviceType, str, DeviceStatus]

SAMPLE_DEVICES: Tuple[SampleDevice, ...] = (
    ("Pump Controller 01", DeviceType.PUMP_CONTROLLER, "Factory Floor A", DeviceStatus.ONLINE),
    ("Temp Sensor 02", DeviceType.TEMPERATURE_SENSOR, "Warehouse B", DeviceStatus.WARNING),
    ("Vibration Unit 03", DeviceType.VIBRATION_UNIT, "Production Line 1", DeviceStatus.ONLINE),
    ("Pressure Valve 04", DeviceType.PRESSURE_VALVE, "Boiler Room", DeviceStatus.CRITICAL),
    ("Flow Meter 05", DeviceType.FLOW_METER, "Pipeline C", DeviceStatus.OFFLINE),
)


def _never() -> bool:
    return False


def seed_sample_fleet(
    repository: FleetRepository,
    *,
    with_history: bool = False,
    sampler: Optional[TelemetrySampler] = None,
    interrupted: Callable[[], bool] = _never,
) -> List[Device]:
    """Create the sample devices unless any device is already registered.

    With ``with_history`` every device also gets one sample per hour for the
    last day, oldest first so the newest ends up at the head of its index.
    Work stops early once ``interrupted`` returns true.
    """

    if repository.backend.set_members(keys.DEVICES_ALL):
        LOGGER.debug("Store already holds devices; skipping sample fleet")
        return []

    created = _create_devices(repository, SAMPLE_DEVICES, interrupted)
    if with_history and not interrupted():
        _write_history(repository, created, sampler or TelemetrySampler(), interrupted)
    LOGGER.info(
        "Seeded %d sample devices%s",
        len(created),
        " with history" if with_history else "",
    )
    return created


def top_up_sample_fleet(
    repository: FleetRepository,
    *,
    with_history: bool = False,
    sampler: Optional[TelemetrySampler] = None,
    interrupted: Callable[[], bool] = _never,
) -> List[Device]:
    """Create whichever sample devices are missing by name.

    With ``with_history`` sample devices that have no telemetry yet get the
    hourly backfill too.
    """

    present = {device.name: device for device in repository.list_devices()}
    missing = [sample for sample in SAMPLE_DEVICES if sample[0] not in present]
    created = _create_devices(repository, missing, interrupted)
    if with_history and not interrupted():
        bare = [
            present[name]
            for name, *_ in SAMPLE_DEVICES
            if name in present and repository.get_latest_telemetry(present[name].id) is None
        ]
        _write_history(repository, bare + created, sampler or TelemetrySampler(), interrupted)
    if created:
        LOGGER.info("Restored %d sample devices", len(created))
    return created


class SampleFleetSeeder:
    """Seeds the sample fleet and restores it after the backend is replaced.

    The degrade callback can fire from inside a running seed (the failing
    backend call belongs to the seed itself). That seed then stops, and the
    fleet is completed on the replacement store once it returns.
    """

    def __init__(
        self,
        repository: FleetRepository,
        *,
        with_history: bool = False,
        sampler: Optional[TelemetrySampler] = None,
    ) -> None:
        self._repo = repository
        self._with_history = with_history
        self._sampler = sampler
        self._lock = threading.RLock()
        self._running = False
        self._replaced = threading.Event()

    def seed(self) -> List[Device]:
        """Seed the store if it is empty."""

        with self._lock:
            return self._run(seed_sample_fleet)

    def reseed(self, _handle: object = None) -> List[Device]:
        """Degrade callback; the replacement store starts empty."""

        self._replaced.set()
        with self._lock:
            if self._running:
                return []
            return self._run(top_up_sample_fleet)

    def _run(self, step: Callable[..., List[Device]]) -> List[Device]:
        self._running = True
        try:
            self._replaced.clear()
            created = step(
                self._repo,
                with_history=self._with_history,
                sampler=self._sampler,
                interrupted=self._replaced.is_set,
            )
            while self._replaced.is_set():
                LOGGER.info("Backend replaced while seeding; completing the sample fleet on the new store")
                self._replaced.clear()
                created = top_up_sample_fleet(
                    self._repo,
                    with_history=self._with_history,
                    sampler=self._sampler,
                    interrupted=self._replaced.is_set,
                )
        finally:
            self._running = False
        return created


def _create_devices(
    repository: FleetRepository,
    samples: Sequence[SampleDevice],
    interrupted: Callable[[], bool],
) -> List[Device]:
    created: List[Device] = []
    for name, device_type, location, status in samples:
        if interrupted():
            break
        created.append(repository.create_device(name, device_type, location, status))
    return created


def _write_history(
    repository: FleetRepository,
    devices: Sequence[Device],
    sampler: TelemetrySampler,
    interrupted: Callable[[], bool],
) -> None:
    now = repository.now()
    for device in devices:
        for hours_ago in range(HISTORY_HOURS - 1, -1, -1):
            if interrupted():
                return
            reading = sampler.sample(device.status, device.device_type)
            repository.create_telemetry(
                device.id,
                battery_level=reading.battery_level,
                temperature=reading.temperature,
                cpu_usage=reading.cpu_usage,
                memory_usage=reading.memory_usage,
                memory_total=reading.memory_total,
                timestamp=now - timedelta(hours=hours_ago),
            )


__all__ = [
    "HISTORY_HOURS",
    "SAMPLE_DEVICES",
    "SampleFleetSeeder",
    "seed_sample_fleet",
    "top_up_sample_fleet",
]
