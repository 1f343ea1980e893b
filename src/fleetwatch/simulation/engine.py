"""One simulation tick: sample, persist, evaluate alert rules."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from fleetwatch.models.types import Alert, Device, DeviceStatus, Telemetry
from fleetwatch.repository.store import FleetRepository
from fleetwatch.simulation.rules import AlertThresholds, evaluate_reading
from fleetwatch.simulation.sampler import SensorReading, TelemetrySampler

LOGGER = logging.getLogger(__name__)


@dataclass
class TickReport:
    sampled: int = 0
    skipped: int = 0
    alerts: List[Alert] = field(default_factory=list)
    failures: List[Tuple[int, str]] = field(default_factory=list)


class SimulationEngine:
    """Drives synthetic telemetry and threshold alerts for every non-offline device."""

    def __init__(
        self,
        repository: FleetRepository,
        *,
        sampler: Optional[TelemetrySampler] = None,
        thresholds: Optional[AlertThresholds] = None,
        dedupe_open_alerts: bool = False,
    ) -> None:
        self._repo = repository
        self._sampler = sampler or TelemetrySampler()
        self._thresholds = thresholds or AlertThresholds()
        self._dedupe = dedupe_open_alerts

    def tick(self) -> TickReport:
        report = TickReport()
        for device in self._repo.list_devices():
            if device.status is DeviceStatus.OFFLINE:
                report.skipped += 1
                continue
            try:
                _, alert = self.process_device(device)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                LOGGER.exception("Simulation failed for device %s", device.id)
                report.failures.append((device.id, f"{exc.__class__.__name__}: {exc}"))
                continue
            report.sampled += 1
            if alert is not None:
                report.alerts.append(alert)
        LOGGER.debug(
            "Tick complete sampled=%d skipped=%d alerts=%d failures=%d",
            report.sampled,
            report.skipped,
            len(report.alerts),
            len(report.failures),
        )
        return report

    def process_device(
        self,
        device: Device,
        reading: Optional[SensorReading] = None,
    ) -> Tuple[Telemetry, Optional[Alert]]:
        """Persist one reading for ``device`` and apply the alert rules to it."""

        if reading is None:
            reading = self._sampler.sample(device.status, device.device_type)
        sample = self._repo.create_telemetry(
            device.id,
            battery_level=reading.battery_level,
            temperature=reading.temperature,
            cpu_usage=reading.cpu_usage,
            memory_usage=reading.memory_usage,
            memory_total=reading.memory_total,
        )

        decision = evaluate_reading(device, reading, self._thresholds)
        if decision is None:
            return sample, None
        if self._dedupe and self._repo.has_open_alert(device.id, decision.alert_type):
            LOGGER.debug("Suppressing %s alert for device %s; one is still open", decision.alert_type, device.id)
            return sample, None

        alert = self._repo.create_alert(device.id, decision.alert_type, decision.message, decision.severity)
        LOGGER.info("Raised %s alert %s for device %s: %s", alert.severity.value, alert.id, device.id, alert.message)
        self._repo.set_device_status(device.id, decision.next_status)
        LOGGER.info(
            "Device %s status %s -> %s",
            device.id,
            device.status.value,
            decision.next_status.value,
        )
        return sample, alert


__all__ = ["SimulationEngine", "TickReport"]
