"""Entity repository built on the key-value backend primitives."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from fleetwatch.errors import CodecError, NotFoundError
from fleetwatch.models.types import Alert, AlertSeverity, Device, DeviceStatus, DeviceType, Telemetry
from fleetwatch.repository import codec, keys
from fleetwatch.storage.base import KeyValueBackend

LOGGER = logging.getLogger(__name__)

DEFAULT_TELEMETRY_RETENTION = 100
DEFAULT_FANOUT_PER_DEVICE = 10

_E = TypeVar("_E")

_DEVICE_FIELDS = {"name", "device_type", "location", "status"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FleetRepository:
    """CRUD-shaped access to devices, telemetry and alerts.

    Every logical operation is a short sequence of backend calls without
    cross-call atomicity. Creates write the record before its index entry and
    deletes remove index entries before records, so an interrupted sequence
    only leaves unreachable records behind.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        telemetry_retention: int = DEFAULT_TELEMETRY_RETENTION,
        fanout_per_device: int = DEFAULT_FANOUT_PER_DEVICE,
        cascade_delete: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if telemetry_retention < 1:
            raise ValueError("telemetry_retention must be >= 1")
        if fanout_per_device < 1:
            raise ValueError("fanout_per_device must be >= 1")
        self._backend = backend
        self._retention = telemetry_retention
        self._fanout = fanout_per_device
        self._cascade = cascade_delete
        self._clock = clock or _utcnow

    @property
    def backend(self) -> KeyValueBackend:
        return self._backend

    @property
    def telemetry_retention(self) -> int:
        return self._retention

    def now(self) -> datetime:
        return self._clock()

    # Devices

    def list_devices(self) -> List[Device]:
        device_ids = self._backend.set_members(keys.DEVICES_ALL)
        devices = self._load_many([keys.device(device_id) for device_id in device_ids], codec.decode_device)
        return sorted(devices, key=lambda device: device.id)

    def get_device(self, device_id: int) -> Optional[Device]:
        return self._load_one(keys.device(device_id), codec.decode_device)

    def create_device(
        self,
        name: str,
        device_type: DeviceType | str,
        location: str,
        status: DeviceStatus | str = DeviceStatus.OFFLINE,
    ) -> Device:
        device_type = DeviceType(device_type)
        status = DeviceStatus(status)
        device_id = self._backend.hash_increment_by(keys.COUNTERS, keys.DEVICE_COUNTER, 1)
        device = Device(
            id=device_id,
            name=name,
            device_type=device_type,
            location=location,
            status=status,
            registered_at=self._clock(),
        )
        batch = self._backend.batch()
        batch.hash_set(keys.device(device_id), codec.encode_device(device))
        batch.set_add(keys.DEVICES_ALL, device_id)
        batch.execute_strict()
        LOGGER.debug("Created device %s (%s)", device.id, device.name)
        return device

    def update_device(self, device_id: int, changes: Mapping[str, object]) -> Device:
        unknown = set(changes) - _DEVICE_FIELDS
        if unknown:
            raise ValueError(f"Unknown device fields: {', '.join(sorted(unknown))}")
        existing = self.get_device(device_id)
        if existing is None:
            raise NotFoundError("Device", device_id)
        normalized: Dict[str, object] = dict(changes)
        if "device_type" in normalized:
            normalized["device_type"] = DeviceType(normalized["device_type"])
        if "status" in normalized:
            normalized["status"] = DeviceStatus(normalized["status"])
        updated = dataclasses.replace(existing, **normalized)
        self._backend.hash_set(keys.device(device_id), codec.encode_device(updated))
        return updated

    def set_device_status(self, device_id: int, status: DeviceStatus | str) -> None:
        key = keys.device(device_id)
        if not self._backend.exists(key):
            raise NotFoundError("Device", device_id)
        self._backend.hash_set(key, "status", DeviceStatus(status).value)

    def delete_device(self, device_id: int) -> None:
        """Remove a device and its telemetry index; safe to repeat after a partial run."""

        self._backend.set_remove(keys.DEVICES_ALL, device_id)
        index_key = keys.device_telemetry(device_id)
        telemetry_ids: List[str] = []
        device_alerts: List[Alert] = []
        if self._cascade:
            telemetry_ids = self._backend.list_range(index_key, 0, -1)
            device_alerts = self.list_alerts_for_device(device_id)

        batch = self._backend.batch()
        for alert in device_alerts:
            batch.set_remove(keys.ALERTS_ALL, alert.id)
        batch.delete(index_key)
        batch.delete(keys.open_alerts(device_id))
        for telemetry_id in telemetry_ids:
            batch.delete(keys.telemetry(telemetry_id))
        for alert in device_alerts:
            batch.delete(keys.alert(alert.id))
        batch.delete(keys.device(device_id))
        failures = [outcome.error for outcome in batch.execute() if outcome.error is not None]
        if failures:
            LOGGER.warning(
                "Device %s deleted with %d cleanup failures (first: %s)",
                device_id,
                len(failures),
                failures[0],
            )
        else:
            LOGGER.debug(
                "Deleted device %s (%d telemetry, %d alerts)",
                device_id,
                len(telemetry_ids),
                len(device_alerts),
            )

    # Telemetry

    def list_telemetry_for_device(self, device_id: int, limit: int = 50) -> List[Telemetry]:
        if limit <= 0:
            return []
        telemetry_ids = self._backend.list_range(keys.device_telemetry(device_id), 0, limit - 1)
        return self._load_many([keys.telemetry(telemetry_id) for telemetry_id in telemetry_ids], codec.decode_telemetry)

    def get_latest_telemetry(self, device_id: int) -> Optional[Telemetry]:
        newest = self._backend.list_range(keys.device_telemetry(device_id), 0, 0)
        if not newest:
            return None
        return self._load_one(keys.telemetry(newest[0]), codec.decode_telemetry)

    def create_telemetry(
        self,
        device_id: int,
        *,
        battery_level: float,
        temperature: float,
        cpu_usage: float,
        memory_usage: float,
        memory_total: float,
        timestamp: Optional[datetime] = None,
    ) -> Telemetry:
        telemetry_id = self._backend.hash_increment_by(keys.COUNTERS, keys.TELEMETRY_COUNTER, 1)
        sample = Telemetry(
            id=telemetry_id,
            device_id=device_id,
            battery_level=float(battery_level),
            temperature=float(temperature),
            cpu_usage=float(cpu_usage),
            memory_usage=float(memory_usage),
            memory_total=float(memory_total),
            timestamp=timestamp or self._clock(),
        )
        index_key = keys.device_telemetry(device_id)
        batch = self._backend.batch()
        batch.hash_set(keys.telemetry(telemetry_id), codec.encode_telemetry(sample))
        batch.list_push_front(index_key, telemetry_id)
        if self._cascade:
            batch.list_range(index_key, self._retention, -1)
        batch.list_trim(index_key, 0, self._retention - 1)
        results = batch.execute_strict()

        if self._cascade:
            evicted = results[2]
            if evicted:
                self._delete_records(keys.telemetry(old_id) for old_id in evicted)
        return sample

    def list_telemetry_since(self, device_id: int, hours_ago: float = 24) -> List[Telemetry]:
        """Samples newer than the cutoff, drawn only from the device's retained window."""

        cutoff = self._clock() - timedelta(hours=hours_ago)
        window = self.list_telemetry_for_device(device_id, self._retention)
        return [sample for sample in window if sample.timestamp >= cutoff]

    def list_all_telemetry(self, limit: int = 100) -> List[Telemetry]:
        """Merge the newest samples of every device, newest first.

        Reads at most ``fanout_per_device`` samples per device, so cost scales
        with the device count rather than ``limit``.
        """

        if limit <= 0:
            return []
        device_ids = sorted(self._backend.set_members(keys.DEVICES_ALL), key=_numeric_key)
        batch = self._backend.batch()
        for device_id in device_ids:
            batch.list_range(keys.device_telemetry(device_id), 0, self._fanout - 1)
        record_keys: List[str] = []
        for device_id, outcome in zip(device_ids, batch.execute()):
            if outcome.error is not None:
                LOGGER.warning("Skipping telemetry index for device %s: %s", device_id, outcome.error)
                continue
            record_keys.extend(keys.telemetry(telemetry_id) for telemetry_id in outcome.result)
        samples = self._load_many(record_keys, codec.decode_telemetry)
        samples.sort(key=lambda sample: (sample.timestamp, sample.id), reverse=True)
        return samples[:limit]

    def count_telemetry(self) -> int:
        """Number of samples currently reachable through the per-device indexes."""

        device_ids = self._backend.set_members(keys.DEVICES_ALL)
        batch = self._backend.batch()
        for device_id in device_ids:
            batch.list_range(keys.device_telemetry(device_id), 0, -1)
        return sum(len(outcome.result) for outcome in batch.execute() if outcome.error is None)

    # Alerts

    def list_alerts(self, limit: Optional[int] = 50) -> List[Alert]:
        alert_ids = self._backend.set_members(keys.ALERTS_ALL)
        alerts = self._load_many([keys.alert(alert_id) for alert_id in alert_ids], codec.decode_alert)
        alerts.sort(key=lambda alert: (alert.created_at, alert.id), reverse=True)
        if limit is None or limit <= 0:
            return alerts
        return alerts[:limit]

    def list_alerts_for_device(self, device_id: int) -> List[Alert]:
        return [alert for alert in self.list_alerts(limit=None) if alert.device_id == device_id]

    def list_unacknowledged_alerts(self) -> List[Alert]:
        return [alert for alert in self.list_alerts(limit=None) if not alert.acknowledged]

    def create_alert(
        self,
        device_id: int,
        alert_type: str,
        message: str,
        severity: AlertSeverity | str,
    ) -> Alert:
        severity = AlertSeverity(severity)
        alert_id = self._backend.hash_increment_by(keys.COUNTERS, keys.ALERT_COUNTER, 1)
        alert = Alert(
            id=alert_id,
            device_id=device_id,
            alert_type=alert_type,
            message=message,
            severity=severity,
            acknowledged=False,
            created_at=self._clock(),
        )
        batch = self._backend.batch()
        batch.hash_set(keys.alert(alert_id), codec.encode_alert(alert))
        batch.set_add(keys.ALERTS_ALL, alert_id)
        batch.set_add(keys.open_alerts(device_id), alert_type)
        batch.execute_strict()
        return alert

    def acknowledge_alert(self, alert_id: int) -> Alert:
        """Mark an alert acknowledged; repeating the call is a no-op."""

        alert = self._load_one(keys.alert(alert_id), codec.decode_alert)
        if alert is None:
            raise NotFoundError("Alert", alert_id)
        if alert.acknowledged:
            return alert
        self._backend.hash_set(keys.alert(alert_id), "acknowledged", codec.format_bool(True))
        acknowledged = dataclasses.replace(alert, acknowledged=True)
        still_open = any(
            other.alert_type == alert.alert_type and not other.acknowledged
            for other in self.list_alerts_for_device(alert.device_id)
        )
        if not still_open:
            self._backend.set_remove(keys.open_alerts(alert.device_id), alert.alert_type)
        return acknowledged

    def has_open_alert(self, device_id: int, alert_type: str) -> bool:
        return alert_type in self._backend.set_members(keys.open_alerts(device_id))

    # Helpers

    def _load_one(self, key: str, decode: Callable[[Mapping[str, str]], Optional[_E]]) -> Optional[_E]:
        fields = self._backend.hash_get_all(key)
        try:
            return decode(fields)
        except CodecError as exc:
            LOGGER.warning("Treating undecodable record %s as absent: %s", key, exc)
            return None

    def _load_many(
        self,
        record_keys: Sequence[str],
        decode: Callable[[Mapping[str, str]], Optional[_E]],
    ) -> List[_E]:
        if not record_keys:
            return []
        batch = self._backend.batch()
        for key in record_keys:
            batch.hash_get_all(key)
        entities: List[_E] = []
        for key, outcome in zip(record_keys, batch.execute()):
            if outcome.error is not None:
                LOGGER.warning("Skipping record %s: %s", key, outcome.error)
                continue
            try:
                entity = decode(outcome.result)
            except CodecError as exc:
                LOGGER.warning("Skipping undecodable record %s: %s", key, exc)
                continue
            if entity is not None:
                entities.append(entity)
        return entities

    def _delete_records(self, record_keys: Iterable[str]) -> None:
        batch = self._backend.batch()
        for key in record_keys:
            batch.delete(key)
        for outcome in batch.execute():
            if outcome.error is not None:
                LOGGER.warning("Failed to reclaim record: %s", outcome.error)


def _numeric_key(value: str) -> Tuple[int, str]:
    try:
        return int(value), value
    except ValueError:
        return 0, value


__all__ = ["DEFAULT_FANOUT_PER_DEVICE", "DEFAULT_TELEMETRY_RETENTION", "FleetRepository"]
