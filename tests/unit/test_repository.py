from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fleetwatch.errors import BatchOperationError, NotFoundError
from fleetwatch.models.types import AlertSeverity, DeviceStatus, DeviceType
from fleetwatch.repository import keys
from fleetwatch.repository.store import FleetRepository
from fleetwatch.storage.memory import MemoryBackend


class _Clock:
    def __init__(self) -> None:
        self.current = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> None:
        self.current += timedelta(**delta)


def _repo(**kwargs) -> tuple[FleetRepository, MemoryBackend, _Clock]:
    backend = MemoryBackend()
    clock = _Clock()
    return FleetRepository(backend, clock=clock, **kwargs), backend, clock


def _add_sample(repo: FleetRepository, device_id: int, battery: float = 80.0, **overrides):
    values = dict(battery_level=battery, temperature=30.0, cpu_usage=20.0, memory_usage=0.4, memory_total=2.0)
    values.update(overrides)
    return repo.create_telemetry(device_id, **values)


def test_create_device_assigns_monotonic_ids_and_defaults_offline() -> None:
    repo, backend, clock = _repo()
    first = repo.create_device("Pump Controller 01", DeviceType.PUMP_CONTROLLER, "Factory Floor A")
    second = repo.create_device("Flow Meter 05", "Flow Rate Meter", "Pipeline C", "online")

    assert (first.id, second.id) == (1, 2)
    assert first.status is DeviceStatus.OFFLINE
    assert second.device_type is DeviceType.FLOW_METER
    assert first.registered_at == clock.current
    assert backend.set_members(keys.DEVICES_ALL) == {"1", "2"}
    assert repo.get_device(1) == first
    assert [device.id for device in repo.list_devices()] == [1, 2]


def test_invalid_device_type_is_rejected_before_any_write() -> None:
    repo, backend, _ = _repo()
    with pytest.raises(ValueError):
        repo.create_device("X", "Toaster", "Kitchen")
    assert backend.hash_get_all(keys.COUNTERS) == {}
    assert backend.set_members(keys.DEVICES_ALL) == set()


def test_ids_are_not_reused_after_delete() -> None:
    repo, _, _ = _repo()
    device = repo.create_device("A", DeviceType.FLOW_METER, "Here")
    repo.delete_device(device.id)
    assert repo.create_device("B", DeviceType.FLOW_METER, "Here").id == 2


def test_update_device_merges_fields_and_requires_existence() -> None:
    repo, _, _ = _repo()
    device = repo.create_device("Temp Sensor 02", DeviceType.TEMPERATURE_SENSOR, "Warehouse B", "warning")

    updated = repo.update_device(device.id, {"location": "Warehouse C", "status": "online"})

    assert updated.location == "Warehouse C"
    assert updated.status is DeviceStatus.ONLINE
    assert updated.name == device.name
    assert updated.registered_at == device.registered_at
    assert repo.get_device(device.id) == updated
    with pytest.raises(NotFoundError):
        repo.update_device(99, {"name": "ghost"})
    with pytest.raises(ValueError):
        repo.update_device(device.id, {"id": 7})


def test_set_device_status_on_absent_device_writes_nothing() -> None:
    repo, backend, _ = _repo()
    with pytest.raises(NotFoundError):
        repo.set_device_status(3, DeviceStatus.CRITICAL)
    assert not backend.exists(keys.device(3))


def test_telemetry_round_trip_through_latest() -> None:
    repo, _, _ = _repo()
    device = repo.create_device("Vibration Unit 03", DeviceType.VIBRATION_UNIT, "Line 1", "online")
    created = _add_sample(repo, device.id, battery=67.891, temperature=41.25, cpu_usage=33.3, memory_usage=2.5, memory_total=8.0)

    latest = repo.get_latest_telemetry(device.id)

    assert latest is not None
    assert latest.id == created.id
    assert latest.battery_level == pytest.approx(67.891)
    assert latest.temperature == pytest.approx(41.25)
    assert latest.cpu_usage == pytest.approx(33.3)
    assert latest.memory_usage == pytest.approx(2.5)
    assert latest.memory_total == pytest.approx(8.0)
    assert repo.get_latest_telemetry(999) is None


def test_telemetry_index_is_trimmed_to_retention_newest_first() -> None:
    repo, backend, clock = _repo()
    device = repo.create_device("Pump", DeviceType.PUMP_CONTROLLER, "A", "online")
    for _ in range(105):
        clock.advance(seconds=10)
        _add_sample(repo, device.id)

    history = repo.list_telemetry_for_device(device.id, 1000)

    assert len(history) == 100
    assert history[0].timestamp == clock.current
    assert [sample.timestamp for sample in history] == sorted((s.timestamp for s in history), reverse=True)
    assert [sample.id for sample in history][-1] == 6
    # trimmed samples are reclaimed with cascade enabled
    assert backend.hash_get_all(keys.telemetry(1)) == {}
    assert backend.hash_get_all(keys.telemetry(6)) != {}


def test_trimmed_records_remain_when_cascade_disabled() -> None:
    repo, backend, _ = _repo(telemetry_retention=3, cascade_delete=False)
    device = repo.create_device("Pump", DeviceType.PUMP_CONTROLLER, "A", "online")
    for _ in range(5):
        _add_sample(repo, device.id)

    assert len(repo.list_telemetry_for_device(device.id, 10)) == 3
    assert backend.hash_get_all(keys.telemetry(1)) != {}


def test_list_telemetry_for_device_honours_limit() -> None:
    repo, _, clock = _repo()
    device = repo.create_device("Pump", DeviceType.PUMP_CONTROLLER, "A", "online")
    for _ in range(8):
        clock.advance(minutes=1)
        _add_sample(repo, device.id)

    assert [sample.id for sample in repo.list_telemetry_for_device(device.id, 3)] == [8, 7, 6]
    assert repo.list_telemetry_for_device(device.id, 0) == []


def test_list_telemetry_since_filters_the_retained_window() -> None:
    repo, _, clock = _repo()
    device = repo.create_device("Pump", DeviceType.PUMP_CONTROLLER, "A", "online")
    start = clock.current
    for hours_ago in (30, 20, 5, 1):
        _add_sample(repo, device.id, timestamp=start - timedelta(hours=hours_ago))

    recent = repo.list_telemetry_since(device.id, 24)

    assert [sample.timestamp for sample in recent] == [start - timedelta(hours=1), start - timedelta(hours=5), start - timedelta(hours=20)]
    assert len(repo.list_telemetry_since(device.id, 2)) == 1


def test_list_all_telemetry_merges_devices_newest_first() -> None:
    repo, _, clock = _repo()
    devices = [repo.create_device(f"D{i}", DeviceType.FLOW_METER, "Site", "online") for i in range(3)]
    for _ in range(10):
        for device in devices:
            clock.advance(seconds=1)
            _add_sample(repo, device.id)

    merged = repo.list_all_telemetry(5)

    assert len(merged) == 5
    timestamps = [sample.timestamp for sample in merged]
    assert timestamps == sorted(timestamps, reverse=True)
    assert timestamps[0] == clock.current
    assert {sample.device_id for sample in merged} == {1, 2, 3}


def test_list_all_telemetry_reads_a_bounded_slice_per_device() -> None:
    repo, _, _ = _repo(fanout_per_device=2)
    devices = [repo.create_device(f"D{i}", DeviceType.FLOW_METER, "Site", "online") for i in range(2)]
    for device in devices:
        for _ in range(5):
            _add_sample(repo, device.id)

    assert len(repo.list_all_telemetry(100)) == 4
    assert repo.count_telemetry() == 10


def test_delete_device_is_idempotent_and_hides_telemetry() -> None:
    repo, backend, _ = _repo()
    device = repo.create_device("Pressure Valve 04", DeviceType.PRESSURE_VALVE, "Boiler Room", "online")
    for _ in range(3):
        _add_sample(repo, device.id)
    alert = repo.create_alert(device.id, "battery", "low", AlertSeverity.CRITICAL)

    repo.delete_device(device.id)
    repo.delete_device(device.id)

    assert repo.get_device(device.id) is None
    assert repo.list_telemetry_for_device(device.id, 100) == []
    assert repo.list_alerts() == []
    assert backend.hash_get_all(keys.telemetry(1)) == {}
    assert backend.hash_get_all(keys.alert(alert.id)) == {}
    assert not backend.exists(keys.open_alerts(device.id))
    assert backend.set_members(keys.DEVICES_ALL) == set()


def test_delete_without_cascade_orphans_records_but_hides_them() -> None:
    repo, backend, _ = _repo(cascade_delete=False)
    device = repo.create_device("Pump", DeviceType.PUMP_CONTROLLER, "A", "online")
    sample = _add_sample(repo, device.id)
    repo.create_alert(device.id, "battery", "low", "critical")

    repo.delete_device(device.id)

    assert repo.list_telemetry_for_device(device.id, 100) == []
    assert backend.hash_get_all(keys.telemetry(sample.id)) != {}
    assert len(repo.list_alerts()) == 1


def test_delete_of_unknown_device_is_not_an_error() -> None:
    repo, _, _ = _repo()
    repo.delete_device(12345)


def test_alerts_sorted_newest_first_and_limited() -> None:
    repo, _, clock = _repo()
    device = repo.create_device("Pump", DeviceType.PUMP_CONTROLLER, "A", "online")
    for index in range(5):
        clock.advance(minutes=1)
        repo.create_alert(device.id, "temperature", f"alert {index}", AlertSeverity.WARNING)

    newest = repo.list_alerts(3)

    assert [alert.message for alert in newest] == ["alert 4", "alert 3", "alert 2"]
    assert all(alert.acknowledged is False for alert in newest)
    assert len(repo.list_alerts(None)) == 5
    assert len(repo.list_alerts_for_device(device.id)) == 5
    assert repo.list_alerts_for_device(device.id + 1) == []


def test_acknowledge_alert_is_idempotent() -> None:
    repo, _, _ = _repo()
    device = repo.create_device("Pump", DeviceType.PUMP_CONTROLLER, "A", "online")
    alert = repo.create_alert(device.id, "battery", "low", AlertSeverity.CRITICAL)

    first = repo.acknowledge_alert(alert.id)
    second = repo.acknowledge_alert(alert.id)

    assert first.acknowledged and second.acknowledged
    assert first == second
    assert repo.list_unacknowledged_alerts() == []
    with pytest.raises(NotFoundError):
        repo.acknowledge_alert(404)


def test_open_alert_index_tracks_unacknowledged_types() -> None:
    repo, _, _ = _repo()
    device = repo.create_device("Pump", DeviceType.PUMP_CONTROLLER, "A", "online")
    first = repo.create_alert(device.id, "battery", "low", AlertSeverity.CRITICAL)
    second = repo.create_alert(device.id, "battery", "lower", AlertSeverity.CRITICAL)

    assert repo.has_open_alert(device.id, "battery")
    assert not repo.has_open_alert(device.id, "temperature")
    repo.acknowledge_alert(first.id)
    assert repo.has_open_alert(device.id, "battery")
    repo.acknowledge_alert(second.id)
    assert not repo.has_open_alert(device.id, "battery")


def test_undecodable_records_are_skipped(caplog: pytest.LogCaptureFixture) -> None:
    repo, backend, _ = _repo()
    repo.create_device("Pump", DeviceType.PUMP_CONTROLLER, "A", "online")
    backend.hash_set(keys.device(2), {"name": "half-written"})
    backend.set_add(keys.DEVICES_ALL, 2)

    with caplog.at_level("WARNING"):
        devices = repo.list_devices()

    assert [device.id for device in devices] == [1]
    assert repo.get_device(2) is None
    assert "device:2" in caplog.text


def test_create_fails_loudly_when_a_required_step_fails() -> None:
    repo, backend, _ = _repo()
    backend.hash_set(keys.DEVICES_ALL, {"oops": "hash"})
    with pytest.raises(BatchOperationError):
        repo.create_device("Pump", DeviceType.PUMP_CONTROLLER, "A")
