from __future__ import annotations

from fleetwatch.demo.seed import SAMPLE_DEVICES, SampleFleetSeeder, seed_sample_fleet, top_up_sample_fleet
from fleetwatch.errors import BackendUnavailable
from fleetwatch.repository.store import FleetRepository
from fleetwatch.simulation.sampler import TelemetrySampler
from fleetwatch.storage.handle import BackendHandle
from fleetwatch.storage.memory import MemoryBackend


class _DropsOnFirstIncrement(MemoryBackend):
    """Networked driver whose server goes away at the first id allocation."""

    name = "redis"

    def __init__(self, *, allowed: int = 0) -> None:
        super().__init__()
        self._allowed = allowed

    def hash_increment_by(self, key: str, field: str, delta: int) -> int:
        if self._allowed <= 0:
            raise BackendUnavailable("ConnectionError: Connection reset by peer")
        self._allowed -= 1
        return super().hash_increment_by(key, field, delta)


def _sample_names() -> list:
    return sorted(name for name, *_ in SAMPLE_DEVICES)


def _seeded(driver: MemoryBackend, *, with_history: bool = False) -> FleetRepository:
    handle = BackendHandle(driver)
    repo = FleetRepository(handle)
    seeder = SampleFleetSeeder(repo, with_history=with_history, sampler=TelemetrySampler(seed=1))
    handle.set_degrade_callback(seeder.reseed)
    seeder.seed()
    return repo


def test_seed_only_touches_an_empty_store() -> None:
    repo = FleetRepository(MemoryBackend())

    assert len(seed_sample_fleet(repo)) == 5
    assert seed_sample_fleet(repo) == []
    assert sorted(device.name for device in repo.list_devices()) == _sample_names()


def test_degrade_during_seeding_yields_one_sample_fleet() -> None:
    repo = _seeded(_DropsOnFirstIncrement())

    devices = repo.list_devices()
    assert sorted(device.name for device in devices) == _sample_names()
    assert [device.id for device in devices] == [1, 2, 3, 4, 5]
    assert isinstance(repo.backend.backend, MemoryBackend)


def test_degrade_midway_restores_the_missing_devices() -> None:
    repo = _seeded(_DropsOnFirstIncrement(allowed=2))

    assert sorted(device.name for device in repo.list_devices()) == _sample_names()


def test_degrade_during_seeding_keeps_history_for_every_device() -> None:
    repo = _seeded(_DropsOnFirstIncrement(allowed=1), with_history=True)

    for device in repo.list_devices():
        assert len(repo.list_telemetry_for_device(device.id, 100)) == 24


def test_degrade_after_startup_reseeds_the_new_store() -> None:
    driver = _DropsOnFirstIncrement(allowed=5)
    repo = _seeded(driver)
    assert len(repo.list_devices()) == 5

    repo.create_device("Spare Meter", "Flow Rate Meter", "Depot")

    assert sorted(device.name for device in repo.list_devices()) == sorted(_sample_names() + ["Spare Meter"])


def test_top_up_leaves_present_devices_alone() -> None:
    repo = FleetRepository(MemoryBackend())
    repo.create_device("Temp Sensor 02", "Temperature Monitoring Sensor", "Warehouse B", "warning")

    created = top_up_sample_fleet(repo)

    assert len(created) == 4
    assert sorted(device.name for device in repo.list_devices()) == _sample_names()
