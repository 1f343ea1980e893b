from __future__ import annotations

import time

from fleetwatch.demo.seed import seed_sample_fleet
from fleetwatch.repository.store import FleetRepository
from fleetwatch.simulation.engine import SimulationEngine
from fleetwatch.simulation.sampler import TelemetrySampler
from fleetwatch.simulation.scheduler import SimulationScheduler
from fleetwatch.storage.memory import MemoryBackend


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_scheduler_ticks_until_stopped() -> None:
    repo = FleetRepository(MemoryBackend())
    seed_sample_fleet(repo)
    scheduler = SimulationScheduler(SimulationEngine(repo, sampler=TelemetrySampler(seed=5)), interval_seconds=0.02)

    scheduler.start()
    try:
        assert scheduler.running
        assert _wait_for(lambda: scheduler.ticks_completed >= 3)
    finally:
        scheduler.stop(timeout=1.0)

    assert not scheduler.running
    settled = scheduler.ticks_completed
    time.sleep(0.1)
    assert scheduler.ticks_completed == settled
    assert repo.count_telemetry() >= 3 * 4


def test_tick_errors_do_not_kill_the_thread(caplog) -> None:
    class _FailingEngine(SimulationEngine):
        def tick(self):
            raise RuntimeError("tick failed")

    scheduler = SimulationScheduler(_FailingEngine(FleetRepository(MemoryBackend())), interval_seconds=0.02)

    with caplog.at_level("ERROR"):
        scheduler.start()
        try:
            assert _wait_for(lambda: scheduler.ticks_completed >= 2)
            assert scheduler.running
        finally:
            scheduler.stop(timeout=1.0)

    assert "Simulation tick failed" in caplog.text


def test_first_tick_runs_on_start() -> None:
    repo = FleetRepository(MemoryBackend())
    seed_sample_fleet(repo)
    scheduler = SimulationScheduler(SimulationEngine(repo, sampler=TelemetrySampler(seed=5)), interval_seconds=60.0)

    scheduler.start()
    try:
        assert _wait_for(lambda: scheduler.ticks_completed == 1)
        assert repo.count_telemetry() == 4
    finally:
        scheduler.stop(timeout=1.0)


def test_first_tick_can_wait_for_the_interval() -> None:
    repo = FleetRepository(MemoryBackend())
    seed_sample_fleet(repo)
    scheduler = SimulationScheduler(
        SimulationEngine(repo, sampler=TelemetrySampler(seed=5)), interval_seconds=60.0, run_immediately=False
    )

    scheduler.start()
    try:
        time.sleep(0.1)
        assert scheduler.ticks_completed == 0
    finally:
        scheduler.stop(timeout=1.0)
    assert repo.count_telemetry() == 0
