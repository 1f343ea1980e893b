"""Wiring of backend, repository, simulation and contract layers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from fleetwatch.analytics.stats import StatsService
from fleetwatch.api.dashboard import FleetDashboard
from fleetwatch.config.loader import Config, default_config
from fleetwatch.config.settings import Settings
from fleetwatch.demo.seed import SampleFleetSeeder
from fleetwatch.repository.store import FleetRepository
from fleetwatch.simulation.engine import SimulationEngine
from fleetwatch.simulation.rules import AlertThresholds
from fleetwatch.simulation.sampler import TelemetrySampler
from fleetwatch.simulation.scheduler import SimulationScheduler
from fleetwatch.storage.handle import BackendHandle, open_backend

LOGGER = logging.getLogger(__name__)


@dataclass
class FleetApp:
    config: Config
    backend: BackendHandle
    repository: FleetRepository
    engine: SimulationEngine
    scheduler: SimulationScheduler
    stats: StatsService
    dashboard: FleetDashboard

    def start(self) -> None:
        if self.config.simulation.enabled:
            self.scheduler.start()
        else:
            LOGGER.info("Simulation disabled by config")

    def stop(self) -> None:
        self.scheduler.stop(timeout=self.config.simulation.interval_seconds)
        self.backend.close()

    def __enter__(self) -> "FleetApp":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


def build_app(
    config: Optional[Config] = None,
    settings: Optional[Settings] = None,
    *,
    backend: Optional[BackendHandle] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FleetApp:
    """Assemble every component from config; nothing is started."""

    config = config or default_config()
    if backend is None:
        url = settings.resolve_backend_url(config.backend.url) if settings is not None else config.backend.url
        backend = open_backend(
            url,
            connect_timeout_ms=config.backend.connect_timeout_ms,
            command_timeout_ms=config.backend.command_timeout_ms,
        )

    repository = FleetRepository(
        backend,
        telemetry_retention=config.retention.telemetry_per_device,
        fanout_per_device=config.retention.fanout_per_device,
        cascade_delete=config.retention.cascade_delete,
        clock=clock,
    )
    sampler = TelemetrySampler(config.simulation.seed)
    engine = SimulationEngine(
        repository,
        sampler=sampler,
        thresholds=AlertThresholds(
            battery_critical_below=config.alerts.battery_critical_below,
            temperature_warning_above=config.alerts.temperature_warning_above,
        ),
        dedupe_open_alerts=config.alerts.dedupe_open_alerts,
    )
    stats = StatsService(repository, data_points_mode=config.stats.data_points_mode)

    if config.demo.seed_on_empty:
        seeder = SampleFleetSeeder(repository, with_history=config.demo.with_history, sampler=sampler)
        backend.set_degrade_callback(seeder.reseed)
        seeder.seed()

    LOGGER.info(
        "Fleet core ready (backend=%s%s)",
        backend.name,
        ", degraded" if backend.degraded else "",
    )
    return FleetApp(
        config=config,
        backend=backend,
        repository=repository,
        engine=engine,
        scheduler=SimulationScheduler(
            engine,
            interval_seconds=config.simulation.interval_seconds,
            run_immediately=config.simulation.run_immediately,
        ),
        stats=stats,
        dashboard=FleetDashboard(repository, stats),
    )


__all__ = ["FleetApp", "build_app"]
