"""Background thread running simulation ticks on a fixed period."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from fleetwatch.simulation.engine import SimulationEngine

LOGGER = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 10.0


class SimulationScheduler:
    def __init__(
        self,
        engine: SimulationEngine,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        run_immediately: bool = True,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._engine = engine
        self._interval = interval_seconds
        self._run_immediately = run_immediately
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._ticks = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def ticks_completed(self) -> int:
        with self._lock:
            return self._ticks

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="fleetwatch-simulation", daemon=True)
        self._thread.start()
        LOGGER.info("Simulation scheduler started (every %.1fs)", self._interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        self._thread = None
        LOGGER.info("Simulation scheduler stopped after %d ticks", self.ticks_completed)

    def run_once(self) -> None:
        try:
            self._engine.tick()
        except Exception:  # pylint: disable=broad-exception-caught
            LOGGER.exception("Simulation tick failed")
        with self._lock:
            self._ticks += 1

    def _run(self) -> None:
        if self._run_immediately and not self._stop.is_set():
            self.run_once()
        while not self._stop.wait(self._interval):
            self.run_once()


__all__ = ["DEFAULT_INTERVAL_SECONDS", "SimulationScheduler"]
