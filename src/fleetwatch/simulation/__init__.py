"""Telemetry simulation and threshold alerting."""

from fleetwatch.simulation.engine import SimulationEngine, TickReport
from fleetwatch.simulation.rules import AlertDecision, AlertThresholds, evaluate_reading
from fleetwatch.simulation.sampler import SensorReading, TelemetrySampler
from fleetwatch.simulation.scheduler import SimulationScheduler

__all__ = [
    "AlertDecision",
    "AlertThresholds",
    "SensorReading",
    "SimulationEngine",
    "SimulationScheduler",
    "TelemetrySampler",
    "TickReport",
    "evaluate_reading",
]
