"""Aggregated fleet statistics."""

from fleetwatch.analytics.stats import DataPointsMode, FleetStats, StatsService

__all__ = ["DataPointsMode", "FleetStats", "StatsService"]
