"""Storage, simulation and alerting core for the fleet dashboard."""

__version__ = "0.1.0"
