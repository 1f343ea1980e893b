"""Entity repository over the key-value backend."""

from fleetwatch.repository.store import FleetRepository

__all__ = ["FleetRepository"]
