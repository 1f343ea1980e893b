"""Protocol-neutral contract for dashboard routers."""

from fleetwatch.api.dashboard import ApiResponse, FleetDashboard

__all__ = ["ApiResponse", "FleetDashboard"]
