"""Inspect and manage the fleet from the command line."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Sequence, TextIO

from fleetwatch.api.dashboard import ApiResponse, FleetDashboard
from fleetwatch.app import build_app
from fleetwatch.cli._helpers import add_common_args, configure_logging, load_cli_config, load_settings

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fleetwatch",
        description="Query devices, telemetry, alerts and fleet statistics.",
    )
    add_common_args(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("stats", help="Print fleet-wide statistics")
    subparsers.add_parser("devices", help="List devices with their latest telemetry")

    device = subparsers.add_parser("device", help="Show one device with history and alerts")
    device.add_argument("device_id", type=int)

    telemetry = subparsers.add_parser("telemetry", help="List the newest telemetry across the fleet")
    telemetry.add_argument("--limit", type=int, default=None, help="Maximum samples (default: 100)")
    telemetry.add_argument("--device", type=int, default=None, help="Only this device, filtered by --hours")
    telemetry.add_argument("--hours", type=float, default=None, help="Window for --device (default: 24)")

    alerts = subparsers.add_parser("alerts", help="List the newest alerts")
    alerts.add_argument("--limit", type=int, default=None, help="Maximum alerts (default: 50)")

    ack = subparsers.add_parser("ack", help="Acknowledge an alert")
    ack.add_argument("alert_id", type=int)

    delete = subparsers.add_parser("delete", help="Delete a device and its telemetry")
    delete.add_argument("device_id", type=int)

    return parser


def dispatch(dashboard: FleetDashboard, args: argparse.Namespace) -> ApiResponse:
    if args.command == "stats":
        return dashboard.call("stats")
    if args.command == "devices":
        return dashboard.call("list_devices")
    if args.command == "device":
        return dashboard.call("get_device", args.device_id)
    if args.command == "telemetry":
        if args.device is not None:
            return dashboard.call("device_telemetry", args.device, args.hours)
        return dashboard.call("list_telemetry", args.limit)
    if args.command == "alerts":
        return dashboard.call("list_alerts", args.limit)
    if args.command == "ack":
        return dashboard.call("acknowledge_alert", args.alert_id)
    if args.command == "delete":
        return dashboard.call("delete_device", args.device_id)
    raise ValueError(f"Unknown command: {args.command}")


def _emit(response: ApiResponse, stream: TextIO) -> None:
    json.dump(response.body, stream, indent=2, ensure_ascii=False)
    stream.write("\n")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    settings = load_settings(args.redis_url)
    config = load_cli_config(args.config, settings)
    LOGGER.debug("Config loaded (version=%s)", config.config_version)

    app = build_app(config, settings)
    try:
        response = dispatch(app.dashboard, args)
    finally:
        app.stop()
    _emit(response, sys.stdout if response.status_code < 400 else sys.stderr)
    return 0 if response.status_code < 400 else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
