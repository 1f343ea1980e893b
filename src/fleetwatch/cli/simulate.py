"""Run the telemetry simulation against the configured store."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import threading
from typing import Sequence

from fleetwatch.app import FleetApp, build_app
from fleetwatch.cli._helpers import add_common_args, configure_logging, load_cli_config, load_settings

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fleetwatch-sim",
        description="Generate synthetic telemetry and threshold alerts for every non-offline device.",
    )
    add_common_args(parser)
    parser.add_argument(
        "--ticks",
        type=int,
        default=0,
        help="Run this many ticks back to back and exit (default: run on the schedule until interrupted)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between scheduled ticks (default: simulation.interval_seconds)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible readings",
    )
    return parser


def _run_ticks(app: FleetApp, count: int) -> int:
    failures = 0
    for index in range(1, count + 1):
        report = app.engine.tick()
        failures += len(report.failures)
        LOGGER.info(
            "Tick %d/%d: %d sampled, %d offline, %d alert(s)",
            index,
            count,
            report.sampled,
            report.skipped,
            len(report.alerts),
        )
    stats = app.stats.compute_stats()
    LOGGER.info(
        "Fleet: %d/%d online (%d%%), %d active alert(s), %d critical",
        stats.online_devices,
        stats.total_devices,
        stats.uptime_percentage,
        stats.active_alerts,
        stats.critical_alerts,
    )
    return 1 if failures else 0


def _run_forever(app: FleetApp) -> int:
    app.start()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        LOGGER.info("Interrupted; stopping simulation")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.ticks < 0:
        parser.error("--ticks must be >= 0")
    if args.interval is not None and args.interval <= 0:
        parser.error("--interval must be > 0")

    configure_logging(args.verbose)
    settings = load_settings(args.redis_url)
    config = load_cli_config(args.config, settings)
    LOGGER.info("Config loaded (version=%s)", config.config_version)

    simulation = config.simulation
    if args.seed is not None:
        simulation = dataclasses.replace(simulation, seed=args.seed)
    if args.interval is not None:
        simulation = dataclasses.replace(simulation, interval_seconds=args.interval)
    config = dataclasses.replace(config, simulation=dataclasses.replace(simulation, enabled=True))

    app = build_app(config, settings)
    try:
        if args.ticks:
            return _run_ticks(app, args.ticks)
        return _run_forever(app)
    finally:
        app.stop()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
