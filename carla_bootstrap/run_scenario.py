from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from .bootstrap import BootstrapReport, ScenarioBootstrap, exit_code_for
from .errors import BootstrapError, PreconditionError
from .model import SensorSettings
from .settings import BootstrapSettings, load_settings


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Spawn a randomized vehicle in CARLA, point the spectator at it and clean up"
    )
    parser.add_argument(
        "address",
        nargs="*",
        metavar="HOST PORT",
        help="CARLA host and RPC port (default: localhost 2000)",
    )
    parser.add_argument("--timeout", type=float, default=None, help="RPC timeout in seconds (default 40)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the random selections")
    parser.add_argument("--config", type=Path, default=None, help="JSON settings file")
    parser.add_argument(
        "--sensor",
        action="store_true",
        help="Attach a semantic segmentation camera and save its frames",
    )
    parser.add_argument("--sensor-duration", type=float, default=None, help="Streaming time in seconds")
    parser.add_argument("--output-dir", default=None, help="Directory for saved camera frames")
    parser.add_argument("--opendrive", default=None, help="Map name or .xodr path to build the world from")
    parser.add_argument("--content-root", type=Path, default=None, help="Directory searched for .xodr files")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def _parse_address(address: Sequence[str]) -> tuple[str | None, int | None]:
    if len(address) not in (0, 2):
        raise PreconditionError("Expected either no positional arguments or exactly HOST PORT")
    if not address:
        return None, None
    try:
        return address[0], int(address[1])
    except ValueError as exc:
        raise PreconditionError(f"Invalid port '{address[1]}'") from exc


def build_settings(args: argparse.Namespace) -> BootstrapSettings:
    """Merge the optional settings file with command line overrides."""

    host, port = _parse_address(args.address)
    settings = load_settings(args.config) if args.config else BootstrapSettings()

    endpoint = settings.endpoint
    overrides: dict[str, Any] = {}
    if host is not None:
        overrides["host"] = host
        overrides["port"] = port
    if args.timeout is not None:
        overrides["timeout"] = args.timeout
    if overrides:
        endpoint = dataclasses.replace(endpoint, **overrides)

    sensor = settings.sensor
    if args.sensor and sensor is None:
        sensor = SensorSettings()
    if sensor is not None:
        if args.sensor_duration is not None:
            sensor = dataclasses.replace(sensor, duration_s=args.sensor_duration)
        if args.output_dir is not None:
            sensor = dataclasses.replace(sensor, output_dir=args.output_dir)

    return dataclasses.replace(
        settings,
        endpoint=endpoint,
        seed=args.seed if args.seed is not None else settings.seed,
        sensor=sensor,
        opendrive=args.opendrive or settings.opendrive,
        content_root=args.content_root or settings.content_root,
    )


def report_outcome(report: BootstrapReport) -> int:
    if report.error is None:
        return report.exit_code
    if isinstance(report.error, TimeoutError):
        print(f"\n{report.error}")
    else:
        print(f"\nException: {report.error}")
    return report.exit_code


def main(argv: Sequence[str] | None = None, api: Any = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper()), format="%(levelname)s:%(name)s:%(message)s")

    try:
        settings = build_settings(args)
    except BootstrapError as exc:
        print(f"\nException: {exc}")
        return exit_code_for(exc)

    report = ScenarioBootstrap(settings, api=api).run()
    return report_outcome(report)


if __name__ == "__main__":
    sys.exit(main())
