#!/usr/bin/env python3
"""
Poll NOAA SWPC space-weather feeds and relay each reading as an OSC message
over UDP.

Usage:
  solar-relay [--config FILE] [--dest HOST:PORT ...] [--interval SECONDS]
              [--timeout SECONDS] [--once] [--quiet] [--verbose]

Defaults:
  --dest      127.0.0.1:6000 and 127.0.0.1:6001
  --interval  60
  --timeout   10

Environment:
  SOLAR_RELAY_CONFIG, SOLAR_RELAY_DESTINATIONS, SOLAR_RELAY_INTERVAL,
  SOLAR_RELAY_TIMEOUT (flags win over the environment, which wins over the
  config file).
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path

from .config import ConfigError, load_settings
from .orchestrator import PollOrchestrator
from .report import format_banner, print_reading

LOG_FORMAT = "[solar-relay] %(levelname)s: %(message)s"


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help="YAML settings file")
    parser.add_argument(
        "-d",
        "--dest",
        action="append",
        metavar="HOST:PORT",
        help="UDP destination; repeat for several (replaces configured list)",
    )
    parser.add_argument("--interval", type=float, help="Seconds between poll cycles (default: 60)")
    parser.add_argument("--timeout", type=float, help="HTTP timeout in seconds (default: 10)")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    parser.add_argument("-q", "--quiet", action="store_true", help="Do not print the per-cycle report")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every datagram sent")
    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def install_signal_handlers(orchestrator: PollOrchestrator) -> None:
    def handle(signum, frame):  # noqa: ARG001
        print("\nTermination signal received. Terminating...", flush=True)
        orchestrator.stop()

    signal.signal(signal.SIGINT, handle)
    signal.signal(signal.SIGTERM, handle)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.verbose)

    try:
        settings = load_settings(args.config).merged(
            destinations=args.dest,
            interval=args.interval,
            timeout=args.timeout,
            display=False if args.quiet else None,
        )
    except ConfigError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 2

    orchestrator = PollOrchestrator.from_settings(
        settings,
        display=print_reading if settings.display else None,
    )
    install_signal_handlers(orchestrator)

    print(format_banner(settings), flush=True)
    orchestrator.run(max_cycles=1 if args.once else None)
    print("The program terminated correctly.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
