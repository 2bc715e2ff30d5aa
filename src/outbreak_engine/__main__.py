#!/usr/bin/env python3
"""
Outbreak sweep runner.

Reads units and observations from the backend API, scores outbreak risk
per unit and posts outbreak warnings back to the backend.

Usage:
    python -m outbreak_engine --once
    python -m outbreak_engine --interval 900
    python -m outbreak_engine --store-url http://backend:8080 --log-level DEBUG
"""

import sys
import json
import time
import logging
import argparse

from dotenv import load_dotenv

from .config import load_settings
from .exceptions import ConfigurationError
from .http_clients import HttpAlertSink, HttpObservationStore
from .scheduler import SweepScheduler

logger = logging.getLogger("outbreak_engine")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="outbreak_engine",
        description="Outbreak risk detection sweep runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run one sweep and print the result
  python -m outbreak_engine --once

  # Sweep every 15 minutes until interrupted
  python -m outbreak_engine --interval 900
        """,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sweep, print its summary as JSON and exit",
    )
    parser.add_argument(
        "--interval",
        type=float,
        help="Seconds between sweeps (default: OUTBREAK_SWEEP_INTERVAL_SECONDS)",
    )
    parser.add_argument(
        "--store-url",
        help="Base URL of the observation API (default: OUTBREAK_STORE_URL)",
    )
    parser.add_argument(
        "--sink-url",
        help="Base URL of the alert API (default: OUTBREAK_SINK_URL)",
    )
    parser.add_argument(
        "--shutdown-timeout",
        type=float,
        default=60.0,
        help="Seconds to wait for an in-flight sweep on exit (default: 60)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {}
    if args.interval is not None:
        overrides["sweep_interval_seconds"] = args.interval
    if args.store_url:
        overrides["store_url"] = args.store_url
    if args.sink_url:
        overrides["sink_url"] = args.sink_url

    try:
        settings = load_settings(**overrides)
    except ConfigurationError as e:
        logger.error(f"[CONFIG] {e}")
        return 2

    store = HttpObservationStore(settings.store_url, timeout=settings.request_timeout)
    sink = HttpAlertSink(settings.sink_url, timeout=settings.request_timeout)
    scheduler = SweepScheduler(store, sink, settings=settings)

    if args.once:
        result = scheduler.run_sweep_once()
        print(json.dumps(result.to_dict(), indent=2))
        return 0 if not result.failures and result.error is None else 1

    scheduler.start_scheduler(settings.sweep_interval_seconds)
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("[SWEEP] Interrupted by user")
    finally:
        scheduler.shutdown(timeout=args.shutdown_timeout)

    return 0


if __name__ == "__main__":
    sys.exit(main())
