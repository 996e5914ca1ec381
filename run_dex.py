#!/usr/bin/env python3
"""
Two-venue DEX spread check.

Quotes the configured swap on both routers once, reports whether the
spread beats gas plus the minimum profit, and records the observation when
a database is configured.

Exit status is 0 when both prices were fetched (with or without an
opportunity) and 1 otherwise.
"""

import argparse
import asyncio
import sys

from dotenv import load_dotenv

import logging_config
from dex.config import ConfigError, load_config
from dex.recorder import MarketObservationRecorder
from dex.runner import SpreadRunner
from dex.store import open_store


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Two-venue DEX spread checker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config
  python3 run_dex.py

  # Use custom config, skip the database
  python3 run_dex.py --config configs/spread_base.yaml --no-db
        """,
    )

    parser.add_argument(
        "--config",
        default="configs/spread.yaml",
        help="Path to config YAML file (default: configs/spread.yaml)",
    )

    parser.add_argument(
        "--no-db",
        action="store_true",
        help="Evaluate and report without recording observations",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 if prices were fetched, 1 otherwise)
    """
    args = parse_args(argv)
    load_dotenv()

    if args.verbose:
        logging_config.setup_debug()
    else:
        logging_config.setup()

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"❌ Config error: {e}", file=sys.stderr)
        return 1

    print(f"Loaded config: {config!r}")

    recorder = None
    if args.no_db:
        print("[INFO] Recording disabled (--no-db)")
    elif not config.database_url:
        print("[INFO] No DATABASE_URL configured, observations will not be recorded")
    else:
        store = open_store(config.database_url)
        if store is not None:
            recorder = MarketObservationRecorder(store)
        else:
            print("[WARN] Database unavailable, observations will not be recorded")

    try:
        return _run(config, recorder)
    finally:
        if recorder is not None:
            recorder.store.dispose()


def _run(config, recorder) -> int:
    try:
        runner = SpreadRunner(config, recorder=recorder)
        runner.connect()
    except Exception as e:
        print(f"❌ Initialization failed: {e}", file=sys.stderr)
        return 1

    try:
        report = asyncio.run(runner.run_once())
    except KeyboardInterrupt:
        print("\n\n⏸ Stopped by user")
        return 1

    return 0 if report.evaluated else 1


if __name__ == "__main__":
    sys.exit(main())
