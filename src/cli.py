#!/usr/bin/env python3
"""
CLI for running the coalescing file system observer.

Usage:
    python -m src.cli watch /path/to/folder
    python -m src.cli watch /path/to/folder --quiet-period 150 --tick 200 -v
"""

import argparse
import logging
import signal
import sys
import time
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from src.fsobserver import (
    CoalescingEngine,
    ObserverConfig,
    ObserverError,
)


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("cli")


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self):
        self.should_exit = False
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.should_exit = True


def build_config(args) -> ObserverConfig:
    """Build the observer config from the environment, overridden by arguments."""
    config = ObserverConfig.from_env()
    config.root = Path(args.root).resolve()

    if args.quiet_period is not None:
        config.quiet_period_ms = args.quiet_period
    if args.tick is not None:
        config.tick_interval_ms = args.tick
    if args.no_recursive:
        config.recursive = False
    if args.show_hidden:
        config.noise.check_hidden = False

    return config


def subscribe_logging(engine: CoalescingEngine) -> None:
    """Log every semantic event the engine emits."""
    engine.on_created(lambda path: logger.info(f"Created: {path}"))
    engine.on_changed(lambda path: logger.info(f"Changed: {path}"))
    engine.on_deleted(lambda path: logger.info(f"Deleted: {path}"))
    engine.on_renamed(
        lambda old_path, old_name, path, name: logger.info(f"Renamed: {old_path} -> {path}")
    )
    engine.on_error(lambda exc: logger.error(f"Observer error: {exc}"))


def cmd_watch(args):
    """Watch a root folder and log semantic events."""
    config = build_config(args)
    root = config.root

    if not root.exists():
        logger.error(f"Root path does not exist: {root}")
        sys.exit(1)
    if not root.is_dir():
        logger.error(f"Root path is not a directory: {root}")
        sys.exit(1)

    try:
        engine = CoalescingEngine(config)
    except ObserverError as e:
        logger.error(f"Failed to initialize observer: {e}")
        sys.exit(1)

    subscribe_logging(engine)
    shutdown = GracefulShutdown()

    with engine:
        try:
            engine.start()
        except ObserverError as e:
            logger.error(f"Failed to start observer: {e}")
            sys.exit(1)

        logger.info(f"Observing {root} ({len(engine.snapshot)} known paths)")
        logger.info(f"Quiet period: {config.quiet_period_ms}ms, tick: {config.tick_interval_ms}ms")
        logger.info("Press Ctrl+C to stop")

        while not shutdown.should_exit:
            time.sleep(0.5)

    logger.info("Observer stopped")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="CLI for the coalescing file system observer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Watch a folder recursively
  python -m src.cli watch ./documents

  # Longer quiet period, top level only
  python -m src.cli watch ./documents --quiet-period 250 --no-recursive
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    watch_parser = subparsers.add_parser("watch", help="Watch a folder and log events")
    watch_parser.add_argument("root", help="Root directory to watch")
    watch_parser.add_argument("--quiet-period", type=int, default=None, help="Quiet period in ms")
    watch_parser.add_argument("--tick", type=int, default=None, help="Drain tick interval in ms")
    watch_parser.add_argument("--no-recursive", action="store_true", help="Do not watch subdirectories")
    watch_parser.add_argument("--show-hidden", action="store_true", help="Emit events for hidden files")
    watch_parser.set_defaults(func=cmd_watch)

    return parser


def main(argv: Optional[List[str]] = None):
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    args.func(args)


if __name__ == "__main__":
    main()
