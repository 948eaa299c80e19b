"""
GoDev Command Line Entry Point.

Builds and runs a single source file, rebuilding and restarting it
whenever files under the working directory change.
Requires Python 3.11+.

Usage:
    godev path/to/main.go
"""

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from lifecycle.controller import LifecycleController
from utils.config import get_settings
from utils.errors import WatcherSetupError
from utils.logger import configure_logging, get_logger

USAGE = "Usage: godev <path-to-your-go-file>"


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="godev",
        description="Rebuild and restart a program whenever its sources change",
    )
    parser.add_argument(
        "target",
        type=Path,
        nargs="?",
        help="Path to the source file to build and run",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """
    Run godev.

    Returns:
        Process exit status: 0 after a signal-triggered shutdown,
        1 on usage errors or when the tree cannot be watched
    """
    args = build_parser().parse_args(argv)

    if args.target is None:
        print(USAGE)
        return 1

    root = Path.cwd()
    target = args.target if args.target.is_absolute() else root / args.target
    if not target.is_file():
        print(f"Error: File does not exist: {args.target}")
        return 1

    configure_logging()
    logger = get_logger("godev")
    settings = get_settings()
    logger.info("starting", app_name=settings.app_name, version=settings.app_version)

    controller = LifecycleController(target=target, root=root, settings=settings)
    try:
        asyncio.run(controller.run())
    except WatcherSetupError as e:
        logger.error("watcher_setup_failed", phase=e.phase, error=str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
