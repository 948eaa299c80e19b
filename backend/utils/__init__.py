"""
GoDev Utilities Package.

Common utilities shared across all modules.
Requires Python 3.11+.
"""

from utils.config import Settings, get_settings
from utils.errors import (
    BuildError,
    CleanupError,
    GodevError,
    ProcessStartError,
    TerminationError,
    WatcherSetupError,
)
from utils.logger import configure_logging, get_logger, logger, LoggerMixin

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "logger",
    "LoggerMixin",
    "GodevError",
    "WatcherSetupError",
    "BuildError",
    "ProcessStartError",
    "TerminationError",
    "CleanupError",
]
