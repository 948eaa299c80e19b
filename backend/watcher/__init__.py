"""
GoDev File Watcher Package.

Change filtering, debouncing and file system monitoring.
Requires Python 3.11+.
"""

from watcher.change_filter import WATCHED_EXTENSIONS, is_relevant
from watcher.debouncer import Debouncer
from watcher.file_watcher import EventKind, FileWatcher, WatchEvent
from watcher.watch_loop import WatchLoop

__all__ = [
    "WATCHED_EXTENSIONS",
    "is_relevant",
    "Debouncer",
    "EventKind",
    "FileWatcher",
    "WatchEvent",
    "WatchLoop",
]
