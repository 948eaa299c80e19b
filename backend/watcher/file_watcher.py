"""
GoDev File Watcher.

Cross-platform file system monitoring using watchdog, exposed to
asyncio code as two queues: change events and watcher errors.
Requires Python 3.11+.
"""

import asyncio
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from watchdog.events import EVENT_TYPE_MODIFIED, FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from utils.errors import WatcherSetupError
from utils.logger import LoggerMixin


class EventKind(str, Enum):
    """Kinds of change notifications the watch loop distinguishes."""

    WRITE = "write"
    OTHER = "other"


@dataclass(frozen=True)
class WatchEvent:
    """A single change notification for a file."""

    path: str
    kind: EventKind


class _QueueingHandler(FileSystemEventHandler):
    """Forwards watchdog events from observer threads to the watcher."""

    def __init__(self, watcher: "FileWatcher") -> None:
        super().__init__()
        self._watcher = watcher

    def dispatch(self, event: FileSystemEvent) -> None:
        try:
            super().dispatch(event)
        except Exception as e:
            self._watcher.report_error(e)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return

        kind = EventKind.WRITE if event.event_type == EVENT_TYPE_MODIFIED else EventKind.OTHER
        self._watcher.publish(WatchEvent(path=os.fsdecode(event.src_path), kind=kind))


class FileWatcher(LoggerMixin):
    """
    Watches every directory under a root for file changes.

    Each directory is registered individually (non-recursive watch),
    which is enough for the back-end to report changes to the files
    it contains. Events arrive on watchdog threads and are handed to
    the event loop with call_soon_threadsafe.
    """

    def __init__(
        self,
        root_path: Path,
        ignore_dirs: list[str] | None = None,
        health_interval: float = 1.0,
    ) -> None:
        """
        Initialize the file watcher.

        Args:
            root_path: Root directory to watch
            ignore_dirs: Directory names to skip while walking the tree
            health_interval: Seconds between observer liveness checks
        """
        self._root_path = Path(root_path)
        self._ignore_dirs = set(ignore_dirs or [])
        self._handler = _QueueingHandler(self)
        self._observer: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._watched: list[Path] = []
        self._health_interval = health_interval
        self._health_task: asyncio.Task[None] | None = None

        self.events: asyncio.Queue[WatchEvent] = asyncio.Queue()
        self.errors: asyncio.Queue[BaseException] = asyncio.Queue()

    async def start(self) -> None:
        """
        Start the observer and register the whole tree.

        Raises:
            WatcherSetupError: If any directory cannot be registered
        """
        if self._observer is not None:
            return

        self._loop = asyncio.get_running_loop()
        self._observer = Observer()
        self._observer.start()

        try:
            self.register_tree(self._root_path)
        except WatcherSetupError:
            await self.stop()
            raise

        self._health_task = asyncio.create_task(self._check_observer(), name="godev-watcher-health")
        self.log.info(
            "watching_directory",
            path=str(self._root_path),
            directories=len(self._watched),
        )

    def register_tree(self, root: Path) -> None:
        """
        Register root and every directory below it.

        Args:
            root: Directory to walk

        Raises:
            WatcherSetupError: If walking or registering fails
        """

        def _on_walk_error(err: OSError) -> None:
            raise WatcherSetupError(err.filename or root, err)

        for dirpath, dirnames, _ in os.walk(root, onerror=_on_walk_error):
            dirnames[:] = sorted(d for d in dirnames if d not in self._ignore_dirs)
            self.register(Path(dirpath))

    def register(self, directory: Path) -> None:
        """
        Register a single directory with the running observer.

        Raises:
            WatcherSetupError: If the back-end refuses the watch
        """
        if self._observer is None:
            raise WatcherSetupError(directory, RuntimeError("watcher is not started"))

        try:
            self._observer.schedule(self._handler, str(directory), recursive=False)
        except OSError as e:
            self.log.error("watch_register_failed", phase="watch", path=str(directory), error=str(e))
            raise WatcherSetupError(directory, e) from e

        self._watched.append(directory)
        self.log.debug("directory_registered", path=str(directory))

    def publish(self, event: WatchEvent) -> None:
        """Hand an event to the event loop. Safe to call from any thread."""
        self._put(self.events, event)

    def report_error(self, error: BaseException) -> None:
        """Hand a watcher error to the event loop. Safe to call from any thread."""
        self._put(self.errors, error)

    def _put(self, queue: asyncio.Queue[Any], item: Any) -> None:
        if self._loop is None or self._loop.is_closed():
            self.log.debug("watch_item_dropped", item=repr(item))
            return
        self._loop.call_soon_threadsafe(queue.put_nowait, item)

    async def _check_observer(self) -> None:
        # A dead observer thread delivers no more events; report it once
        while True:
            await asyncio.sleep(self._health_interval)
            observer = self._observer
            if observer is None:
                return
            if not observer.is_alive():
                self.log.error("observer_stopped", phase="watch")
                self.report_error(RuntimeError("file watcher observer stopped"))
                return

    async def stop(self) -> None:
        """Stop watching for file changes."""
        health_task, self._health_task = self._health_task, None
        if health_task is not None:
            health_task.cancel()
            await asyncio.gather(health_task, return_exceptions=True)

        observer = self._observer
        if observer is None:
            return

        self._observer = None
        observer.stop()
        observer.join(timeout=2.0)
        self._watched.clear()
        self.log.info("file_watcher_stopped")

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._observer is not None

    @property
    def watched_directories(self) -> list[Path]:
        """Directories currently registered."""
        return list(self._watched)
