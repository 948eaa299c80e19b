"""
GoDev Watch Loop.

Drains change events and watcher errors for the lifetime of the program.
Requires Python 3.11+.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable

from utils.logger import LoggerMixin
from watcher.change_filter import WATCHED_EXTENSIONS, is_relevant
from watcher.debouncer import Debouncer
from watcher.file_watcher import EventKind, WatchEvent


class WatchLoop(LoggerMixin):
    """
    Turns relevant write events into rebuilds.

    Events are consumed one at a time, so the debouncer is only ever
    touched from a single task. A rebuild runs to completion before
    the next event is looked at.
    """

    def __init__(
        self,
        events: asyncio.Queue[WatchEvent],
        errors: asyncio.Queue[BaseException],
        debouncer: Debouncer,
        rebuild: Callable[[], Awaitable[object]],
        extensions: Iterable[str] = WATCHED_EXTENSIONS,
    ) -> None:
        """
        Initialize the watch loop.

        Args:
            events: Queue of change events from the file watcher
            errors: Queue of watcher errors
            debouncer: Gate deciding whether a relevant event rebuilds
            rebuild: Coroutine function performing build-and-replace
            extensions: Extensions considered relevant
        """
        self._events = events
        self._errors = errors
        self._debouncer = debouncer
        self._rebuild = rebuild
        self._extensions = frozenset(extensions)
        self._active: asyncio.Future[object] | None = None

    async def run(self) -> None:
        """Consume both queues forever. Only cancellation stops it."""
        await asyncio.gather(self._drain_events(), self._drain_errors())

    async def _drain_events(self) -> None:
        while True:
            event = await self._events.get()
            try:
                await self.handle_event(event)
            finally:
                self._events.task_done()

    async def _drain_errors(self) -> None:
        while True:
            error = await self._errors.get()
            try:
                self.handle_error(error)
            finally:
                self._errors.task_done()

    async def handle_event(self, event: WatchEvent) -> bool:
        """
        Process one change event.

        Returns:
            True if the event triggered a rebuild
        """
        if event.kind is not EventKind.WRITE:
            return False
        if not is_relevant(event.path, self._extensions):
            return False

        self.log.info("file_modified", path=event.path)
        if not self._debouncer.attempt():
            return False

        # Shielded: cancelling the loop must not cancel a build in flight
        self._active = asyncio.ensure_future(self._rebuild())
        try:
            await asyncio.shield(self._active)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.log.exception("rebuild_failed", phase="build", error=str(e))
        finally:
            if self._active.done():
                self._active = None
        return True

    async def wait_idle(self) -> None:
        """Wait for a rebuild that is still running, if any."""
        active = self._active
        if active is None:
            return

        self.log.info("waiting_for_rebuild")
        results = await asyncio.gather(active, return_exceptions=True)
        self._active = None
        if isinstance(results[0], Exception):
            self.log.error("rebuild_failed", phase="build", error=str(results[0]))

    @property
    def rebuilding(self) -> bool:
        """Check whether a rebuild is in flight."""
        return self._active is not None and not self._active.done()

    def handle_error(self, error: BaseException) -> None:
        """Log a watcher error; the loop keeps running."""
        self.log.error("watcher_error", phase="watch", error=str(error))
