"""
GoDev Lifecycle Controller.

Wires watcher, builder and supervisor together and owns startup
and signal-triggered shutdown.
Requires Python 3.11+.
"""

import asyncio
import signal
from pathlib import Path
from typing import IO

from builder.go_builder import BuildArtifact, Builder
from supervisor.process_supervisor import ProcessSupervisor
from utils.config import Settings, get_settings
from utils.errors import BuildError, ProcessStartError
from utils.logger import LoggerMixin
from watcher.debouncer import Debouncer
from watcher.file_watcher import FileWatcher
from watcher.watch_loop import WatchLoop

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class LifecycleController(LoggerMixin):
    """
    Top-level orchestration.

    Startup registers the tree and performs the first build-and-run
    without consulting the debouncer. Every later rebuild comes from
    the watch loop. On SIGINT or SIGTERM the program is stopped and
    the artifact removed.
    """

    def __init__(
        self,
        target: Path,
        root: Path | None = None,
        settings: Settings | None = None,
        stdout: IO[bytes] | int | None = None,
        stderr: IO[bytes] | int | None = None,
    ) -> None:
        """
        Initialize the controller.

        Args:
            target: Source file to build and run
            root: Directory to watch; also holds the artifact (default: cwd)
            settings: Application settings (default: cached settings)
            stdout: Stream for compiler and program stdout (None inherits)
            stderr: Stream for compiler and program stderr (None inherits)
        """
        self._settings = settings or get_settings()
        self._root = Path(root or Path.cwd()).absolute()
        target = Path(target)
        self._target = target if target.is_absolute() else self._root / target

        self.builder = Builder(
            source=self._target,
            workdir=self._root,
            settings=self._settings.build,
            stdout=stdout,
            stderr=stderr,
        )
        self.supervisor = ProcessSupervisor(
            grace_seconds=self._settings.supervisor.grace_seconds,
            stdout=stdout,
            stderr=stderr,
            cwd=self._root,
        )
        self.debouncer = Debouncer(delay_ms=self._settings.watcher.debounce_ms)
        self.file_watcher = FileWatcher(
            root_path=self._root,
            ignore_dirs=self._settings.watcher.ignore_dirs,
        )
        self.watch_loop = WatchLoop(
            events=self.file_watcher.events,
            errors=self.file_watcher.errors,
            debouncer=self.debouncer,
            rebuild=self.rebuild,
            extensions=self._settings.watcher.extensions,
        )
        self._shutdown = asyncio.Event()

    @property
    def artifact(self) -> BuildArtifact:
        """Where the compiled program lives."""
        return self.builder.artifact

    async def start(self) -> None:
        """
        Register the tree and run the first build.

        Raises:
            WatcherSetupError: If the tree cannot be watched
        """
        await self.file_watcher.start()
        self.log.info("building_and_running", target=str(self._target))
        await self.rebuild()

    async def rebuild(self) -> bool:
        """
        Remove the old artifact, build, and swap in the new program.

        A failed build leaves the running program alone.

        Returns:
            True if a new program was started
        """
        self.builder.remove_artifact()

        try:
            artifact = await self.builder.build()
        except BuildError as e:
            self.log.error("build_failed", phase=e.phase, error=str(e))
            return False

        try:
            await self.supervisor.replace(artifact.path)
        except ProcessStartError as e:
            self.log.error("run_failed", phase=e.phase, error=str(e))
            return False
        return True

    def request_shutdown(self) -> None:
        """Ask run() to stop. Safe to call from a signal handler."""
        self._shutdown.set()

    async def shutdown(self) -> None:
        """Stop the program and the watcher, then remove the artifact."""
        self.log.info("shutting_down")
        await self.supervisor.close()
        await self.file_watcher.stop()
        self.builder.remove_artifact()

    async def run(self) -> None:
        """Run until SIGINT or SIGTERM, then clean up."""
        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, self.request_shutdown)

        watch_task: asyncio.Task[None] | None = None
        try:
            await self.start()
            watch_task = asyncio.create_task(self.watch_loop.run(), name="godev-watch-loop")
            await self._shutdown.wait()
        finally:
            if watch_task is not None:
                watch_task.cancel()
                await asyncio.gather(watch_task, return_exceptions=True)
            # remove_artifact must not race a compiler that is still writing
            await self.watch_loop.wait_idle()
            await self.shutdown()
            for sig in SHUTDOWN_SIGNALS:
                loop.remove_signal_handler(sig)
