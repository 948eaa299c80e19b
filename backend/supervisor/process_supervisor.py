"""
GoDev Process Supervisor.

Owns the single running program and serializes every transition
between generations.
Requires Python 3.11+.
"""

import asyncio
import signal
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO

from utils.errors import ProcessStartError, TerminationError
from utils.logger import LoggerMixin


class ExitReason(str, Enum):
    """How a supervised program ended."""

    STOPPED = "stopped"  # we asked it to stop
    FAILED = "failed"  # nonzero exit on its own
    EXITED = "exited"  # clean exit on its own


@dataclass
class SupervisedProcess:
    """One generation of the running program."""

    process: asyncio.subprocess.Process
    artifact: Path
    generation: int
    stop_requested: bool = False
    stop_reason: str | None = None
    exit_monitor: "asyncio.Task[ExitReason] | None" = None

    @property
    def pid(self) -> int:
        """Operating system process id."""
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        """Exit status once reaped, None while running."""
        return self.process.returncode


def _interrupt(process: asyncio.subprocess.Process) -> None:
    process.send_signal(signal.SIGINT)


def _kill(process: asyncio.subprocess.Process) -> None:
    process.kill()


# Each step is tried in order until the process exits
TERMINATION_LADDER: tuple[tuple[str, Callable[[asyncio.subprocess.Process], None]], ...] = (
    ("interrupt", _interrupt),
    ("kill", _kill),
)


def classify_exit(proc: SupervisedProcess) -> ExitReason:
    """
    Classify a finished process.

    Args:
        proc: A process whose returncode is set

    Returns:
        The exit reason to report
    """
    if proc.stop_requested or proc.returncode == -signal.SIGINT:
        return ExitReason.STOPPED
    if proc.returncode != 0:
        return ExitReason.FAILED
    return ExitReason.EXITED


class ProcessSupervisor(LoggerMixin):
    """
    Keeps at most one program running.

    replace() and terminate_all() share one lock, so lifecycle
    transitions never interleave: a rebuild that finishes while the
    previous generation is still being torn down waits its turn.
    Between stopping the old process and starting the new one the
    slot is empty; current may be None at any time.
    """

    def __init__(
        self,
        grace_seconds: float = 5.0,
        stdout: IO[bytes] | int | None = None,
        stderr: IO[bytes] | int | None = None,
        cwd: Path | None = None,
    ) -> None:
        """
        Initialize the supervisor.

        Args:
            grace_seconds: Wait per termination step before escalating
            stdout: Stream for the program's stdout (None inherits ours)
            stderr: Stream for the program's stderr (None inherits ours)
            cwd: Working directory for the program
        """
        self._grace = grace_seconds
        self._stdout = stdout
        self._stderr = stderr
        self._cwd = cwd
        self._lock = asyncio.Lock()
        self._current: SupervisedProcess | None = None
        self._generation = 0
        self._monitors: set[asyncio.Task[ExitReason]] = set()

    @property
    def current(self) -> SupervisedProcess | None:
        """The live process, or None."""
        return self._current

    @property
    def is_running(self) -> bool:
        """Check whether a supervised process is alive."""
        return self._current is not None and self._current.returncode is None

    async def replace(self, artifact: Path) -> SupervisedProcess:
        """
        Stop the current program and start the artifact in its place.

        Args:
            artifact: Executable to start

        Returns:
            The new supervised process

        Raises:
            ProcessStartError: If the artifact cannot be executed; the
                slot is left empty and the supervisor stays usable
        """
        async with self._lock:
            if self._current is not None:
                self.log.info(
                    "terminating_previous_process",
                    pid=self._current.pid,
                    generation=self._current.generation,
                )
                await self._terminate(self._current, reason="rebuild")
                self._current = None

            self._generation += 1
            proc = SupervisedProcess(
                process=await self._spawn(Path(artifact)),
                artifact=Path(artifact),
                generation=self._generation,
            )
            self._current = proc

            task = asyncio.create_task(
                self._monitor_exit(proc),
                name=f"godev-exit-{proc.generation}",
            )
            proc.exit_monitor = task
            self._monitors.add(task)
            task.add_done_callback(self._monitors.discard)

            self.log.info("program_started", pid=proc.pid, generation=proc.generation)
            return proc

    async def terminate_all(self) -> None:
        """Stop the current program without starting another."""
        async with self._lock:
            if self._current is None:
                return
            await self._terminate(self._current, reason="shutdown")
            self._current = None

    async def close(self) -> None:
        """Stop the program and let pending exit reports finish."""
        await self.terminate_all()
        if self._monitors:
            _, pending = await asyncio.wait(set(self._monitors), timeout=self._grace)
            for task in pending:
                task.cancel()

    async def _spawn(self, artifact: Path) -> asyncio.subprocess.Process:
        try:
            return await asyncio.create_subprocess_exec(
                str(artifact),
                stdout=self._stdout,
                stderr=self._stderr,
                cwd=str(self._cwd) if self._cwd is not None else None,
            )
        except OSError as e:
            raise ProcessStartError(artifact, e) from e

    async def _terminate(self, proc: SupervisedProcess, reason: str) -> None:
        """
        Walk the termination ladder until the process has exited.

        Each step is independently fallible. If every step fails the
        failure is logged and the caller proceeds anyway.
        """
        process = proc.process
        if process.returncode is not None:
            return

        proc.stop_requested = True
        proc.stop_reason = reason
        failures: list[str] = []

        for name, send in TERMINATION_LADDER:
            try:
                send(process)
            except ProcessLookupError:
                # Already gone; reap it
                await process.wait()
                return
            except OSError as e:
                failures.append(f"{name}: {e}")
                self.log.warning("signal_failed", phase="terminate", step=name, pid=proc.pid, error=str(e))
                continue

            try:
                await asyncio.wait_for(process.wait(), timeout=self._grace)
                return
            except asyncio.TimeoutError:
                failures.append(f"{name}: still running after {self._grace}s")
                self.log.warning("termination_escalating", phase="terminate", step=name, pid=proc.pid)

        err = TerminationError(proc.pid, failures)
        self.log.error("terminate_failed", phase=err.phase, error=str(err))

    async def _monitor_exit(self, proc: SupervisedProcess) -> ExitReason:
        """Report how a generation ended. Observational only."""
        returncode = await proc.process.wait()
        reason = classify_exit(proc)

        if reason is ExitReason.STOPPED:
            self.log.info(
                "program_terminated",
                reason=proc.stop_reason or "signal",
                generation=proc.generation,
            )
        elif reason is ExitReason.FAILED:
            self.log.warning(
                "program_exited_with_error",
                phase="run",
                returncode=returncode,
                generation=proc.generation,
            )
        else:
            self.log.info("program_exited", generation=proc.generation)
        return reason
