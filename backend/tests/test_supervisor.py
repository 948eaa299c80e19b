"""
Tests for Process Supervisor.

Requires Python 3.11+.
"""

import asyncio
import signal
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace

import pytest
from structlog.testing import capture_logs

from supervisor.process_supervisor import (
    ExitReason,
    ProcessSupervisor,
    SupervisedProcess,
    classify_exit,
)
from tests.conftest import wait_for_text, write_executable
from utils.errors import ProcessStartError


class TestClassifyExit:
    """Test cases for exit classification."""

    def _proc(self, returncode: int, stop_requested: bool = False) -> SupervisedProcess:
        return SupervisedProcess(
            process=SimpleNamespace(returncode=returncode, pid=1),
            artifact=Path("godev-main"),
            generation=1,
            stop_requested=stop_requested,
        )

    def test_stop_requested(self):
        """Test that a requested stop is reported as stopped regardless of status."""
        assert classify_exit(self._proc(1, stop_requested=True)) is ExitReason.STOPPED

    def test_killed_by_interrupt(self):
        """Test that death by SIGINT counts as stopped."""
        assert classify_exit(self._proc(-signal.SIGINT)) is ExitReason.STOPPED

    def test_runtime_error(self):
        """Test a nonzero exit is a failure."""
        assert classify_exit(self._proc(2)) is ExitReason.FAILED

    def test_clean_exit(self):
        """Test a zero exit is a clean exit."""
        assert classify_exit(self._proc(0)) is ExitReason.EXITED


class TestProcessSupervisor:
    """Test cases for ProcessSupervisor."""

    @pytest.fixture
    def output(self, tmp_path: Path):
        """File collecting supervised program output."""
        path = tmp_path / "program.log"
        with open(path, "wb") as f:
            yield path, f

    async def test_replace_starts_program(self, output, make_program: Callable[[str, str], Path]):
        """Test that replace starts the artifact with output wired through."""
        log_path, log = output
        supervisor = ProcessSupervisor(grace_seconds=2.0, stdout=log)

        proc = await supervisor.replace(make_program("hello", "Hello, World!"))
        try:
            assert supervisor.current is proc
            assert supervisor.is_running
            assert await wait_for_text(log_path, "Hello, World!")
        finally:
            await supervisor.close()

        assert supervisor.current is None
        assert proc.returncode is not None

    async def test_replace_stops_previous(self, output, make_program: Callable[[str, str], Path]):
        """Test that the previous generation is reaped before the next starts."""
        _, log = output
        supervisor = ProcessSupervisor(grace_seconds=2.0, stdout=log)

        first = await supervisor.replace(make_program("first", "first"))
        second = await supervisor.replace(make_program("second", "second"))
        try:
            assert first.returncode is not None
            assert first.stop_requested
            assert first.stop_reason == "rebuild"
            assert second.returncode is None
            assert second.generation == first.generation + 1
            assert await first.exit_monitor is ExitReason.STOPPED
        finally:
            await supervisor.close()

    async def test_rapid_replace_leaves_one_process(self, output, make_program: Callable[[str, str], Path]):
        """Test N concurrent replaces leave exactly one live process, all others reaped."""
        log_path, log = output
        supervisor = ProcessSupervisor(grace_seconds=2.0, stdout=log)
        artifacts = [make_program(f"gen{i}", f"generation {i}") for i in range(5)]

        procs = await asyncio.gather(*(supervisor.replace(a) for a in artifacts))
        try:
            assert supervisor.current is procs[-1]
            assert procs[-1].returncode is None
            assert all(p.returncode is not None for p in procs[:-1])
            assert await wait_for_text(log_path, "generation 4")
            await asyncio.sleep(0.3)
        finally:
            await supervisor.close()

        lines = log_path.read_text().splitlines()
        last_gen = lines[lines.index("generation 4"):]
        assert set(last_gen) == {"generation 4"}

    async def test_terminate_all(self, output, make_program: Callable[[str, str], Path]):
        """Test terminate_all stops the program without a replacement."""
        _, log = output
        supervisor = ProcessSupervisor(grace_seconds=2.0, stdout=log)
        proc = await supervisor.replace(make_program("hello", "hello"))

        await supervisor.terminate_all()

        assert supervisor.current is None
        assert not supervisor.is_running
        assert proc.returncode is not None
        assert proc.stop_reason == "shutdown"

    async def test_terminate_all_without_process(self):
        """Test terminate_all with nothing supervised is a no-op."""
        supervisor = ProcessSupervisor()
        await supervisor.terminate_all()
        assert supervisor.current is None

    async def test_escalates_to_kill(self, output, tmp_path: Path):
        """Test a program ignoring SIGINT is killed after the grace period."""
        log_path, log = output
        stubborn = write_executable(
            tmp_path / "stubborn",
            "import signal, time\n"
            "signal.signal(signal.SIGINT, signal.SIG_IGN)\n"
            "print('ready', flush=True)\n"
            "while True:\n"
            "    time.sleep(0.1)\n",
        )
        supervisor = ProcessSupervisor(grace_seconds=0.5, stdout=log)
        proc = await supervisor.replace(stubborn)
        assert await wait_for_text(log_path, "ready")

        await supervisor.terminate_all()

        assert proc.returncode == -signal.SIGKILL

    async def test_already_exited_process(self, output, tmp_path: Path):
        """Test replacing a program that already exited on its own."""
        _, log = output
        quick = write_executable(tmp_path / "quick", "print('bye')\n")
        supervisor = ProcessSupervisor(grace_seconds=1.0, stdout=log)

        first = await supervisor.replace(quick)
        await first.process.wait()
        assert await first.exit_monitor is ExitReason.EXITED

        second = await supervisor.replace(quick)
        await supervisor.close()

        assert not first.stop_requested
        assert second.returncode is not None

    async def test_runtime_error_is_reported(self, output, tmp_path: Path):
        """Test a crashing program is classified as failed."""
        _, log = output
        crashing = write_executable(tmp_path / "crashing", "import sys\nsys.exit(3)\n")
        supervisor = ProcessSupervisor(grace_seconds=1.0, stdout=log)

        proc = await supervisor.replace(crashing)

        assert await proc.exit_monitor is ExitReason.FAILED
        assert proc.returncode == 3
        await supervisor.close()

    async def test_start_failure_keeps_supervisor_usable(self, output, tmp_path: Path, make_program: Callable[[str, str], Path]):
        """Test a non-executable artifact raises ProcessStartError and the next replace works."""
        _, log = output
        supervisor = ProcessSupervisor(grace_seconds=2.0, stdout=log)
        running = await supervisor.replace(make_program("hello", "hello"))

        broken = tmp_path / "not-executable"
        broken.write_text("not a program")
        with pytest.raises(ProcessStartError) as exc_info:
            await supervisor.replace(broken)

        assert exc_info.value.phase == "run"
        assert running.returncode is not None
        assert supervisor.current is None

        recovered = await supervisor.replace(make_program("again", "again"))
        try:
            assert supervisor.current is recovered
            assert recovered.returncode is None
        finally:
            await supervisor.close()

    async def test_failed_termination_does_not_block(self, output, monkeypatch, make_program: Callable[[str, str], Path]):
        """Test that when every termination step fails the replacement still starts."""
        _, log = output

        def _refuse(process):
            raise PermissionError("operation not permitted")

        monkeypatch.setattr(
            "supervisor.process_supervisor.TERMINATION_LADDER",
            (("interrupt", _refuse), ("kill", _refuse)),
        )
        supervisor = ProcessSupervisor(grace_seconds=0.5, stdout=log)
        old = await supervisor.replace(make_program("old", "old"))
        try:
            with capture_logs() as logs:
                new = await supervisor.replace(make_program("new", "new"))

            assert supervisor.current is new
            assert old.returncode is None
            assert any(entry["event"] == "terminate_failed" for entry in logs)
        finally:
            old.process.kill()
            await old.process.wait()
            monkeypatch.undo()
            await supervisor.close()
