"""
GoDev Test Configuration.

Pytest fixtures and configuration.

Most tests run without a Go toolchain: the fake compiler below
"builds" a Python source file into a small shell wrapper that execs
the interpreter on it, failing with a diagnostic on syntax errors.
Requires Python 3.11+.
"""

import asyncio
import os
import shlex
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from utils.config import BuildSettings, Settings, SupervisorSettings, WatcherSettings

FAKE_COMPILER = '''\
import os
import shlex
import sys
import time

artifact, source = sys.argv[1], sys.argv[2]
with open(source) as f:
    code = f.read()
if code.startswith("# slow build"):
    time.sleep(1.5)
try:
    compile(code, source, "exec")
except SyntaxError as e:
    sys.stderr.write(f"{source}:{e.lineno}: {e.msg}\\n")
    sys.exit(1)
with open(artifact, "w") as f:
    f.write(f"#!/bin/sh\\nexec {shlex.quote(sys.executable)} -u -c {shlex.quote(code)}\\n")
os.chmod(artifact, 0o755)
'''


def looping_program(message: str, interval: float = 0.1) -> str:
    """Python source that prints message until interrupted."""
    return (
        "import time\n"
        "try:\n"
        "    while True:\n"
        f"        print({message!r}, flush=True)\n"
        f"        time.sleep({interval})\n"
        "except KeyboardInterrupt:\n"
        "    pass\n"
    )


def write_executable(path: Path, code: str) -> Path:
    """Write a runnable wrapper for Python code, as the fake compiler would."""
    path.write_text(
        f"#!/bin/sh\nexec {shlex.quote(sys.executable)} -u -c {shlex.quote(code)}\n"
    )
    os.chmod(path, 0o755)
    return path


async def wait_for_text(path: Path, text: str, timeout: float = 10.0) -> bool:
    """Poll a log file until it contains text."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if path.exists() and text in path.read_text(errors="replace"):
            return True
        await asyncio.sleep(0.05)
    return False


@pytest.fixture
def fake_compiler(tmp_path: Path) -> Path:
    """Write the fake compiler script outside the watched tree."""
    tools = tmp_path / "tools"
    tools.mkdir()
    script = tools / "fake_compiler.py"
    script.write_text(FAKE_COMPILER)
    return script


@pytest.fixture
def build_settings(fake_compiler: Path) -> BuildSettings:
    """Build settings driving the fake compiler."""
    return BuildSettings(
        command=[sys.executable, str(fake_compiler), "{artifact}", "{source}"],
    )


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Directory that plays the role of the watched working tree."""
    project = tmp_path / "project"
    project.mkdir()
    return project


@pytest.fixture
def settings(build_settings: BuildSettings) -> Settings:
    """Application settings for in-process tests."""
    return Settings(
        build=build_settings,
        watcher=WatcherSettings(debounce_ms=100, extensions=[".py"]),
        supervisor=SupervisorSettings(grace_seconds=2.0),
    )


@pytest.fixture
def make_program(tmp_path: Path) -> Callable[[str, str], Path]:
    """Factory for ready-to-run programs printing a message in a loop."""
    programs = tmp_path / "programs"
    programs.mkdir()

    def _make(name: str, message: str) -> Path:
        return write_executable(programs / name, looping_program(message))

    return _make
