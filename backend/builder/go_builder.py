"""
GoDev Builder.

Runs the external compiler and manages the resulting artifact on disk.
Requires Python 3.11+.
"""

import asyncio
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from utils.config import BuildSettings
from utils.errors import BuildError, CleanupError
from utils.logger import LoggerMixin


@dataclass(frozen=True)
class BuildArtifact:
    """The compiled program on disk."""

    path: Path


def artifact_path_for(source: Path, workdir: Path, artifact_name: str | None = None) -> Path:
    """
    Compute where the artifact for a source file is written.

    Args:
        source: Source file being built
        workdir: Directory the artifact lives in
        artifact_name: Fixed file name overriding the default

    Returns:
        Absolute artifact path, godev-<stem> by default
    """
    name = artifact_name or f"godev-{Path(source).stem}"
    return (Path(workdir) / name).absolute()


class Builder(LoggerMixin):
    """
    Builds one source file into one artifact.

    The compiler's output streams are the operator's own unless
    explicit streams are supplied, so diagnostics appear unmodified.
    A failed build raises BuildError and never touches the running
    program.
    """

    def __init__(
        self,
        source: Path,
        workdir: Path,
        settings: BuildSettings | None = None,
        stdout: IO[bytes] | int | None = None,
        stderr: IO[bytes] | int | None = None,
    ) -> None:
        """
        Initialize the builder.

        Args:
            source: Source file to build
            workdir: Working directory for the compiler and the artifact
            settings: Build settings (command template, artifact name)
            stdout: Stream for compiler stdout (None inherits ours)
            stderr: Stream for compiler stderr (None inherits ours)
        """
        self._settings = settings or BuildSettings()
        self._source = Path(source)
        self._workdir = Path(workdir)
        self._stdout = stdout
        self._stderr = stderr
        self.artifact = BuildArtifact(
            artifact_path_for(self._source, self._workdir, self._settings.artifact_name)
        )

    def command(self) -> list[str]:
        """Expand the command template for this source and artifact."""
        values = {"artifact": str(self.artifact.path), "source": str(self._source)}
        return [part.format(**values) for part in self._settings.command]

    async def build(self) -> BuildArtifact:
        """
        Compile the source file.

        Returns:
            The artifact written by the compiler

        Raises:
            BuildError: If the compiler cannot be started or exits nonzero
        """
        cmd = self.command()
        self.log.info("build_started", source=str(self._source))
        start_time = time.perf_counter()

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(self._workdir),
                stdout=self._stdout,
                stderr=self._stderr,
            )
        except OSError as e:
            raise BuildError(self._source, cause=e) from e

        try:
            returncode = await process.wait()
        except asyncio.CancelledError:
            # Never leave a compiler behind that could write the artifact later
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()
            self.log.warning("build_cancelled", phase="build", source=str(self._source))
            raise

        if returncode != 0:
            raise BuildError(self._source, returncode=returncode)

        self.log.info(
            "build_succeeded",
            artifact=str(self.artifact.path),
            time_seconds=round(time.perf_counter() - start_time, 2),
        )
        return self.artifact

    def remove_artifact(self) -> bool:
        """
        Delete the artifact if it exists.

        An absent file counts as success. Any other failure is logged
        as a warning and swallowed so cleanup never stops the tool.

        Returns:
            True if a file was removed
        """
        try:
            os.remove(self.artifact.path)
        except FileNotFoundError:
            return False
        except OSError as e:
            err = CleanupError(self.artifact.path, e)
            self.log.warning("cleanup_failed", phase=err.phase, error=str(err))
            return False

        self.log.info("artifact_removed", path=str(self.artifact.path))
        return True
