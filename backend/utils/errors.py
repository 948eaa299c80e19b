"""
GoDev Error Types.

One exception per failure phase. Only WatcherSetupError is fatal;
the rest are recovered where they are raised or one level up.
Requires Python 3.11+.
"""

from pathlib import Path


class GodevError(Exception):
    """Base class for all GoDev errors."""

    phase: str = "internal"


class WatcherSetupError(GodevError):
    """A directory could not be registered with the file watcher."""

    phase = "watch"

    def __init__(self, path: Path | str, cause: BaseException) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"cannot watch {self.path}: {cause}")


class BuildError(GodevError):
    """The compiler could not be run or exited with a nonzero status."""

    phase = "build"

    def __init__(
        self,
        source: Path | str,
        returncode: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.source = Path(source)
        self.returncode = returncode
        self.cause = cause
        if cause is not None:
            detail = str(cause)
        else:
            detail = f"compiler exited with status {returncode}"
        super().__init__(f"build of {self.source} failed: {detail}")


class ProcessStartError(GodevError):
    """A freshly built artifact could not be executed."""

    phase = "run"

    def __init__(self, artifact: Path | str, cause: BaseException) -> None:
        self.artifact = Path(artifact)
        self.cause = cause
        super().__init__(f"failed to start {self.artifact}: {cause}")


class TerminationError(GodevError):
    """Every termination step failed for a supervised process."""

    phase = "terminate"

    def __init__(self, pid: int, failures: list[str]) -> None:
        self.pid = pid
        self.failures = failures
        super().__init__(f"could not stop process {pid}: {'; '.join(failures)}")


class CleanupError(GodevError):
    """The build artifact could not be removed for a reason other than absence."""

    phase = "cleanup"

    def __init__(self, path: Path | str, cause: BaseException) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"failed to remove {self.path}: {cause}")
