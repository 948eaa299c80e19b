"""
GoDev Process Supervisor Package.

Requires Python 3.11+.
"""

from supervisor.process_supervisor import (
    TERMINATION_LADDER,
    ExitReason,
    ProcessSupervisor,
    SupervisedProcess,
    classify_exit,
)

__all__ = [
    "TERMINATION_LADDER",
    "ExitReason",
    "ProcessSupervisor",
    "SupervisedProcess",
    "classify_exit",
]
