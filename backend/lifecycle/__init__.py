"""
GoDev Lifecycle Package.

Startup, shutdown and the command line entry point.
Requires Python 3.11+.
"""

from lifecycle.controller import LifecycleController

__all__ = ["LifecycleController"]
