"""
GoDev Debouncer.

Suppresses rebuild requests that arrive too soon after an accepted one.
Requires Python 3.11+.
"""

import math
import threading
import time

from utils.logger import LoggerMixin


class Debouncer(LoggerMixin):
    """
    Leading-edge debounce gate.

    The first request after a quiet period is accepted immediately;
    any request within quiet_interval of the last accepted one is
    dropped. Editors often emit several write events for a single
    save, and only the first of the burst should cause a rebuild.
    """

    def __init__(self, delay_ms: int = 100) -> None:
        """
        Initialize the debouncer.

        Args:
            delay_ms: Quiet interval in milliseconds
        """
        self._delay = delay_ms / 1000.0
        # Negative infinity so the very first attempt always passes
        self._last_accepted = -math.inf
        self._lock = threading.Lock()

    def attempt(self, now: float | None = None) -> bool:
        """
        Try to pass the gate.

        Args:
            now: Monotonic timestamp in seconds (defaults to time.monotonic())

        Returns:
            True if the caller should rebuild
        """
        if now is None:
            now = time.monotonic()

        with self._lock:
            if now - self._last_accepted > self._delay:
                self._last_accepted = now
                return True

        self.log.debug("rebuild_debounced", since_last=round(now - self._last_accepted, 3))
        return False

    def reset(self) -> None:
        """Forget the last accepted request."""
        with self._lock:
            self._last_accepted = -math.inf

    @property
    def quiet_interval(self) -> float:
        """Quiet interval in seconds."""
        return self._delay

    @property
    def last_accepted_at(self) -> float:
        """Timestamp of the last accepted request."""
        return self._last_accepted
