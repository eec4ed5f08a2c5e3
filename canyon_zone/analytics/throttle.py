"""
Update Throttle Module
======================

Minimum-interval gate for position updates.

Design:
- Drop semantics: updates inside the interval are discarded, never queued
- First update always passes
- Watermark is the time of the last ACCEPTED update
- Clock injected (time.monotonic by default) so tests control time
"""

import time
from typing import Callable, Optional


class UpdateThrottle:
    """
    Rate limiter with a switchable interval.

    Usage:
        throttle = UpdateThrottle(interval_s=1.0)
        if throttle.accept():
            handle(fix)
        throttle.interval_s = 5.0
    """

    def __init__(
        self,
        interval_s: float,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            interval_s: Minimum seconds between accepted updates
            clock: Monotonic seconds source
        """
        if interval_s < 0:
            raise ValueError(f"interval_s must be >= 0, got {interval_s}")
        self._interval_s = interval_s
        self._clock = clock
        self._last_accepted: Optional[float] = None
        self._accepted = 0
        self._dropped = 0

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @interval_s.setter
    def interval_s(self, value: float) -> None:
        if value < 0:
            raise ValueError(f"interval_s must be >= 0, got {value}")
        self._interval_s = value

    def accept(self) -> bool:
        """
        Decide whether the current update goes through.

        Returns:
            True if accepted (and the watermark advances), False if dropped
        """
        now = self._clock()
        if self._last_accepted is not None and now - self._last_accepted < self._interval_s:
            self._dropped += 1
            return False
        self._last_accepted = now
        self._accepted += 1
        return True

    def reset(self) -> None:
        """Forget the watermark so the next update passes."""
        self._last_accepted = None

    @property
    def accepted_count(self) -> int:
        return self._accepted

    @property
    def dropped_count(self) -> int:
        return self._dropped

    def __repr__(self) -> str:
        return (
            f"UpdateThrottle(interval_s={self._interval_s}, "
            f"accepted={self._accepted}, dropped={self._dropped})"
        )
