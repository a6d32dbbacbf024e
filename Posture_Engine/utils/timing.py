"""Millisecond clock and interval throttling."""

import time
from typing import Callable, Optional

Clock = Callable[[], float]


def now_ms() -> float:
    """Wall-clock time in epoch milliseconds."""
    return time.time() * 1000


class Throttle:
    """
    Admits an event only when enough time has passed since the last admitted one.

    Rejected events are counted but never queued.
    """

    def __init__(self, interval_ms: float, strict: bool = False):
        self.interval_ms = interval_ms
        self.strict = strict
        self._last: Optional[float] = None
        self._rejected = 0

    def allow(self, timestamp: float) -> bool:
        if self._last is not None:
            elapsed = timestamp - self._last
            too_soon = elapsed <= self.interval_ms if self.strict else elapsed < self.interval_ms
            if too_soon:
                self._rejected += 1
                return False
        self._last = timestamp
        return True

    @property
    def rejected(self) -> int:
        return self._rejected

    def reset(self):
        self._last = None
        self._rejected = 0
