"""A shared time-stamp counter, readable directly or through a cached value."""

from __future__ import annotations

import time
from typing import Callable

NANOSECONDS_PER_SECOND = 1_000_000_000


class TscClock:
    """Monotonic tick counter with a cached last value.

    One thread may keep calling :meth:`update` while others read ``last``,
    which avoids every thread querying the counter on its own.
    """

    def __init__(
        self,
        source: Callable[[], int] = time.perf_counter_ns,
        hz: int = NANOSECONDS_PER_SECOND,
    ) -> None:
        if hz <= 0:
            raise ValueError(f"tick frequency must be positive, got {hz}")
        self._source = source
        self.hz = hz
        self.last = 0

    def read(self) -> int:
        """Return the current tick count without touching ``last``."""
        return self._source()

    def update(self) -> int:
        """Read the counter, store it as ``last`` and return it."""
        self.last = self._source()
        return self.last