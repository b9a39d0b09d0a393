"""
Fixed-interval pacing for capture dispatch.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


class FixedIntervalTicker:
    """
    Enforces a minimum pause between consecutive units of work.

    `mark()` records the end of a unit; `wait()` sleeps until the interval has
    elapsed since the last mark. The first `wait()` never sleeps.
    """

    def __init__(
        self,
        *,
        interval_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._interval_seconds = max(0.0, interval_seconds)
        self._sleep = sleep
        self._clock = clock
        self._last_mark: float | None = None
        self._lock = threading.Lock()

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    def wait(self) -> float:
        """
        Block until the next unit may start. Returns the seconds slept.
        """

        with self._lock:
            if self._last_mark is None or self._interval_seconds <= 0:
                return 0.0
            wait_seconds = self._interval_seconds - (self._clock() - self._last_mark)
            if wait_seconds <= 0:
                return 0.0
            self._sleep(wait_seconds)
            return wait_seconds

    def mark(self) -> None:
        with self._lock:
            self._last_mark = self._clock()

    def reset(self) -> None:
        with self._lock:
            self._last_mark = None
