"""Rolling-window call budget for the remote translation backend."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_SECOND = 1.0
_MINUTE = 60.0


@dataclass(frozen=True)
class RateBudget:
    """Snapshot of the limiter's counters at a point in time."""
    calls_this_second: int
    calls_this_minute: int
    last_call_at: float | None


class RateLimiter:
    """Blocks callers until a remote call fits the budget.

    At most ``per_second`` calls may start within any rolling one-second
    window and ``per_minute`` within any rolling minute, and consecutive
    calls start at least ``min_interval`` seconds apart. Counters live only
    in this object and start empty.

    ``clock`` and ``sleep`` are injectable so tests can run on simulated time.
    """

    def __init__(
        self,
        per_second: int = 45,
        per_minute: int = 50,
        min_interval: float = 1.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if per_second <= 0 or per_minute <= 0:
            raise ValueError("per_second and per_minute must be positive")
        self.per_second = per_second
        self.per_minute = per_minute
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        # Start times of calls within the last minute, oldest first
        self._starts: deque[float] = deque()
        self._last_start: float | None = None

    def _prune(self, now: float) -> None:
        while self._starts and now - self._starts[0] >= _MINUTE:
            self._starts.popleft()

    def _check_and_record(self) -> tuple[float, str]:
        """Record a call if the budget allows it, in one critical section.

        Returns ``(0.0, "")`` when the call was recorded, otherwise the
        seconds to wait and the name of the limit that imposed the wait.
        """
        with self._lock:
            now = self._clock()
            self._prune(now)
            starts = self._starts
            waits = [(0.0, "")]
            if len(starts) >= self.per_minute:
                waits.append((starts[-self.per_minute] + _MINUTE - now, "per-minute"))
            if len(starts) >= self.per_second:
                waits.append((starts[-self.per_second] + _SECOND - now, "per-second"))
            if self._last_start is not None and self.min_interval > 0:
                waits.append((self._last_start + self.min_interval - now, "interval"))
            wait, reason = max(waits)
            if wait <= 0:
                starts.append(now)
                self._last_start = now
                return 0.0, ""
            return wait, reason

    def acquire(self) -> None:
        """Block until a call slot is free, then record the call.

        The wait happens outside the lock; another caller may take the slot
        first, in which case this one checks again.
        """
        while True:
            wait, reason = self._check_and_record()
            if wait <= 0:
                return
            if reason != "interval":
                logger.info("Translation %s rate limit reached, waiting %.2fs", reason, wait)
            self._sleep(wait)

    def snapshot(self) -> RateBudget:
        with self._lock:
            now = self._clock()
            self._prune(now)
            in_second = sum(1 for t in self._starts if now - t < _SECOND)
            return RateBudget(
                calls_this_second=in_second,
                calls_this_minute=len(self._starts),
                last_call_at=self._last_start,
            )

    def reset(self) -> None:
        with self._lock:
            self._starts.clear()
            self._last_start = None
