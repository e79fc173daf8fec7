"""In-process admission control (token bucket).

This is intentionally simple:
 - No external deps
 - Per-process (not distributed), state resets on restart
 - No background timer: refill is computed lazily on every call

Tokens are credited in whole refill intervals only, and the refill timestamp
advances by exactly the credited intervals, so a partially elapsed interval is
carried over to the next call instead of being dropped.
"""

from __future__ import annotations

import threading
import time
from typing import Callable


class TokenBucket:
    """A token bucket admitting at most ``capacity`` requests in a burst and
    one more every ``refill_interval`` seconds."""

    def __init__(
        self,
        capacity: int = 15,
        refill_interval: float = 6.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity <= 0 or refill_interval <= 0:
            raise ValueError("capacity and refill_interval must be positive")
        self._capacity = int(capacity)
        self._interval = float(refill_interval)
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens = self._capacity
        self._last_refill = clock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def refill_interval(self) -> float:
        return self._interval

    def _refill(self, now: float) -> None:
        elapsed = now - self._last_refill
        intervals = int(elapsed // self._interval) if elapsed > 0 else 0
        if intervals > 0:
            self._tokens = min(self._capacity, self._tokens + intervals)
            self._last_refill += intervals * self._interval

    def try_consume(self, cost: int = 1) -> bool:
        """Take ``cost`` tokens if all are available; otherwise take none."""
        if cost < 1:
            raise ValueError("cost must be >= 1")
        with self._lock:
            self._refill(self._clock())
            if self._tokens >= cost:
                self._tokens -= cost
                return True
            return False

    def remaining(self) -> int:
        with self._lock:
            self._refill(self._clock())
            return self._tokens

    def seconds_until_refill(self) -> float:
        """Seconds until the next token is credited (0 if the bucket is full)."""
        with self._lock:
            now = self._clock()
            self._refill(now)
            if self._tokens >= self._capacity:
                return 0.0
            return max(0.0, self._last_refill + self._interval - now)
