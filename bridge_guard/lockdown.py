"""Violation circuit breaker + temporary ban.

Goal
----
Escalate from per-request rejection to a blanket temporary ban under sustained
abuse.

Authentication failures and prompt policy violations are recorded here. When
``threshold`` of them land inside a sliding ``window_seconds``, every request
is refused for ``ban_seconds``. Rate-limit rejections are not violations: an
eager but legitimate client must not be able to ban itself by retrying.

Notes
-----
State is in-memory and per-process. A restart lifts any active ban.
"""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable, Deque

from .errors import BannedError


class ViolationTracker:
    """Sliding-window violation log that trips a fixed-length ban."""

    def __init__(
        self,
        threshold: int = 5,
        window_seconds: float = 60.0,
        ban_seconds: float = 900.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if threshold < 1 or window_seconds <= 0 or ban_seconds <= 0:
            raise ValueError("threshold, window_seconds and ban_seconds must be positive")
        self.threshold = int(threshold)
        self.window_seconds = float(window_seconds)
        self.ban_seconds = float(ban_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._violations: Deque[float] = deque()
        self._banned_until: float = 0.0

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._violations and self._violations[0] < cutoff:
            self._violations.popleft()

    def record(self) -> bool:
        """Record one violation. Returns True if this violation started a ban.

        Violations arriving while a ban is active are ignored, so a ban is
        never extended past its original deadline.
        """
        with self._lock:
            now = self._clock()
            if now < self._banned_until:
                return False
            self._violations.append(now)
            self._prune(now)
            if len(self._violations) >= self.threshold:
                self._banned_until = now + self.ban_seconds
                self._violations.clear()
                return True
            return False

    def is_banned(self) -> bool:
        with self._lock:
            return self._clock() < self._banned_until

    def seconds_remaining(self) -> float:
        with self._lock:
            return max(0.0, self._banned_until - self._clock())

    def violation_count(self) -> int:
        with self._lock:
            self._prune(self._clock())
            return len(self._violations)

    def raise_if_banned(self) -> None:
        remaining = self.seconds_remaining()
        if remaining > 0:
            raise BannedError(retry_after_ms=math.ceil(remaining * 1000))

    def reset(self) -> None:
        with self._lock:
            self._violations.clear()
            self._banned_until = 0.0
