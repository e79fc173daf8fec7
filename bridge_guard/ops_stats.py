"""Operational statistics for the bridge.

Lightweight in-memory counters with a snapshot for a host health endpoint.

Notes
-----
- Counters reset on process restart.
- Do not treat these as an audit trail.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class _Counters:
    admitted_total: int = 0
    auth_failures_total: int = 0
    rate_limited_total: int = 0
    banned_rejections_total: int = 0
    bans_total: int = 0
    policy_violations_total: int = 0
    policy_violations_by_category: Dict[str, int] = field(default_factory=dict)
    integrity_failures_total: int = 0
    responses_sanitized_total: int = 0


class OpsStats:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._start_monotonic = time.monotonic()
        self._c = _Counters()

    def _inc_map(self, m: Dict[str, int], key: str) -> None:
        m[key] = int(m.get(key, 0)) + 1

    def record_admitted(self) -> None:
        with self._lock:
            self._c.admitted_total += 1

    def record_auth_failure(self) -> None:
        with self._lock:
            self._c.auth_failures_total += 1

    def record_rate_limited(self) -> None:
        with self._lock:
            self._c.rate_limited_total += 1

    def record_banned_rejection(self) -> None:
        with self._lock:
            self._c.banned_rejections_total += 1

    def record_ban(self) -> None:
        with self._lock:
            self._c.bans_total += 1

    def record_policy_violation(self, category: str) -> None:
        with self._lock:
            self._c.policy_violations_total += 1
            self._inc_map(self._c.policy_violations_by_category, category or "unknown")

    def record_integrity_failure(self) -> None:
        with self._lock:
            self._c.integrity_failures_total += 1

    def record_response_sanitized(self) -> None:
        with self._lock:
            self._c.responses_sanitized_total += 1

    def snapshot(self, extra: Dict[str, Any] | None = None) -> Dict[str, Any]:
        with self._lock:
            c = self._c
            snap: Dict[str, Any] = {
                "uptime_seconds": int(time.monotonic() - self._start_monotonic),
                "admitted_total": c.admitted_total,
                "auth_failures_total": c.auth_failures_total,
                "rate_limited_total": c.rate_limited_total,
                "banned_rejections_total": c.banned_rejections_total,
                "bans_total": c.bans_total,
                "policy_violations_total": c.policy_violations_total,
                "policy_violations_by_category": dict(c.policy_violations_by_category),
                "integrity_failures_total": c.integrity_failures_total,
                "responses_sanitized_total": c.responses_sanitized_total,
            }
        if extra:
            snap.update(extra)
        return snap
