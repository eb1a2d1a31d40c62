"""
Fixed-window request rate limiter.

WHY: Protects the passcode login and the kiosk check-in endpoints from
brute force and runaway clients.

The limiter is an injected collaborator: create_app stores one instance in
app.extensions["rate_limiter"] and tests swap in one with a fake clock.
Counters are per process; a multi-instance deployment needs a shared store.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    retry_after_seconds: int


class FixedWindowRateLimiter:
    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        # key -> [count, window_reset_at]
        self._windows: dict[str, list] = {}

    def hit(self, key: str, max_requests: int, window_seconds: float) -> RateLimitResult:
        """Count one request against key and report whether it is allowed."""
        now = self._clock()
        with self._lock:
            entry = self._windows.get(key)
            if entry is None or entry[1] <= now:
                self._prune(now)
                entry = [0, now + window_seconds]
                self._windows[key] = entry

            entry[0] += 1
            count, reset_at = entry

        if count > max_requests:
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=reset_at,
                retry_after_seconds=max(1, math.ceil(reset_at - now)),
            )
        return RateLimitResult(
            allowed=True,
            remaining=max_requests - count,
            reset_at=reset_at,
            retry_after_seconds=0,
        )

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def _prune(self, now: float) -> None:
        # Caller holds the lock
        expired = [k for k, (_, reset_at) in self._windows.items() if reset_at <= now]
        for k in expired:
            del self._windows[k]
