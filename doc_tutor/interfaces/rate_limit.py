"""
Rate Limiter - Fixed-window request counting per client.

Each client gets RATE_LIMIT_MAX_REQUESTS requests per window. The first
request (or the first after the window expires) starts a new window with a
count of 1. Entries whose window has expired are swept out at most once per
window, so the table only holds recently active clients.
"""

import time
from dataclasses import dataclass
from typing import Callable

from doc_tutor.config import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SECONDS


@dataclass
class _Window:
    count: int
    reset_time: float


class RateLimiter:
    """
    In-memory fixed-window rate limiter.

    Example:
        limiter = RateLimiter(max_requests=10, window_seconds=60)
        if limiter.is_limited(client_ip):
            ...  # answer 429
    """

    def __init__(
        self,
        max_requests: int | None = None,
        window_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests if max_requests is not None else RATE_LIMIT_MAX_REQUESTS
        self.window_seconds = window_seconds if window_seconds is not None else RATE_LIMIT_WINDOW_SECONDS
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._next_sweep = clock() + self.window_seconds

    def __len__(self) -> int:
        return len(self._windows)

    def count(self, key: str) -> int:
        """Requests counted for a key in its current window (0 if none)."""
        window = self._windows.get(key)
        return window.count if window else 0

    def is_limited(self, key: str) -> bool:
        """
        Record a request from ``key`` and say whether it must be rejected.

        Rejected requests are not counted.
        """
        now = self._clock()
        self._sweep(now)

        window = self._windows.get(key)
        if window is None or now > window.reset_time:
            self._windows[key] = _Window(count=1, reset_time=now + self.window_seconds)
            return False

        if window.count >= self.max_requests:
            return True

        window.count += 1
        return False

    def _sweep(self, now: float) -> None:
        if now < self._next_sweep:
            return
        expired = [key for key, window in self._windows.items() if now > window.reset_time]
        for key in expired:
            del self._windows[key]
        self._next_sweep = now + self.window_seconds