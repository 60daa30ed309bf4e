"""Fixed-window rate limiting.

Usage:
    ok, info = limiter.hit(client_ip)
    if not ok: raise RateLimitedError(..., headers=info.http_headers())

One limiter instance is created at startup and shared by all requests
through ``app.state``.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable


@dataclass
class LimitInfo:
    limit: int
    window_seconds: int
    remaining: int
    reset_in: int

    def http_headers(self) -> dict[str, str]:
        """Return standard-ish X-RateLimit-* headers."""
        return {
            "X-RateLimit-Limit": str(int(self.limit)),
            "X-RateLimit-Remaining": str(int(self.remaining)),
            "X-RateLimit-Reset": str(int(self.reset_in)),
        }


class RateLimiter:
    """In-memory fixed-window counter keyed by client identity."""

    def __init__(
        self,
        limit: int = 100,
        window_seconds: int = 60,
        timer: Callable[[], float] = time.time,
    ) -> None:
        self._limit = limit
        self._window = window_seconds
        self._timer = timer
        self._counters: dict[str, tuple[int, float]] = {}  # ident -> (count, expires_at)
        self._lock = threading.Lock()

    def hit(self, ident: str) -> tuple[bool, LimitInfo]:
        now = self._timer()
        with self._lock:
            count, expires_at = self._counters.get(ident, (0, now + self._window))
            if expires_at <= now:
                count, expires_at = 0, now + self._window
            count += 1
            self._counters[ident] = (count, expires_at)
            if len(self._counters) > 10_000:
                self._prune(now)

        info = LimitInfo(
            limit=self._limit,
            window_seconds=self._window,
            remaining=max(0, self._limit - count),
            reset_in=max(0, int(expires_at - now)),
        )
        return count <= self._limit, info

    def _prune(self, now: float) -> None:
        expired = [key for key, (_, exp) in self._counters.items() if exp <= now]
        for key in expired:
            del self._counters[key]

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
