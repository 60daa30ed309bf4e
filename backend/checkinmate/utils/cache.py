"""In-memory LRU cache with TTL expiration.

Process-level cache for merged /places pages. Survives across requests
in the same uvicorn worker. Entries expire ``ttl_seconds`` after they
were written; reads refresh recency but not age.

Eviction and expiry come from ``cachetools.TTLCache``; this wrapper only
adds a lock, since TTLCache is not thread-safe.
"""

import threading
import time
from typing import Any, Callable

from cachetools import TTLCache


class LRUCache:
    """TTL-aware LRU cache for JSON-serializable responses."""

    def __init__(
        self,
        max_size: int = 500,
        ttl_seconds: float = 60,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TTLCache = TTLCache(maxsize=max_size, ttl=ttl_seconds, timer=timer)
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._cache.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._cache[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)
