"""Result cache service implementation.

This module provides an abstract cache service interface plus two
concrete backends for caching merged /places pages:

- MemoryCacheService: in-process LRU with TTL (default)
- RedisCacheService: shared across workers, TTL via ``SET ... EX``

Both honour the same contract: a value written with ``set`` is returned
by ``get`` until its TTL elapses and never afterwards.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from checkinmate.utils.cache import LRUCache

logger = logging.getLogger(__name__)


class CacheService(ABC):
    """Abstract base class for cache services.

    Defines the interface for caching operations and provides a static
    method for building consistent /places cache keys.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Retrieve cached value by key.

        Args:
            key: The cache key to look up.

        Returns:
            The cached value if found and not expired, None otherwise.
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store value in cache under the backend's TTL.

        Args:
            key: The cache key to store under.
            value: The value to cache (must be JSON serializable).
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a specific key from the cache.

        Returns:
            True if the key was deleted, False if it didn't exist.
        """
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Report whether the backend is usable."""
        pass

    async def close(self) -> None:
        pass

    @staticmethod
    def build_places_key(
        lat: float, lon: float, radius: int, page: int, limit: int
    ) -> str:
        """Generate cache key for a /places query.

        Coordinates are rounded to 6 decimal places (~0.1 m) so that
        equivalent queries share an entry while distinct query shapes
        never collide.

        Example:
            >>> CacheService.build_places_key(48.8584, 2.2945, 500, 1, 10)
            'places:48.858400:2.294500:500:1:10'
        """
        return f"places:{lat:.6f}:{lon:.6f}:{radius}:{page}:{limit}"


class MemoryCacheService(CacheService):
    """In-process cache backed by ``LRUCache``."""

    def __init__(self, max_size: int = 500, ttl_seconds: int = 60, **lru_kwargs: Any) -> None:
        self._cache = LRUCache(max_size=max_size, ttl_seconds=ttl_seconds, **lru_kwargs)

    async def get(self, key: str) -> Any | None:
        return self._cache.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._cache.set(key, value)

    async def delete(self, key: str) -> bool:
        return self._cache.delete(key)

    async def ping(self) -> bool:
        return self._cache is not None

    async def close(self) -> None:
        self._cache.clear()


class RedisCacheService(CacheService):
    """Redis-based implementation of the cache service.

    Capacity is bounded by the server's ``maxmemory`` policy (configure
    ``allkeys-lru``); expiry is enforced per key with ``EX``.

    Attributes:
        _client: The Redis async client instance.
        _ttl: TTL in seconds for cached values.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        ttl_seconds: int = 60,
        client: redis.Redis | None = None,
    ) -> None:
        self._redis_url = redis_url
        self._ttl = ttl_seconds
        self._client = client

    def _ensure_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._client

    async def get(self, key: str) -> Any | None:
        client = self._ensure_client()
        value = await client.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning(f"[CACHE] Dropping undecodable entry {key}")
            await client.delete(key)
            return None

    async def set(self, key: str, value: Any) -> None:
        client = self._ensure_client()
        await client.set(key, json.dumps(value), ex=self._ttl)

    async def delete(self, key: str) -> bool:
        client = self._ensure_client()
        return await client.delete(key) > 0

    async def ping(self) -> bool:
        try:
            return bool(await self._ensure_client().ping())
        except RedisError as e:
            logger.warning(f"[CACHE] Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
