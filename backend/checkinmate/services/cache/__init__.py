"""Result cache service module."""

from .service import CacheService, MemoryCacheService, RedisCacheService

__all__ = [
    "CacheService",
    "MemoryCacheService",
    "RedisCacheService",
]
