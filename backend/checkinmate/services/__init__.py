"""CheckinMate Services.

Service layer components:
- Cache: result cache (in-memory LRU or Redis)
- Store: Redis GEO backed local place store
- Overpass: OpenStreetMap Overpass API as external place source
- Place Validator: single validation entry point for place records
- Places: merge/dedup/rank engine and request handler
- Rate limit: fixed-window request limiter
"""

from .cache import CacheService, MemoryCacheService, RedisCacheService
from .overpass import OverpassService
from .place_validator import ValidationResult, validate_place
from .places import PlacesService, merge_places
from .rate_limit import LimitInfo, RateLimiter
from .store import PlaceStore, RedisPlaceStore, WriteResult, place_key

__all__ = [
    # Cache
    "CacheService",
    "MemoryCacheService",
    "RedisCacheService",
    # External source
    "OverpassService",
    # Place validator
    "ValidationResult",
    "validate_place",
    # Places
    "PlacesService",
    "merge_places",
    # Rate limit
    "LimitInfo",
    "RateLimiter",
    # Store
    "PlaceStore",
    "RedisPlaceStore",
    "WriteResult",
    "place_key",
]
