"""Local geospatial place store."""

from .service import PlaceStore, RedisPlaceStore, WriteResult, place_key

__all__ = [
    "PlaceStore",
    "RedisPlaceStore",
    "WriteResult",
    "place_key",
]
