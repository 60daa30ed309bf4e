"""Local place store backed by Redis GEO.

Layout (all keys share a namespace prefix):

- ``{ns}:geo``  sorted set managed by GEOADD, member = place id
- ``{ns}:data`` hash of place id -> JSON document

The place id is a digest of the natural identity (name, rounded
longitude, rounded latitude), so writing the same real-world place twice
updates one record instead of creating two.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from checkinmate.models import Place, PlaceSource, utcnow
from checkinmate.utils.geo import EARTH_RADIUS_M, haversine_distance

logger = logging.getLogger(__name__)

# Redis GEO cannot index latitudes beyond the Web Mercator limits
GEO_LAT_LIMIT = 85.05112878
# Earth radius Redis uses for GEO distances; ours is EARTH_RADIUS_M
REDIS_EARTH_RADIUS_M = 6_372_797.560856
IDENTITY_PRECISION = 6


def place_key(name: str, lon: float, lat: float) -> str:
    """Natural-identity key for a place.

    Example:
        >>> place_key("Eiffel Tower", 2.2945, 48.8584) == place_key("Eiffel Tower", 2.2945000001, 48.8584)
        True
    """
    identity = f"{name}|{lon:.{IDENTITY_PRECISION}f}|{lat:.{IDENTITY_PRECISION}f}"
    return hashlib.sha1(identity.encode("utf-8")).hexdigest()


@dataclass
class WriteResult:
    """Outcome of a bulk upsert. Storage errors are reported, not raised."""
    ok: bool
    written: int = 0
    skipped: int = 0
    error: Optional[str] = None


class PlaceStore(ABC):
    """Abstract base class for the persistent geospatial store."""

    @abstractmethod
    async def nearby(
        self, lat: float, lon: float, radius: float, page: int = 1, page_size: int = 10
    ) -> list[Place]:
        """Nearest-neighbour page of places within ``radius`` metres.

        Results are sorted ascending by distance, skip ``(page-1)*page_size``
        records and carry ``distance``. Empty when nothing is in range.
        """
        pass

    @abstractmethod
    async def find_near(
        self,
        lat: float,
        lon: float,
        radius: float,
        source: Optional[PlaceSource] = None,
    ) -> list[Place]:
        """All places within ``radius`` metres, optionally filtered by source."""
        pass

    @abstractmethod
    async def list_all(self, page: int = 1, limit: int = 50) -> tuple[list[Place], int]:
        """Unfiltered page of places plus the total record count."""
        pass

    @abstractmethod
    async def get(self, place_id: str) -> Optional[Place]:
        pass

    @abstractmethod
    async def upsert_many(self, places: Iterable[Place]) -> WriteResult:
        """Insert or update places keyed on their natural identity."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        pass

    async def close(self) -> None:
        pass


class RedisPlaceStore(PlaceStore):
    """Redis implementation of the place store.

    Uses GEOSEARCH for radius queries, which returns members sorted by
    distance. Reported distances are recomputed with ``haversine_distance``.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        namespace: str = "checkinmate:places",
        client: redis.Redis | None = None,
    ) -> None:
        self._redis_url = redis_url
        self._geo_key = f"{namespace}:geo"
        self._data_key = f"{namespace}:data"
        self._client = client

    def _ensure_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        try:
            return bool(await self._ensure_client().ping())
        except RedisError as e:
            logger.warning(f"[STORE] Redis ping failed: {e}")
            return False

    def _decode(self, place_id: str, document: Optional[str]) -> Optional[Place]:
        if document is None:
            logger.warning(f"[STORE] Index entry {place_id} has no document")
            return None
        try:
            return Place.model_validate_json(document)
        except ValidationError as e:
            logger.warning(f"[STORE] Skipping unreadable document {place_id}: {e}")
            return None

    async def _load(self, hits: Sequence, lat: float, lon: float, radius: float) -> list[Place]:
        """Resolve GEOSEARCH ``[member, distance]`` pairs into places.

        Redis only selects and orders the members. ``distance`` is recomputed
        with ``haversine_distance`` so local and external records are ranked
        on the same Earth radius; members beyond ``radius`` by that measure
        are dropped.
        """
        if not hits:
            return []
        ids = [member for member, _ in hits]
        documents = await self._ensure_client().hmget(self._data_key, ids)

        places = []
        for (place_id, _), document in zip(hits, documents):
            place = self._decode(place_id, document)
            if place is None:
                continue
            distance = haversine_distance(lat, lon, place.lat, place.lon)
            if distance <= radius:
                places.append(place.model_copy(update={"distance": distance}))
        return places

    async def _search(self, lat: float, lon: float, radius: float, count: Optional[int] = None) -> list:
        if abs(lat) > GEO_LAT_LIMIT:
            return []
        # Same angular radius on Redis' larger sphere
        return await self._ensure_client().geosearch(
            self._geo_key,
            longitude=lon,
            latitude=lat,
            radius=radius * REDIS_EARTH_RADIUS_M / EARTH_RADIUS_M,
            unit="m",
            sort="ASC",
            count=count,
            withdist=True,
        )

    async def nearby(
        self, lat: float, lon: float, radius: float, page: int = 1, page_size: int = 10
    ) -> list[Place]:
        offset = (page - 1) * page_size
        hits = await self._search(lat, lon, radius, count=offset + page_size)
        return await self._load(hits[offset:], lat, lon, radius)

    async def find_near(
        self,
        lat: float,
        lon: float,
        radius: float,
        source: Optional[PlaceSource] = None,
    ) -> list[Place]:
        places = await self._load(await self._search(lat, lon, radius), lat, lon, radius)
        if source is not None:
            places = [p for p in places if p.source == source]
        return places

    async def list_all(self, page: int = 1, limit: int = 50) -> tuple[list[Place], int]:
        client = self._ensure_client()
        start = (page - 1) * limit
        total = await client.zcard(self._geo_key)
        ids = await client.zrange(self._geo_key, start, start + limit - 1)
        if not ids:
            return [], total
        documents = await client.hmget(self._data_key, ids)
        places = [self._decode(i, d) for i, d in zip(ids, documents)]
        return [p for p in places if p is not None], total

    async def get(self, place_id: str) -> Optional[Place]:
        document = await self._ensure_client().hget(self._data_key, place_id)
        if document is None:
            return None
        return self._decode(place_id, document)

    async def upsert_many(self, places: Iterable[Place]) -> WriteResult:
        """Upsert places; existing records keep their id and source.

        Returns:
            WriteResult; ``ok`` is False when Redis rejected the write.
        """
        indexable = []
        skipped = 0
        for place in places:
            if abs(place.lat) > GEO_LAT_LIMIT:
                skipped += 1
                continue
            indexable.append((place_key(place.name, place.lon, place.lat), place))

        if not indexable:
            return WriteResult(ok=True, skipped=skipped)

        try:
            client = self._ensure_client()
            keys = [key for key, _ in indexable]
            existing = await client.hmget(self._data_key, keys)

            now = utcnow()
            pipe = client.pipeline(transaction=False)
            for (key, place), previous in zip(indexable, existing):
                source = place.source
                prior = self._decode(key, previous) if previous is not None else None
                if prior is not None:
                    source = prior.source
                record = place.model_copy(
                    update={"id": key, "source": source, "updated_at": now, "distance": None}
                )
                pipe.geoadd(self._geo_key, [place.lon, place.lat, key])
                pipe.hset(
                    self._data_key,
                    key,
                    record.model_dump_json(by_alias=True, exclude={"distance"}),
                )
            await pipe.execute()
        except RedisError as e:
            return WriteResult(ok=False, skipped=skipped, error=str(e))

        return WriteResult(ok=True, written=len(indexable), skipped=skipped)
