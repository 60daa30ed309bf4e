"""Places request handler.

Orchestrates one /places lookup:

    validate -> cache lookup -> hit: respond
                             -> miss: local store -> enough: respond
                                                  -> short: external -> merge
                                                            -> cache write -> respond

No retries here; fallback behaviour lives in the Overpass adapter.
"""

import logging
from typing import Optional

from checkinmate.models import (
    HealthResponse,
    HealthState,
    Place,
    PlaceQuery,
    PlacesPage,
    ServiceStatus,
)
from checkinmate.services.cache import CacheService
from checkinmate.services.overpass import OverpassService
from checkinmate.services.store import PlaceStore

from .merge import merge_places

logger = logging.getLogger(__name__)


class PlacesService:
    """Request handler combining the local store, Overpass and the cache."""

    def __init__(
        self,
        store: PlaceStore,
        external: OverpassService,
        cache: CacheService,
    ) -> None:
        self._store = store
        self._external = external
        self._cache = cache

    async def get_places(self, query: PlaceQuery) -> PlacesPage:
        """Return a ranked page of places near the query point."""
        logger.info(
            f"[PLACES] Searching lat={query.lat} lon={query.lon} "
            f"radius={query.radius} page={query.page} limit={query.limit}"
        )
        cache_key = CacheService.build_places_key(
            query.lat, query.lon, query.radius, query.page, query.limit
        )

        if query.cache:
            cached = await self._cache_get(cache_key)
            if cached is not None:
                logger.debug(f"[PLACES] Cache hit for key: {cache_key}")
                return self._page(query, [Place.model_validate(item) for item in cached])

        local = await self._store.nearby(
            query.lat, query.lon, query.radius, query.page, query.limit
        )
        logger.debug(f"[PLACES] Local store returned {len(local)} places")
        if len(local) >= query.limit:
            return self._page(query, local)

        external = await self._external.query_places(query.lat, query.lon, query.radius)
        merged = merge_places(local, external, query.lat, query.lon, query.limit)

        if query.cache:
            await self._cache_set(
                cache_key, [place.model_dump(mode="json", by_alias=True) for place in merged]
            )

        return self._page(query, merged)

    async def _cache_get(self, key: str) -> Optional[list]:
        try:
            return await self._cache.get(key)
        except Exception as e:
            logger.warning(f"[PLACES] Cache read failed, treating as miss: {e}")
            return None

    async def _cache_set(self, key: str, value: list) -> None:
        try:
            await self._cache.set(key, value)
            logger.debug(f"[PLACES] Cached {len(value)} places with key: {key}")
        except Exception as e:
            logger.warning(f"[PLACES] Cache write failed for {key}: {e}")

    @staticmethod
    def _page(query: PlaceQuery, results: list[Place]) -> PlacesPage:
        return PlacesPage(
            page=query.page, limit=query.limit, total=len(results), results=results
        )

    async def get_all_places(self, page: int = 1, limit: int = 50) -> PlacesPage:
        logger.info(f"[PLACES] Fetching all places: page={page}, limit={limit}")
        places, total = await self._store.list_all(page, limit)
        return PlacesPage(page=page, limit=limit, total=total, results=places)

    async def get_place(self, place_id: str) -> Optional[Place]:
        return await self._store.get(place_id)

    async def health(self) -> HealthResponse:
        database = await self._store.ping()
        cache = await self._cache.ping()
        status = HealthState.OK if database and cache else HealthState.DEGRADED
        logger.info(f"[PLACES] Health check completed: {status.value}")
        return HealthResponse(
            status=status, services=ServiceStatus(database=database, cache=cache)
        )
