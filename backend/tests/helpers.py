"""Test doubles and builders shared across the suite."""

import math
from datetime import datetime
from typing import Iterable, Optional

from checkinmate.models import GeoPoint, Place, PlaceSource, utcnow
from checkinmate.services.store import PlaceStore, WriteResult, place_key
from checkinmate.utils.geo import EARTH_RADIUS_M, haversine_distance

# Eiffel Tower, used as the query point throughout the suite
ORIGIN_LAT = 48.8584
ORIGIN_LON = 2.2945


def north_of(lat: float, meters: float) -> float:
    """Latitude ``meters`` due north of ``lat`` on the haversine sphere."""
    return lat + math.degrees(meters / EARTH_RADIUS_M)


def build_place(
    name: str,
    lat: float,
    lon: float,
    source: PlaceSource = PlaceSource.LOCAL,
    distance: Optional[float] = None,
    updated_at: Optional[datetime] = None,
) -> Place:
    return Place(
        id=place_key(name, lon, lat),
        name=name,
        coordinates=GeoPoint.from_lat_lon(lat, lon),
        category="cafe",
        source=source,
        updated_at=updated_at or utcnow(),
        distance=distance,
    )


class FakePlaceStore(PlaceStore):
    """In-memory stand-in for the Redis store."""

    def __init__(self, places: Iterable[Place] = ()) -> None:
        self.places: dict[str, Place] = {}
        self.upserts: list[list[Place]] = []
        self.nearby_calls = 0
        self.fail_writes = False
        self.healthy = True
        for place in places:
            self.add(place)

    def add(self, place: Place) -> Place:
        key = place.id or place_key(place.name, place.lon, place.lat)
        self.places[key] = place.model_copy(update={"id": key, "distance": None})
        return self.places[key]

    def _in_range(self, lat: float, lon: float, radius: float) -> list[Place]:
        hits = []
        for place in self.places.values():
            distance = haversine_distance(lat, lon, place.lat, place.lon)
            if distance <= radius:
                hits.append(place.model_copy(update={"distance": distance}))
        hits.sort(key=lambda p: p.distance)
        return hits

    async def nearby(self, lat, lon, radius, page=1, page_size=10):
        self.nearby_calls += 1
        offset = (page - 1) * page_size
        return self._in_range(lat, lon, radius)[offset:offset + page_size]

    async def find_near(self, lat, lon, radius, source=None):
        hits = self._in_range(lat, lon, radius)
        if source is not None:
            hits = [p for p in hits if p.source == source]
        return hits

    async def list_all(self, page=1, limit=50):
        items = list(self.places.values())
        start = (page - 1) * limit
        return items[start:start + limit], len(items)

    async def get(self, place_id):
        return self.places.get(place_id)

    async def upsert_many(self, places):
        places = list(places)
        self.upserts.append(places)
        if self.fail_writes:
            return WriteResult(ok=False, error="write refused")
        for place in places:
            self.add(place)
        return WriteResult(ok=True, written=len(places))

    async def ping(self):
        return self.healthy


class StubExternalSource:
    """Replaces OverpassService in handler and route tests."""

    def __init__(self, places: Iterable[Place] = (), error: Optional[Exception] = None) -> None:
        self.places = list(places)
        self.error = error
        self.calls: list[tuple[float, float, float]] = []

    async def query_places(self, lat, lon, radius):
        self.calls.append((lat, lon, radius))
        if self.error is not None:
            raise self.error
        return list(self.places)
