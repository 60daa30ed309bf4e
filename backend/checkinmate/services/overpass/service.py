"""OpenStreetMap Overpass API adapter for nearby POI data.

This is the EXTERNAL place source. It complements the local store when
the store alone cannot fill a page.

Flow for a (lat, lon, radius) lookup:
1. Reject out-of-range input before any I/O
2. Reuse previously fetched Overpass places from the store if they are
   all younger than the freshness window
3. Otherwise query Overpass, parse and normalize the elements
4. Write the parsed places back to the store (best effort)
5. If Overpass fails, fall back to whatever the store has, even stale
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from checkinmate.models import (
    DEFAULT_CATEGORY,
    UNKNOWN_ADDRESS,
    ExternalSourceError,
    InvalidCoordinatesError,
    Place,
    PlaceSource,
    utcnow,
)
from checkinmate.services.place_validator import validate_place
from checkinmate.services.store import PlaceStore, place_key

logger = logging.getLogger(__name__)


# General-purpose tag keys, in category priority order
RELEVANT_TAGS = [
    "amenity",
    "tourism",
    "leisure",
    "historic",
    "shop",
    "road",
    "building",
    "man_made",
    "natural",
]

# Landmark tags are checked before RELEVANT_TAGS when deriving a category
LANDMARK_TAGS = [
    "tourism=attraction",
    "historic=monument",
    "historic=memorial",
    "historic=building",
    "landmark=yes",
    "tower=yes",
    "building=tower",
    "natural=peak",
    "natural=volcano",
    "man_made=tower",
    "man_made=obelisk",
    "man_made=monument",
    "building=church",
    "building=cathedral",
]

# Famous landmarks that are often tagged inconsistently
NAME_PATTERNS = [
    "[Ee]iffel",
    "[Cc]hrist [Tt]he [Rr]edeemer",
    "[Ss]tatue [Oo]f [Ll]iberty",
    "[Tt]aj [Mm]ahal",
    "[Mm]ount [Ff]uji",
    "[Tt]ower",
    "[Mm]onument",
    "[Ss]tatue",
]

# Micro-features that are never worth returning
EXCLUDED_VALUES = [
    "bench",
    "waste_basket",
    "telephone",
    "parking",
    "parking_space",
]

MAX_RADIUS_M = 10_000


def categorize(tags: Mapping[str, str]) -> str:
    """Derive a category from OSM tags.

    Landmark tags win over general tags. A ``yes`` value is replaced by
    the tag key, so ``tower=yes`` becomes ``tower``.
    """
    for tag in LANDMARK_TAGS:
        key, value = tag.split("=", 1)
        if tags.get(key) == value:
            return key if value == "yes" else value

    for key in RELEVANT_TAGS:
        value = tags.get(key)
        if value:
            return key if value == "yes" else value

    return DEFAULT_CATEGORY


def is_excluded(tags: Mapping[str, str]) -> bool:
    """True if any relevant tag carries an excluded value, or the element
    has a tag keyed by an excluded value (e.g. ``bench=yes``)."""
    for excluded in EXCLUDED_VALUES:
        if excluded in tags:
            return True
        if any(tags.get(key) == excluded for key in RELEVANT_TAGS):
            return True
    return False


def element_coordinates(element: Mapping[str, Any]) -> Optional[tuple[float, float]]:
    """Return ``(lat, lon)`` for a node, or the center of a way/relation."""
    source = element
    if element.get("lat") is None or element.get("lon") is None:
        source = element.get("center") or {}
    try:
        lat = float(source["lat"])
        lon = float(source["lon"])
    except (KeyError, TypeError, ValueError):
        return None
    return lat, lon


class OverpassService:
    """Overpass API client with store-backed caching and fallback.

    Attributes:
        _store: Local store used for freshness reads, fallback and write-back.
        _timeout: Request timeout in seconds (also sent to Overpass).
        _freshness: Maximum age of reusable external records.
    """

    OVERPASS_URL = "https://overpass-api.de/api/interpreter"

    HEADERS = {"User-Agent": "CheckinMate/1.0 (contact@checkinmate.app)"}

    def __init__(
        self,
        store: PlaceStore,
        overpass_url: str = OVERPASS_URL,
        timeout: float = 30.0,
        freshness: timedelta = timedelta(hours=24),
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._store = store
        self._url = overpass_url
        self._timeout = timeout
        self._freshness = freshness
        self._transport = transport

    @staticmethod
    def validate_input(lat: float, lon: float, radius: float) -> None:
        if not (-90 <= lat <= 90 and -180 <= lon <= 180 and 0 < radius <= MAX_RADIUS_M):
            raise InvalidCoordinatesError(
                f"Invalid coordinates or radius provided: lat={lat}, lon={lon}, radius={radius}"
            )

    async def query_places(self, lat: float, lon: float, radius: float) -> list[Place]:
        """Query places near a point.

        Args:
            lat: Latitude in degrees.
            lon: Longitude in degrees.
            radius: Search radius in metres.

        Returns:
            Places from the store (when fresh) or from Overpass.

        Raises:
            InvalidCoordinatesError: Input out of range; no I/O was done.
            ExternalSourceError: Overpass failed and the store has nothing
                for the area.
        """
        self.validate_input(lat, lon, radius)

        cached = await self._cached_places(lat, lon, radius)
        if self._is_fresh(cached):
            logger.info(f"[OVERPASS] Using {len(cached)} cached places for {lat},{lon} r={radius}")
            return cached

        query = self.build_query(lat, lon, radius)
        logger.info(f"[OVERPASS] Requesting {lat},{lon} with radius {radius}")
        try:
            data = await self._fetch(query)
            places = self.parse_response(data)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[OVERPASS] Query failed for {lat},{lon}: {e}")
            if cached:
                logger.warning(f"[OVERPASS] Falling back to {len(cached)} stored places")
                return cached
            raise ExternalSourceError(f"Failed to fetch data: {e}") from e

        logger.info(f"[OVERPASS] Parsed {len(places)} places")
        if places:
            result = await self._store.upsert_many(places)
            if not result.ok:
                logger.warning(f"[OVERPASS] Write-back failed, returning results anyway: {result.error}")

        return places

    async def _cached_places(self, lat: float, lon: float, radius: float) -> list[Place]:
        try:
            return await self._store.find_near(lat, lon, radius, source=PlaceSource.EXTERNAL)
        except Exception as e:
            logger.warning(f"[OVERPASS] Could not read stored places: {e}")
            return []

    def _is_fresh(self, places: list[Place]) -> bool:
        if not places:
            return False
        oldest_allowed = utcnow() - self._freshness
        return all(_as_utc(p.updated_at) > oldest_allowed for p in places)

    async def _fetch(self, query: str) -> Any:
        async with httpx.AsyncClient(
            timeout=self._timeout, headers=self.HEADERS, transport=self._transport
        ) as client:
            response = await client.post(
                self._url,
                data={"data": query},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            response.raise_for_status()
            return response.json()

    def build_query(self, lat: float, lon: float, radius: float) -> str:
        """Build the Overpass QL query for POIs around a point."""
        around = f"around:{radius},{lat},{lon}"
        lines = []
        for element_type in ("node", "way", "relation"):
            lines.extend(f"{element_type}({around})[{tag}];" for tag in LANDMARK_TAGS)
        for pattern in NAME_PATTERNS:
            for element_type in ("node", "way", "relation"):
                lines.append(f'{element_type}({around})["name"~"{pattern}"];')
        for element_type in ("node", "way", "relation"):
            lines.extend(f"{element_type}({around})[{tag}];" for tag in RELEVANT_TAGS)
        for key in ("tourism", "historic"):
            for element_type in ("node", "way", "relation"):
                lines.append(f'{element_type}({around})["name"]["{key}"];')

        return f"""
[out:json][timeout:{int(self._timeout)}];
(
  {chr(10).join(lines)}
);
out body center;
>;
out skel qt;
"""

    def parse_response(self, data: Any) -> list[Place]:
        """Normalize Overpass elements into place records.

        Elements that are not objects, or whose ``tags`` is not an object,
        are skipped.

        Raises:
            ValueError: The payload is not an Overpass JSON object, or none
                of its elements is well formed.
        """
        if not isinstance(data, Mapping):
            raise ValueError("Malformed Overpass response")

        elements = data.get("elements")
        if not elements:
            logger.warning("[OVERPASS] No elements found in response")
            return []
        if not isinstance(elements, list):
            raise ValueError("Malformed Overpass response: elements is not a list")

        now = utcnow()
        places = []
        malformed = 0
        for element in elements:
            tags = None
            if isinstance(element, Mapping):
                tags = element.get("tags") or {}
            if not isinstance(tags, Mapping):
                malformed += 1
                continue
            name = tags.get("name")
            if not name:
                continue

            coords = element_coordinates(element)
            if coords is None or is_excluded(tags):
                logger.debug(f"[OVERPASS] Filtering out {name}: tags={tags}")
                continue
            lat, lon = coords

            result = validate_place({
                "name": name,
                "address": tags.get("addr:street") or UNKNOWN_ADDRESS,
                "coordinates": {"type": "Point", "coordinates": [lon, lat]},
                "category": categorize(tags),
                "source": PlaceSource.EXTERNAL,
                "updatedAt": now,
            })
            if not result.is_valid:
                logger.debug(f"[OVERPASS] Rejected {name}: {result.reason}")
                continue

            places.append(result.place.model_copy(update={"id": place_key(name, lon, lat)}))

        if malformed == len(elements):
            raise ValueError(f"Malformed Overpass response: {malformed} unreadable elements")
        if malformed:
            logger.warning(f"[OVERPASS] Skipped {malformed} malformed elements")
        return places


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
