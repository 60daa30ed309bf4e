"""Merge, deduplicate and rank places from the two sources.

Input order matters: local-store records are concatenated before
external ones, so when both describe the same place the local record is
the one that survives.
"""

import logging
from typing import Iterable, Mapping

from checkinmate.models import Place
from checkinmate.services.place_validator import validate_place
from checkinmate.utils.geo import haversine_distance

logger = logging.getLogger(__name__)

# ~11 m at the equator
DUPLICATE_TOLERANCE_DEG = 0.0001


def is_duplicate(a: Place, b: Place) -> bool:
    """Same name and both coordinate deltas under the tolerance."""
    return (
        a.name == b.name
        and abs(a.lon - b.lon) < DUPLICATE_TOLERANCE_DEG
        and abs(a.lat - b.lat) < DUPLICATE_TOLERANCE_DEG
    )


def with_distance(place: Place, lat: float, lon: float) -> Place:
    """Copy of ``place`` annotated with its distance from (lat, lon)."""
    distance = haversine_distance(lat, lon, place.lat, place.lon)
    return place.model_copy(update={"distance": distance})


def merge_places(
    local: Iterable[Place | Mapping],
    external: Iterable[Place | Mapping],
    lat: float,
    lon: float,
    limit: int,
) -> list[Place]:
    """Combine local and external results into one ranked page.

    1. Concatenate local then external
    2. Drop records without a name or two valid coordinates; compute
       ``distance`` where it is missing (always for external records)
    3. Stable first-occurrence-wins dedup
    4. Sort ascending by distance
    5. Truncate to ``limit``

    Args:
        local: Local-store page, already carrying ``distance``.
        external: Records from the external source.
        lat: Query latitude.
        lon: Query longitude.
        limit: Maximum number of records to return.

    Returns:
        At most ``limit`` places, nearest first.
    """
    candidates: list[Place] = []
    for origin, records in (("local", local), ("external", external)):
        for record in records:
            result = validate_place(record)
            if not result.is_valid:
                logger.debug(f"[MERGE] Dropping {origin} record: {result.reason}")
                continue
            place = result.place
            if origin == "external" or place.distance is None:
                place = with_distance(place, lat, lon)
            candidates.append(place)

    unique: list[Place] = []
    for place in candidates:
        if not any(is_duplicate(kept, place) for kept in unique):
            unique.append(place)

    unique.sort(key=lambda p: p.distance)
    return unique[:max(limit, 0)]
