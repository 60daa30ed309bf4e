"""Place validation at ingestion boundaries.

Every record entering the pipeline, whether parsed from an Overpass
response or fed into the merge step, goes through ``validate_place``.
It never raises: the caller gets a tagged result that is either a valid
``Place`` or the list of fields that made it unusable.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import ValidationError

from checkinmate.models import GeoPoint, Place


@dataclass
class ValidationResult:
    """Result of place validation."""
    is_valid: bool
    missing_fields: list[str] = field(default_factory=list)
    place: Optional[Place] = None

    @property
    def reason(self) -> str:
        if self.is_valid:
            return ""
        return "invalid or missing: " + ", ".join(self.missing_fields)


def _coordinates_of(value: Any) -> Any:
    if isinstance(value, GeoPoint):
        return value.coordinates
    if isinstance(value, Mapping):
        return value.get("coordinates")
    return value


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _check_coordinates(coords: Any) -> list[str]:
    if not isinstance(coords, (list, tuple)) or len(coords) != 2:
        return ["coordinates"]
    lon, lat = coords
    problems = []
    if not _is_number(lon) or not -180 <= lon <= 180:
        problems.append("lon")
    if not _is_number(lat) or not -90 <= lat <= 90:
        problems.append("lat")
    return problems


def validate_place(data: Place | Mapping[str, Any]) -> ValidationResult:
    """Validate a place-like value.

    Accepts either a ``Place`` (possibly built without validation) or a
    raw mapping in the API wire format. A record is valid when it has a
    non-blank name and exactly two in-range coordinates.

    Args:
        data: The candidate record.

    Returns:
        ValidationResult carrying the parsed ``Place`` when valid.
    """
    if isinstance(data, Place):
        name = data.name
        coords = _coordinates_of(data.coordinates)
    elif isinstance(data, Mapping):
        name = data.get("name")
        coords = _coordinates_of(data.get("coordinates"))
    else:
        return ValidationResult(is_valid=False, missing_fields=["name", "coordinates"])

    missing: list[str] = []
    if not isinstance(name, str) or not name.strip():
        missing.append("name")
    missing.extend(_check_coordinates(coords))
    if missing:
        return ValidationResult(is_valid=False, missing_fields=missing)

    if isinstance(data, Place):
        return ValidationResult(is_valid=True, place=data)

    try:
        place = Place.model_validate(data)
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        return ValidationResult(is_valid=False, missing_fields=fields or ["record"])
    return ValidationResult(is_valid=True, place=place)
