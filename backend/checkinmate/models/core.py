"""Core data models for CheckinMate.

This module contains the Pydantic models that flow through the places
pipeline: the GeoJSON point, the place record itself, query parameters
and the response envelopes returned by the API.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_ADDRESS = "Unknown address"
DEFAULT_CATEGORY = "other"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlaceSource(str, Enum):
    """Provenance of a place record."""

    LOCAL = "local"
    EXTERNAL = "external"


class GeoPoint(BaseModel):
    """GeoJSON point.

    Coordinates are ordered ``[longitude, latitude]``.
    Longitude must be between -180 and 180 degrees.
    Latitude must be between -90 and 90 degrees.
    """

    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float] = Field(
        ..., description="[longitude, latitude] in degrees"
    )

    @field_validator("coordinates")
    @classmethod
    def _check_range(cls, value: tuple[float, float]) -> tuple[float, float]:
        lon, lat = value
        if not -180 <= lon <= 180:
            raise ValueError("longitude must be between -180 and 180")
        if not -90 <= lat <= 90:
            raise ValueError("latitude must be between -90 and 90")
        return value

    @classmethod
    def from_lat_lon(cls, lat: float, lon: float) -> "GeoPoint":
        return cls(coordinates=(lon, lat))

    @property
    def lon(self) -> float:
        return self.coordinates[0]

    @property
    def lat(self) -> float:
        return self.coordinates[1]


class Place(BaseModel):
    """Point of Interest record.

    Records come either from the local store or from the external
    Overpass source. ``distance`` is only populated in query responses
    (metres from the query point) and is never persisted.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, description="Natural-identity key")
    name: str = Field(..., min_length=1, description="Display name of the place")
    address: str = Field(UNKNOWN_ADDRESS, description="Street address")
    coordinates: GeoPoint = Field(..., description="Geographic location")
    category: str = Field(DEFAULT_CATEGORY, description="Classification tag")
    source: PlaceSource = Field(..., description="Where the record came from")
    updated_at: datetime = Field(
        default_factory=utcnow, alias="updatedAt", description="Last refresh time"
    )
    distance: Optional[float] = Field(
        None, ge=0, description="Metres from the query point"
    )

    @property
    def lat(self) -> float:
        return self.coordinates.lat

    @property
    def lon(self) -> float:
        return self.coordinates.lon


class PlaceQuery(BaseModel):
    """Query parameters for the nearby places lookup."""

    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    lon: float = Field(..., ge=-180, le=180, description="Longitude in degrees")
    radius: int = Field(1000, ge=100, le=5000, description="Search radius in metres")
    page: int = Field(1, ge=1, description="1-based page number")
    limit: int = Field(10, ge=1, le=100, description="Page size")
    cache: bool = Field(False, description="Use the short-lived result cache")


class PaginationQuery(BaseModel):
    """Query parameters for the unfiltered listing."""

    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=100)


class PlacesPage(BaseModel):
    """Paginated list of places."""

    page: int
    limit: int
    total: int
    results: list[Place] = Field(default_factory=list)


class PlaceDetailsResponse(BaseModel):
    """Single place lookup; ``data`` is null when the id is unknown."""

    data: Optional[Place] = None
    timestamp: datetime = Field(default_factory=utcnow)


class HealthState(str, Enum):
    OK = "OK"
    DEGRADED = "DEGRADED"


class ServiceStatus(BaseModel):
    database: bool
    cache: bool


class HealthResponse(BaseModel):
    status: HealthState
    timestamp: datetime = Field(default_factory=utcnow)
    services: ServiceStatus
