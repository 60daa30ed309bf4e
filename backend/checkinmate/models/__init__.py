"""CheckinMate data models."""

from .core import (
    DEFAULT_CATEGORY,
    UNKNOWN_ADDRESS,
    GeoPoint,
    HealthResponse,
    HealthState,
    PaginationQuery,
    Place,
    PlaceDetailsResponse,
    PlaceQuery,
    PlaceSource,
    PlacesPage,
    ServiceStatus,
    utcnow,
)
from .errors import (
    AppError,
    ErrorCode,
    ExternalSourceError,
    InvalidCoordinatesError,
    RateLimitedError,
)

__all__ = [
    # Core
    "DEFAULT_CATEGORY",
    "UNKNOWN_ADDRESS",
    "GeoPoint",
    "HealthResponse",
    "HealthState",
    "PaginationQuery",
    "Place",
    "PlaceDetailsResponse",
    "PlaceQuery",
    "PlaceSource",
    "PlacesPage",
    "ServiceStatus",
    "utcnow",
    # Errors
    "AppError",
    "ErrorCode",
    "ExternalSourceError",
    "InvalidCoordinatesError",
    "RateLimitedError",
]
