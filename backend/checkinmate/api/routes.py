"""API routes for CheckinMate.

All routes share one rate limiter and one PlacesService, both created at
startup and stored on ``app.state``.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from checkinmate.models import (
    HealthResponse,
    PaginationQuery,
    PlaceDetailsResponse,
    PlaceQuery,
    PlacesPage,
    RateLimitedError,
)
from checkinmate.services import PlacesService, RateLimiter

logger = logging.getLogger(__name__)


def get_places_service(request: Request) -> PlacesService:
    return request.app.state.places_service


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


async def enforce_rate_limit(
    request: Request,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> None:
    """Reject the request with 429 once the client exhausts its window."""
    ident = request.client.host if request.client else "anonymous"
    ok, info = limiter.hit(ident)
    if not ok:
        logger.warning(f"Rate limit exceeded for {ident} on {request.url.path}")
        raise RateLimitedError(
            f"Rate limit of {info.limit} requests per {info.window_seconds}s exceeded",
            headers=info.http_headers(),
        )


router = APIRouter(dependencies=[Depends(enforce_rate_limit)])

PlacesServiceDep = Annotated[PlacesService, Depends(get_places_service)]


@router.get("/", tags=["root"])
async def root(request: Request) -> dict[str, str]:
    """API name, version and documentation pointer."""
    return {
        "message": request.app.title,
        "version": request.app.version,
        "documentation": request.app.docs_url or "",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/places", response_model=PlacesPage, tags=["places"])
async def get_places(
    query: Annotated[PlaceQuery, Query()],
    service: PlacesServiceDep,
) -> PlacesPage:
    """Nearby places ranked by distance, merged from the store and OSM."""
    return await service.get_places(query)


@router.get("/all-places", response_model=PlacesPage, tags=["places"])
async def get_all_places(
    query: Annotated[PaginationQuery, Query()],
    service: PlacesServiceDep,
) -> PlacesPage:
    """Unfiltered paginated dump of the local store."""
    return await service.get_all_places(query.page, query.limit)


@router.get("/places/{place_id}", response_model=PlaceDetailsResponse, tags=["places"])
async def get_place(place_id: str, service: PlacesServiceDep) -> PlaceDetailsResponse:
    """Single place by store id; ``data`` is null when unknown."""
    return PlaceDetailsResponse(data=await service.get_place(place_id))


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(service: PlacesServiceDep) -> HealthResponse:
    """Health of the store and the result cache."""
    return await service.health()
