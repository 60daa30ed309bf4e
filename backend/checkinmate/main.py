"""CheckinMate FastAPI Application.

Main entry point for the backend API server. ``create_app`` wires the
store, result cache, Overpass adapter and rate limiter once and keeps
them on ``app.state`` for the lifetime of the process.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables from .env file before settings are read
load_dotenv()

from checkinmate.api import router
from checkinmate.core.config import Settings, get_settings
from checkinmate.models import AppError, ErrorCode
from checkinmate.services import (
    CacheService,
    MemoryCacheService,
    OverpassService,
    PlacesService,
    PlaceStore,
    RateLimiter,
    RedisCacheService,
    RedisPlaceStore,
)

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def build_cache(settings: Settings) -> CacheService:
    if settings.cache_backend == "redis":
        return RedisCacheService(settings.redis_url, ttl_seconds=settings.cache_ttl_seconds)
    return MemoryCacheService(
        max_size=settings.cache_max_size, ttl_seconds=settings.cache_ttl_seconds
    )


def _error_body(code: ErrorCode, message: str, user_message: str, details=None) -> dict:
    error = {
        "code": code.value,
        "message": message,
        "user_message": user_message,
    }
    if details is not None:
        error["details"] = details
    return {"success": False, "error": error}


def _validation_details(exc: RequestValidationError) -> list[dict]:
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("query", "path", "body")]
        details.append({"field": ".".join(loc) or "request", "message": err.get("msg", "Invalid value")})
    return details


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[PlaceStore] = None,
    cache: Optional[CacheService] = None,
    external: Optional[OverpassService] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """Build the application.

    Any collaborator left as None is built from ``settings``.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    store = store or RedisPlaceStore(settings.redis_url)
    cache = cache or build_cache(settings)
    external = external or OverpassService(
        store,
        overpass_url=settings.overpass_url,
        timeout=settings.overpass_timeout,
        freshness=timedelta(hours=settings.freshness_hours),
    )
    rate_limiter = rate_limiter or RateLimiter(
        limit=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info(f"Starting {settings.project_name} ({settings.environment})")
        yield
        # Shutdown
        await store.close()
        await cache.close()
        logger.info("Shutdown completed")

    app = FastAPI(
        title=settings.project_name,
        description="Nearby points of interest from a local store and OpenStreetMap",
        version=settings.version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.cache = cache
    app.state.rate_limiter = rate_limiter
    app.state.places_service = PlacesService(store, external, cache)

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        """Tag each request with an id, log it and add security headers."""
        request_id = str(uuid.uuid4())
        start = time.perf_counter()
        logger.info(f"Incoming request {request.method} {request.url.path} id={request_id}")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Request completed {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration_ms:.1f}ms id={request_id}"
        )
        response.headers["X-Request-ID"] = request_id
        response.headers.update(SECURITY_HEADERS)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle query parameter validation errors."""
        details = _validation_details(exc)
        fields = ", ".join(d["field"] for d in details)
        logger.warning(f"Request validation failed on {request.url.path}: {details}")
        return JSONResponse(
            status_code=400,
            content=_error_body(
                ErrorCode.VALIDATION_ERROR,
                f"Invalid request parameters: {fields}",
                "Invalid request format. Please check your input.",
                details,
            ),
        )

    @app.exception_handler(AppError)
    async def app_exception_handler(request: Request, exc: AppError):
        """Handle errors raised deliberately by the services."""
        if exc.status_code >= 500:
            logger.error(f"{exc.code.value} on {request.url.path}: {exc.message}")
        message = exc.message
        if exc.status_code >= 500 and settings.is_production:
            message = exc.user_message
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, message, exc.user_message, exc.details),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors."""
        logger.exception(f"Unhandled error on {request.url.path}")
        return JSONResponse(
            status_code=500,
            content=_error_body(
                ErrorCode.API_ERROR,
                "Something went wrong" if settings.is_production else str(exc),
                "Something went wrong. Please try again.",
            ),
        )

    # Include API routes
    app.include_router(router, prefix=settings.api_prefix)

    return app


app = create_app()
