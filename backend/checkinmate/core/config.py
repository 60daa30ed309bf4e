"""Application configuration."""

from functools import lru_cache
import os

from pydantic import BaseModel, Field


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    """Application settings (env values win, otherwise defaults)."""

    project_name: str = os.getenv("PROJECT_NAME", "CheckinMate API")
    version: str = os.getenv("APP_VERSION", "1.0.0")
    api_prefix: str = os.getenv("API_PREFIX", "/api/v1")
    environment: str = os.getenv("ENVIRONMENT", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    overpass_url: str = os.getenv(
        "OVERPASS_URL", "https://overpass-api.de/api/interpreter"
    )
    overpass_timeout: float = float(os.getenv("OVERPASS_TIMEOUT", "30"))
    freshness_hours: int = int(os.getenv("FRESHNESS_HOURS", "24"))

    # "memory" keeps results in-process, "redis" shares them across workers
    cache_backend: str = os.getenv("CACHE_BACKEND", "memory")
    cache_ttl_seconds: int = int(os.getenv("CACHE_TTL_SECONDS", "60"))
    cache_max_size: int = int(os.getenv("CACHE_MAX_SIZE", "500"))

    rate_limit_requests: int = int(os.getenv("RATE_LIMIT_REQUESTS", "100"))
    rate_limit_window_seconds: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

    cors_origins: list[str] = Field(
        default_factory=lambda: _split_csv(
            os.getenv("CORS_ORIGINS", "http://localhost:3000")
        )
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
