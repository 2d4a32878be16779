from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the FastAPI service.

    This is separate from src.db.config.Settings, which focuses on the database layer.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="Booking API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for a multi-tenant appointment booking platform. "
            "Businesses manage employees, services, customers and appointments; "
            "customers book online."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list or JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="If true, seed a demo business after migrations.",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Root log level name")

    # Tokens
    JWT_SECRET_KEY: str = Field(
        default="change-me-in-production",
        description="Secret used to sign access tokens.",
    )
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60)
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default=7)

    # Cache
    CACHE_BACKEND: str = Field(
        default="memory", description="Cache backend: 'memory' or 'redis'."
    )
    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    CACHE_DEFAULT_EXPIRATION_MINUTES: int = Field(default=30)

    # Pipeline
    SLOW_REQUEST_THRESHOLD_MS: int = Field(
        default=500, description="Requests slower than this are logged as warnings."
    )

    # Booking rules
    GUEST_BOOKINGS_PER_DAY: int = Field(
        default=3, description="Maximum public booking requests per guest email per day."
    )

    # Data retention
    DATA_RETENTION_DAYS: int = Field(
        default=365, description="Soft-deleted records older than this are purged."
    )

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    # Automatically load from .env at runtime.
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["*"]
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]

    @field_validator("CACHE_BACKEND")
    @classmethod
    def _check_cache_backend(cls, v: str) -> str:
        value = v.strip().lower()
        if value not in ("memory", "redis"):
            raise ValueError("CACHE_BACKEND must be 'memory' or 'redis'")
        return value


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """
    Return a new AppSettings instance populated from environment variables.

    Note:
      For simplicity we construct a new instance each time. If caching is desired,
      we can add a module-level cache or lru_cache.
    """
    return AppSettings()
