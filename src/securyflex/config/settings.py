"""
SecuryFlex Application Settings

Configuration management using Pydantic Settings.
All values are loaded from environment variables with the
SECURYFLEX_ prefix.

PRIVACY: The tracking thresholds below are privacy controls
(rounding granularity, retention window, movement filter),
not display preferences. Changes require privacy review.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL database configuration."""

    model_config = SettingsConfigDict(env_prefix="SECURYFLEX_DB_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    name: str = Field(default="securyflex", description="Database name")
    user: str = Field(default="securyflex", description="Database user")
    password: SecretStr = Field(default=SecretStr("dev_password"), description="Database password")
    pool_size: int = Field(default=10, ge=1, le=100, description="Connection pool size")
    max_overflow: int = Field(default=20, ge=0, le=100, description="Max overflow connections")
    url_override: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL; replaces the PostgreSQL URL when set (e.g. sqlite+aiosqlite)",
    )

    @property
    def async_url(self) -> str:
        """Generate async database URL for SQLAlchemy."""
        if self.url_override:
            return self.url_override
        password = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{password}@{self.host}:{self.port}/{self.name}"

    @property
    def sync_url(self) -> str:
        """Generate sync database URL for Alembic migrations."""
        password = self.password.get_secret_value()
        return f"postgresql://{self.user}:{password}@{self.host}:{self.port}/{self.name}"


class TrackingSettings(BaseSettings):
    """
    Guard location tracking configuration.

    Thresholds for proximity classification, retention and
    the tracking session loop.
    """

    model_config = SettingsConfigDict(env_prefix="SECURYFLEX_TRACKING_")

    near_radius_multiplier: float = Field(
        default=2.0,
        gt=1.0,
        description="Distances up to multiplier x geofence radius count as near",
    )
    distance_rounding_m: int = Field(default=100, ge=1, description="Reported distance granularity (meters)")
    record_ttl_hours: int = Field(default=24, ge=1, le=168, description="Sliding auto-delete window")
    poll_interval_seconds: float = Field(default=300.0, gt=0, description="Fallback polling interval")
    distance_filter_m: int = Field(default=100, ge=0, description="Minimum movement before a stream update")
    accuracy: Literal["lowest", "low", "medium", "high", "best", "best_for_navigation"] = Field(
        default="medium",
        description="Requested device accuracy (reduced for privacy)",
    )
    position_timeout_seconds: float = Field(default=30.0, gt=0, description="One-shot position fetch timeout")
    max_consecutive_failures: int = Field(
        default=5,
        ge=1,
        description="Consecutive transient failures before a session is stopped",
    )
    default_geofence_radius_m: float = Field(default=100.0, gt=0, description="Radius for work locations without one")
    export_default_days: int = Field(default=30, ge=1, description="Default data export window")
    stats_window_days: int = Field(default=30, ge=1, description="Audit window for privacy statistics")
    store_retry_attempts: int = Field(default=3, ge=1, le=10, description="Retries for consent store reads")
    purge_interval_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Interval of the expired-record purge task in the API process",
    )


class Settings(BaseSettings):
    """
    Main application settings.

    All configuration is loaded from environment variables with SECURYFLEX_ prefix.
    Sensitive values use SecretStr to prevent accidental logging.

    Usage:
        settings = get_settings()
        ttl = settings.tracking.record_ttl_hours
    """

    model_config = SettingsConfigDict(
        env_prefix="SECURYFLEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode - NEVER enable in production")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    api_version: str = Field(default="v1", description="API version prefix")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    storage_backend: Literal["memory", "database"] = Field(
        default="memory",
        description="Storage backend for consent, work location, guard location and audit data",
    )
    metrics_enabled: bool = Field(default=True, description="Expose Prometheus /metrics")

    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    tracking: TrackingSettings = Field(default_factory=TrackingSettings)

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.
    For testing, construct Settings / TrackingSettings directly
    and inject them.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
