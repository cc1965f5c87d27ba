"""
Application Configuration

Uses Pydantic Settings for type-safe configuration. Values come from
the environment or a .env file; names are case-insensitive
(STRAVA_CLIENT_ID, SYNC_INTERVAL_MINUTES, ADMIN_API_KEY, ...).
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field, field_validator, ConfigDict


class Settings(BaseSettings):
    """Application settings with validation."""

    # === Core ===
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # === Database ===
    database_url: str = Field(
        default="sqlite:///./clubsync.db",
        description="Database connection URL"
    )

    # === CORS ===
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # === Strava ===
    strava_client_id: Optional[str] = Field(default=None)
    strava_client_secret: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("strava_client_secret", "strava_secret"),
    )
    strava_refresh_token: Optional[str] = Field(
        default=None,
        description="Shared refresh token used for clubs without their own credentials"
    )
    strava_api_url: str = Field(default="https://www.strava.com/api/v3")
    strava_oauth_url: str = Field(default="https://www.strava.com/oauth")

    # === Events ===
    club_timezone: str = Field(
        default="Europe/Oslo",
        description="Timezone used for local event times and free-text dates"
    )

    # === Sync schedule ===
    sync_enabled: bool = Field(default=True)
    sync_interval_minutes: int = Field(default=60)

    # === Rate-limited Strava client ===
    api_concurrency: int = Field(default=2)
    api_max_retries: int = Field(default=5)
    api_base_delay_seconds: float = Field(default=2.0)
    api_max_delay_seconds: float = Field(default=30.0)
    api_min_interval_seconds: float = Field(default=0.5)
    api_low_water_mark: int = Field(default=5)
    api_reset_buffer_seconds: float = Field(default=1.0)
    api_timeout_seconds: float = Field(default=30.0)

    # === Cache ===
    cache_event_ttl_seconds: int = Field(default=300)
    cache_club_ttl_seconds: int = Field(default=600)
    cache_max_entries: int = Field(default=1024, description="Entries per cache namespace before LRU eviction")

    # === Admin ===
    admin_api_key: Optional[str] = Field(
        default=None,
        description="Shared secret required for destructive sync operations"
    )

    @field_validator('database_url')
    @classmethod
    def fix_postgres_url(cls, v: str) -> str:
        """Fix Render/Railway postgres:// URL to postgresql://"""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',')]
        return v

    @property
    def strava_configured(self) -> bool:
        return bool(self.strava_client_id and self.strava_client_secret)

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
