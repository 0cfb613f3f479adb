"""Application settings loaded from environment variables (and .env)."""

from datetime import timedelta
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from echostats.domain.value_objects.fetch_policy import FetchPolicy


class SpotifySettings(BaseSettings):
    """Spotify client credentials and upstream call tuning.

    Hey future me - client_id/client_secret are allowed to be EMPTY at startup!
    Missing credentials are reported as ConfigurationError on the first token
    operation, not as a crash during boot. That keeps /health reachable so an
    operator can see what's wrong.
    """

    model_config = SettingsConfigDict(
        env_prefix="SPOTIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    client_id: str = Field(default="", description="Spotify app client ID")
    client_secret: str = Field(default="", description="Spotify app client secret")
    redirect_uri: str = Field(default="", description="OAuth redirect URI")
    request_timeout: float = Field(
        default=10.0, gt=0, description="Per-call timeout for upstream requests (seconds)"
    )

    @property
    def is_configured(self) -> bool:
        """Check whether both client credentials are present."""
        return bool(self.client_id.strip() and self.client_secret.strip())


class StatsSettings(BaseSettings):
    """Aggregation knobs for the listening summary."""

    model_config = SettingsConfigDict(
        env_prefix="STATS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    timezone: str = Field(
        default="UTC", description="IANA zone used for local hour/date bucketing"
    )
    recent_window_hours: float = Field(default=48.0, gt=0)
    session_gap_minutes: float = Field(default=30.0, gt=0)
    fetch_policy: FetchPolicy = FetchPolicy.ALL_OR_NOTHING

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("fetch_policy", mode="before")
    @classmethod
    def _parse_fetch_policy(cls, value: object) -> FetchPolicy:
        if isinstance(value, FetchPolicy):
            return value
        return FetchPolicy.from_string(str(value) if value is not None else None)

    @property
    def zone(self) -> ZoneInfo:
        """Timezone object for bucketing."""
        return ZoneInfo(self.timezone)

    @property
    def session_gap(self) -> timedelta:
        return timedelta(minutes=self.session_gap_minutes)


class ObservabilitySettings(BaseSettings):
    """Logging output settings."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    json_format: bool = Field(default=False, description="Emit JSON log lines")

    @property
    def log_json_format(self) -> bool:
        return self.json_format


class Settings(BaseSettings):
    """Top-level application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "echostats"
    host: str = "0.0.0.0"  # nosec B104 - container deployment binds all interfaces
    port: int = Field(default=3001, description="Listening port")
    log_level: str = "INFO"
    cors_origins: str = Field(
        default="*", description="Comma-separated list of allowed CORS origins"
    )

    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    stats: StatsSettings = Field(default_factory=StatsSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @property
    def cors_origin_list(self) -> list[str]:
        """CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Hey future me - cached so every Depends(get_settings) sees the same object.
# Tests override it via app.dependency_overrides, or call get_settings.cache_clear()
# after changing env vars.
@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
