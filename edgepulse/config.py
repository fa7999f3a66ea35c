"""Application configuration with environment variable support."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from edgepulse.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Cloudflare
    cloudflare_zone_id: str = Field(default="", description="Zone tag to report on")
    cloudflare_api_token: str = Field(default="", description="API token with Analytics:Read")
    cloudflare_api_base_url: str = Field(default="https://api.cloudflare.com")
    upstream_timeout_ms: int = Field(default=10000, gt=0)

    # Refresh cycle
    refresh_interval: int = Field(default=30, ge=1, description="Seconds between refreshes")
    primary_window_hours: int = Field(default=24, ge=1)
    secondary_window_hours: int = Field(default=72, ge=1)
    secondary_query_limit: int = Field(default=100, ge=1)

    # Estimation
    pageview_estimate_ratio: float = Field(default=0.8, ge=0.0, le=1.0)
    country_rollup_limit: int = Field(default=10, ge=1)

    # Site availability
    site_url: str = Field(default="", description="Empty disables availability checks")
    availability_timeout_ms: int = Field(default=10000, gt=0)

    # Application
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    environment: str = Field(default="development")

    # CORS
    cors_origins: str = Field(default="*")

    @field_validator("site_url", "cloudflare_api_base_url")
    @classmethod
    def strip_url(cls, v: str) -> str:
        """Tolerate whitespace and trailing slashes in URLs."""
        return v.strip().rstrip("/")

    @property
    def cors_origins_list(self) -> list[str]:
        """Return CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def upstream_timeout_seconds(self) -> float:
        return self.upstream_timeout_ms / 1000

    @property
    def availability_timeout_seconds(self) -> float:
        return self.availability_timeout_ms / 1000

    def require_credentials(self) -> None:
        """Fail fast when the upstream zone or credential is missing."""
        missing = [
            name.upper()
            for name in ("cloudflare_zone_id", "cloudflare_api_token")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
