"""Configuration using pydantic-settings."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with validation and constants."""

    model_config = SettingsConfigDict(env_prefix="VOTE_", env_file=".env", extra="ignore")

    host: str = "0.0.0.0"  # nosec B104 - Required for container deployment
    port: int = 8000
    log_level: str = "INFO"
    log_file: str | None = None

    api_prefix: str = "/api/v1"
    cors_origins: list[str] = ["*"]
    rate_limit: str = "5/second"

    database_url: str = "sqlite+aiosqlite:///./data/votes.db"

    # REST Countries directory
    rest_countries_api: str = "https://restcountries.com/v3.1"
    directory_timeout: float = 10.0
    directory_retry_attempts: int = 3

    # Cache settings
    countries_cache_ttl: int = 3600
    top_countries_cache_ttl: int = 300
    cache_max_size: int = 1000

    # Ranking settings
    default_top_limit: int = 10
    top_fetch_multiplier: int = 2

    # Health check timeouts (seconds)
    health_db_timeout: float = 0.3
    health_api_timeout: float = 3.0

    @field_validator("rest_countries_api")
    @classmethod
    def validate_rest_countries_api(cls, value: str) -> str:
        """The directory base URL is required; trailing slashes are dropped."""
        value = value.strip()
        if not value:
            raise ValueError(
                "REST Countries API URL is required. "
                "Please set the VOTE_REST_COUNTRIES_API environment variable."
            )
        return value.rstrip("/")

    @field_validator("top_fetch_multiplier", "default_top_limit")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value


settings = Settings()


def get_settings() -> Settings:
    """Get settings instance (for dependency injection)."""
    return settings
