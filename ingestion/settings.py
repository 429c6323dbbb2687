"""Configuration models for the ingestion service."""

from __future__ import annotations

from functools import lru_cache

from pydantic import (
    Field,
    PositiveFloat,
    PositiveInt,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FEED_URL = "https://feeds.bbci.co.uk/news/world/rss.xml"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Environment settings for the feed pipeline."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    feed_url: str = Field(DEFAULT_FEED_URL, alias="FEED_URL", description="RSS feed URL.")
    feed_ttl_seconds: PositiveInt = Field(900, alias="FEED_TTL_SECONDS", description="Feed refresh interval (seconds).")
    fetch_timeout_seconds: PositiveFloat = Field(
        60.0,
        alias="FETCH_TIMEOUT_SECONDS",
        description="Upper bound on a whole HTTP request (seconds).",
    )
    fetch_user_agent: str = Field(DEFAULT_USER_AGENT, alias="FETCH_USER_AGENT", description="User-Agent header.")
    ingestion_max_retries: int = Field(3, ge=0, alias="INGESTION_MAX_RETRIES", description="Retry ceiling per cycle.")
    ingestion_backoff_seconds: PositiveFloat = Field(
        30.0,
        alias="INGESTION_BACKOFF_SECONDS",
        description="Wait between failed polls (seconds).",
    )
    ingestion_abort_on_exhaustion: bool = Field(
        True,
        alias="INGESTION_ABORT_ON_EXHAUSTION",
        description="Stop ingestion entirely once retries are exhausted.",
    )
    postgres_dsn: str = Field(..., alias="POSTGRES_DSN", description="Database connection string.")
    store_timeout_seconds: PositiveFloat = Field(3.0, alias="STORE_TIMEOUT_SECONDS", description="Store call deadline.")
    redis_url: str = Field(..., alias="INGESTION_REDIS_URL", description="Redis DSN backing the news queue.")
    queue_name: str = Field("news", alias="QUEUE_NAME", description="Queue (Redis list) name.")
    queue_poll_seconds: PositiveInt = Field(
        1,
        alias="QUEUE_POLL_SECONDS",
        description="Blocking receive timeout between cancellation checks.",
    )
    structlog_level: str = Field("INFO", alias="STRUCTLOG_LEVEL", description="Log level.")
    log_json: bool = Field(False, alias="LOG_JSON", description="Emit logs as JSON lines.")

    @field_validator("feed_url")
    @classmethod
    def _validate_feed_url(cls, value: str) -> str:
        url = value.strip()
        if not url.startswith(("http://", "https://")):
            raise ValueError("FEED_URL must be an http(s) URL.")
        return url

    @field_validator("postgres_dsn")
    @classmethod
    def _validate_postgres_dsn(cls, value: str) -> str:
        if "://" not in value:
            raise ValueError("POSTGRES_DSN must be a valid DSN string.")
        return value

    @field_validator("queue_name")
    @classmethod
    def _validate_queue_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("QUEUE_NAME must not be blank.")
        return name


@lru_cache()
def get_settings() -> Settings:
    """Return a Settings instance built from the environment."""
    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Environment validation failed: {exc}") from exc


def reset_settings_cache() -> None:
    """Clear the Settings LRU cache (for tests)."""
    get_settings.cache_clear()  # type: ignore[attr-defined]
