"""Settings for the feed ranking engine."""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_field(default, *env_names: str):
    if env_names:
        alias = AliasChoices(*env_names) if len(env_names) > 1 else env_names[0]
        return Field(default=default, validation_alias=alias)
    return Field(default=default)


class Settings(BaseSettings):
    environment: str = _env_field("production", "ENV", "APP_ENV", "ENVIRONMENT")
    service_name: str = _env_field("feedrank", "SERVICE_NAME")
    git_commit: str = _env_field("unknown", "GIT_COMMIT", "COMMIT_SHA", "SOURCE_VERSION")
    obs_log_level: str = _env_field("INFO", "LOG_LEVEL")
    obs_log_sampling_rate_info: float = _env_field(1.0, "LOG_SAMPLING_RATE_INFO")

    redis_url: str = _env_field("redis://localhost:6379/0", "REDIS_URL")
    feed_cache_enabled: bool = _env_field(False, "FEED_CACHE_ENABLED")
    feed_cache_ttl_seconds: int = _env_field(300, "FEED_CACHE_TTL_SECONDS")

    # Candidate pool size is page_size * factor (limit * factor for suggestions)
    feed_overfetch_factor: int = _env_field(3, "FEED_OVERFETCH_FACTOR")
    suggestions_overfetch_factor: int = _env_field(2, "SUGGESTIONS_OVERFETCH_FACTOR")
    # Upper bound on any single store call; None disables the bound
    retrieval_timeout_seconds: Optional[float] = _env_field(5.0, "RETRIEVAL_TIMEOUT_SECONDS")

    default_page_size: int = _env_field(20, "DEFAULT_PAGE_SIZE")
    default_suggestions_limit: int = _env_field(10, "DEFAULT_SUGGESTIONS_LIMIT")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("feed_overfetch_factor", "suggestions_overfetch_factor", mode="after")
    def _positive_factor(cls, value: int) -> int:  # type: ignore[override]
        return max(1, int(value))

    @field_validator("retrieval_timeout_seconds", mode="before")
    def _parse_timeout(cls, value):  # type: ignore[override]
        """Treat empty strings and non-positive values as "no timeout"."""
        if value in (None, ""):
            return None
        try:
            parsed = float(value)
        except (TypeError, ValueError):
            return None
        return parsed if parsed > 0 else None


def _normalise_level(level: str) -> str:
    return level.upper()


settings = Settings()
settings.obs_log_level = _normalise_level(settings.obs_log_level)
