"""Client settings parsed from environment variables and defaults."""

import json
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RETRY_STATUSES = [429, 502, 503]


class Settings(BaseSettings):
    """Engine configuration loaded from ``ANIMESCOPE_*`` environment variables."""

    app_name: str = "animescope"
    environment: str = "development"

    jikan_base_url: str = "https://api.jikan.moe/v4"
    request_timeout_seconds: float = 15.0
    safe_content: bool = True

    log_level: str = "INFO"

    search_page_size: int = Field(default=12, ge=1)
    suggestion_limit: int = Field(default=6, ge=1)
    suggestion_threshold: int = Field(default=2, ge=1)
    search_debounce_seconds: float = Field(default=0.25, ge=0)
    suggestion_debounce_seconds: float = Field(default=0.25, ge=0)

    search_max_retries: int = Field(default=2, ge=0)
    suggestion_max_retries: int = Field(default=1, ge=0)
    collection_max_retries: int = Field(default=2, ge=0)
    retry_delay_seconds: float = Field(default=1.4, gt=0)
    retry_statuses: list[int] | str = Field(default_factory=lambda: DEFAULT_RETRY_STATUSES.copy())

    collection_stagger_seconds: float = Field(default=0.35, ge=0)
    collection_rate_limit_retry_seconds: float = Field(default=2.0, ge=0)

    @field_validator("retry_statuses", mode="before")
    @classmethod
    def _split_retry_statuses(cls, value: str | list[int] | None) -> list[int]:
        """Normalize retryable HTTP statuses from JSON, CSV, or list inputs."""
        if isinstance(value, list):
            cleaned = [int(item) for item in value if str(item).strip()]
            return cleaned or DEFAULT_RETRY_STATUSES.copy()
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return DEFAULT_RETRY_STATUSES.copy()
            try:
                parsed = json.loads(stripped)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, list):
                return [int(item) for item in parsed]
            if isinstance(parsed, int):
                return [parsed]
            return [int(item.strip()) for item in stripped.split(",") if item.strip()]
        return DEFAULT_RETRY_STATUSES.copy()

    model_config = SettingsConfigDict(
        env_prefix="ANIMESCOPE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings to avoid re-parsing environment variables."""
    return Settings()


settings = get_settings()
