"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Remote document store
    api_base_url: str = "http://localhost:3000"
    user_data_path: str = "/api/user-data"
    request_timeout_s: float = 10.0
    document_title: str = "Untitled Work"

    # Save scheduling (milliseconds)
    critical_debounce_ms: int = 250
    routine_debounce_ms: int = 1500
    min_save_interval_ms: int = 1000

    # Retry policy
    save_max_attempts: int = 3
    retry_backoff_ms: int = 1000

    # Save status display windows (milliseconds)
    saved_display_ms: int = 2000
    error_display_ms: int = 5000

    # LLM
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4.1-nano"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
