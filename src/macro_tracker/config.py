"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_anon_key: str
    remote_timeout_seconds: float = 10.0
    read_retry_attempts: int = 1
    retry_delay_seconds: float = 0.3
    stale_refresh_attempts: int = 3
    preferences_path: str = "~/.macro_tracker/preferences.json"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
