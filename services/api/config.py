"""Configuration using pydantic-settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Catalog service (falls back to config/settings.json when unset)
    catalog_base_url: Optional[str] = None
    catalog_timeout_seconds: Optional[float] = None

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]

    # Selection sessions kept in memory before the oldest is evicted
    max_sessions: int = 1000


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings
    """
    return Settings()
