"""Configuration management using pydantic-settings."""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Backend API configuration
    api_base_url: str = "http://localhost:5000/api/v1"
    api_key: Optional[str] = None
    request_timeout_seconds: float = 30.0

    # Cache settings
    cache_ttl_seconds: int = 300  # 5 minutes

    # Background preload
    preload_enabled: bool = True
    preload_delay_seconds: float = 1.0
    preload_default_popularity_type: int = 2  # IGDB visits
    preload_extra_types: int = 3

    # Discover listings
    popular_games_limit: int = 50
    top_torrents_query: str = "game"
    top_torrents_limit: int = 50
    top_torrents_max_age_days: int = 30

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
