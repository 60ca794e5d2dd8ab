"""
Configuration management for the playlist catalog backend.
Uses pydantic-settings for environment variable loading.
"""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    app_name: str = "M3U Catalog"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS Configuration
    # Default allows all origins for development; set CATALOG_CORS_ORIGINS for production
    cors_origins: list[str] = ["*"]

    # Rate Limiting
    rate_limit_per_minute: int = 100

    # Feed sources, tried in order: local paths first, then the remote URL
    feed_paths: list[str] = [
        "data/playlist.m3u",
        "data/playlist.M3U",
    ]
    feed_url: str = ""  # empty disables the remote fallback
    feed_user_agent: str = "Mozilla/5.0"
    feed_referer: str = "http://localhost"
    feed_timeout_seconds: float = 60.0

    # Cache Configuration
    cache_dir: str = "data/cache"
    database_path: str = "data/catalog_cache.db"
    cache_ttl_seconds: int = 24 * 3600  # 24 hours
    cache_max_bytes: int = 50 * 1024 * 1024  # 50 MB, larger envelopes go to SQLite

    # Query Configuration
    page_size: int = 20
    navigation_debounce_ms: int = 1000
    navigation_max_clients: int = 1024

    # Background parsing ("process" isolates the parse from the event loop)
    parse_executor: Literal["process", "thread"] = "process"
    load_on_startup: bool = True

    # Pydantic V2 configuration
    model_config = SettingsConfigDict(env_prefix="CATALOG_", env_file=".env")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
