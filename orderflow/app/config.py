"""Typed settings configuration - single source of truth."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # ProPresenter connection
    propresenter_host: str = "localhost"
    propresenter_port: int = 1025

    # Content libraries (UUIDs)
    worship_library_ids: list[str] = []
    kids_library_id: str | None = None
    service_content_library_id: str | None = None

    # Playlists
    template_playlist_id: str | None = None

    # Matching thresholds (0-1)
    auto_accept_threshold: float = 0.85
    recall_threshold: float = 0.70
    kids_fallback_threshold: float = 0.70
    prefix_match_floor: float = 0.92
    max_candidates: int = 5

    # Segmenter
    kids_lookahead_lines: int = 2

    # Timeouts (milliseconds)
    request_timeout_ms: int = 10000

    # Retry jitter (milliseconds); writes are never retried
    read_retry_count: int = 1
    retry_jitter_min_ms: int = 200
    retry_jitter_max_ms: int = 500

    # Staleness windows (seconds): pre-write playlist read, libraries behind the selections
    stale_read_seconds: int = 30
    stale_pools_seconds: int = 600

    # User-trained song aliases
    alias_store_path: Path = Path.home() / ".propresenter-words" / "aliases.json"

    # Manual fallback lookups
    bible_version: str = "NIV"

    @property
    def base_url(self) -> str:
        """Base URL of the ProPresenter network API."""
        return f"http://{self.propresenter_host}:{self.propresenter_port}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
