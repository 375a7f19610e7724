"""
Configuration management.
All settings can be overridden via environment variables (CINEMATHEQUE_ prefix).
"""
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Page sizes offered by the collection views
PAGE_SIZE_CHOICES: List[int] = [20, 50, 100]


class Settings(BaseSettings):
    """Client settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="CINEMATHEQUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Backend
    api_base_url: str = Field(default="http://localhost:8000/api", description="Collection backend base URL")
    request_timeout: float = Field(default=10.0, description="Timeout (seconds) for every network attempt")

    # TMDB import
    search_debounce: float = Field(default=0.3, description="Debounce window for TMDB searches (seconds)")
    detail_fetch_attempts: int = Field(default=1, ge=1, description="Attempts when fetching TMDB details (1 = no retry)")
    retry_delay: float = Field(default=1.0, description="Backoff between detail fetch attempts (seconds)")
    cast_limit: int = Field(default=10, description="Max cast entries imported from TMDB")

    # Store
    refresh_delay: float = Field(default=0.3, description="Wait after a mutation before refreshing (seconds)")

    # Notifications
    notification_duration: float = Field(default=3.0, description="Seconds before a notification is dismissed")

    # Views
    default_page_size: int = Field(default=20, description="Initial page size (20, 50 or 100)")

    # Paths
    data_dir: Path = Field(default=Path.home() / ".cinematheque", description="Where the remembered session is kept")
    log_dir: Path = Field(default=Path.home() / ".cinematheque" / "logs", description="Log directory")
    log_level: str = Field(default="INFO", description="Root log level")

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Store the base URL without trailing slash."""
        return v.rstrip("/")

    @field_validator("default_page_size")
    @classmethod
    def check_page_size(cls, v: int) -> int:
        """Only the sizes offered by the page-size selector are accepted."""
        if v not in PAGE_SIZE_CHOICES:
            raise ValueError(f"page size must be one of {PAGE_SIZE_CHOICES}")
        return v

    @property
    def token_cache_path(self) -> Path:
        """File holding the remembered token."""
        return self.data_dir / "session.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
