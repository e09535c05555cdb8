"""
Configuration management using pydantic-settings.

Loads configuration from FILEDB_-prefixed environment variables and .env files.
Validates the values and provides typed access to settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from filedb.types import DuplicatePolicy


class Settings(BaseSettings):
    """Library settings loaded from environment variables.

    Optional:
        FILEDB_DB_PATH: Database file used when connect() gets no path
        FILEDB_COMPRESSION_LEVEL: zlib level for stored payloads
        FILEDB_DUPLICATE_POLICY: reject or replace an existing (key, time stamp)
        FILEDB_SQLITE_TIMEOUT: Seconds to wait on a locked database
        FILEDB_LOG_LEVEL: Logging level
        FILEDB_LOG_FILE: JSON lines log file
    """

    model_config = SettingsConfigDict(
        env_prefix="FILEDB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DB_PATH: Path = Field(default=Path("files.db"), description="Database file")

    COMPRESSION_LEVEL: int = Field(
        default=6, ge=-1, le=9, description="zlib compression level"
    )
    DUPLICATE_POLICY: DuplicatePolicy = Field(
        default=DuplicatePolicy.REJECT,
        description="Behavior when a (key, time stamp) pair is written twice",
    )
    SQLITE_TIMEOUT: float = Field(
        default=30.0, gt=0.0, description="Seconds to wait on a locked database"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON lines log file")

    @field_validator("DUPLICATE_POLICY", mode="before")
    @classmethod
    def normalize_duplicate_policy(cls, v: object) -> object:
        """Accept the policy name in any case."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        """Accept the level name in any case."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    def display(self) -> dict[str, str | int | float | None]:
        """Return settings as plain values for display."""
        return {
            "DB_PATH": str(self.DB_PATH),
            "COMPRESSION_LEVEL": self.COMPRESSION_LEVEL,
            "DUPLICATE_POLICY": self.DUPLICATE_POLICY.value,
            "SQLITE_TIMEOUT": self.SQLITE_TIMEOUT,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If a setting is invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
