"""
Tests for configuration module.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from filedb.config import Settings, clear_settings_cache, get_settings
from filedb.types import DuplicatePolicy


class TestSettingsDefaults:
    """Tests for default values."""

    def test_defaults(self, settings: Settings) -> None:
        """Test the values used when nothing is configured."""
        assert settings.DB_PATH == Path("files.db")
        assert settings.COMPRESSION_LEVEL == 6
        assert settings.DUPLICATE_POLICY is DuplicatePolicy.REJECT
        assert settings.SQLITE_TIMEOUT == 30.0
        assert settings.LOG_LEVEL == "INFO"
        assert settings.LOG_FILE is None


class TestSettingsFromEnv:
    """Tests for loading from the environment."""

    def test_settings_loads_from_env(self, mock_env_vars: dict[str, str]) -> None:
        """Test that settings correctly loads FILEDB_ variables."""
        settings = get_settings()

        assert settings.DB_PATH == Path("test_files.db")
        assert settings.COMPRESSION_LEVEL == 9
        assert settings.DUPLICATE_POLICY is DuplicatePolicy.REPLACE
        assert settings.SQLITE_TIMEOUT == 5.0
        assert settings.LOG_LEVEL == "DEBUG"

    def test_settings_are_cached(self, mock_env_vars: dict[str, str]) -> None:
        """Test that get_settings returns the same instance until cleared."""
        first = get_settings()
        assert get_settings() is first

        clear_settings_cache()
        assert get_settings() is not first

    def test_unprefixed_variables_are_ignored(self) -> None:
        """Test that only FILEDB_-prefixed variables are read."""
        with patch.dict(os.environ, {"COMPRESSION_LEVEL": "1"}, clear=False):
            assert Settings(_env_file=None).COMPRESSION_LEVEL == 6


class TestSettingsValidation:
    """Tests for Settings validation."""

    @pytest.mark.parametrize("level", ["-2", "10"])
    def test_compression_level_range(self, level: str) -> None:
        """Test that the compression level must be -1 through 9."""
        with patch.dict(os.environ, {"FILEDB_COMPRESSION_LEVEL": level}, clear=False):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_unknown_duplicate_policy(self) -> None:
        """Test that only reject and replace are accepted."""
        with patch.dict(os.environ, {"FILEDB_DUPLICATE_POLICY": "ignore"}, clear=False):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_timeout_must_be_positive(self) -> None:
        """Test that a zero lock timeout is rejected."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, SQLITE_TIMEOUT=0)

    def test_unknown_log_level(self) -> None:
        """Test that log levels are restricted to the standard names."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, LOG_LEVEL="VERBOSE")


class TestDisplay:
    def test_display(self, temp_dir: Path) -> None:
        """Test the plain-value view of the settings."""
        settings = Settings(_env_file=None, LOG_FILE=temp_dir / "filedb.log")
        shown = settings.display()

        assert shown["DUPLICATE_POLICY"] == "reject"
        assert shown["LOG_FILE"] == str(temp_dir / "filedb.log")
        assert shown["COMPRESSION_LEVEL"] == 6
