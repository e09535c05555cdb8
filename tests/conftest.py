"""
Pytest configuration and fixtures for file database tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

from filedb.config import Settings, clear_settings_cache
from filedb.logging import reset_logging
from filedb.store import FileDB


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "FILEDB_DB_PATH": "test_files.db",
        "FILEDB_COMPRESSION_LEVEL": "9",
        "FILEDB_DUPLICATE_POLICY": "Replace",
        "FILEDB_SQLITE_TIMEOUT": "5",
        "FILEDB_LOG_LEVEL": "debug",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def settings() -> Settings:
    """Provide default settings that ignore the environment and .env files."""
    return Settings(_env_file=None)


@pytest.fixture
def db_path(temp_dir: Path) -> Path:
    """Path for a fresh database file."""
    return temp_dir / "files.db"


@pytest.fixture
def file_db(db_path: Path, settings: Settings) -> Generator[FileDB, None, None]:
    """Provide an open FileDB that is closed after the test."""
    db = FileDB.connect(db_path, settings=settings)
    yield db
    db.close()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_logging_config() -> Generator[None, None, None]:
    """Return filedb logging to its defaults around each test."""
    reset_logging()
    yield
    reset_logging()
