"""Shared fixtures for domain tests."""

from datetime import datetime, timezone

import pytest

from grouptherapy.core.database import init_database
from grouptherapy.domain.radio import ScheduleStore


@pytest.fixture
def anyio_backend():
    """The code under test is asyncio-based; run anyio tests on asyncio only."""
    return "asyncio"


@pytest.fixture
def radio_db(tmp_path, monkeypatch):
    """Point the SQLite database at a fresh temp directory."""
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    init_database()
    return tmp_path


@pytest.fixture
def store(radio_db) -> ScheduleStore:
    return ScheduleStore()


@pytest.fixture
def t0() -> datetime:
    """Fixed reference instant for schedule windows."""
    return datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
