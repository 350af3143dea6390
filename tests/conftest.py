"""Shared test fixtures and configuration.

Sets up environment variables before any src import so src.config loads
predictable settings, and provides stores, a fixed clock and a service.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("STORE_BACKEND", "sqlite")
os.environ.setdefault("DATABASE_PATH", "data/test_progress.db")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from datetime import date, datetime

import pytest


class FixedClock:
    """ClockPort double whose time only moves when a test moves it."""

    def __init__(self, now: datetime) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def set(self, now: datetime) -> None:
        self.current = now


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_progress.db")


@pytest.fixture
def progress_db(tmp_db_path):
    """Return a ProgressDB instance backed by a temp file."""
    from src.data.db import ProgressDB
    return ProgressDB(db_path=tmp_db_path)


@pytest.fixture
def memory_store():
    from src.adapters.memory_store import MemoryStore
    return MemoryStore()


@pytest.fixture(params=["sqlite", "memory"])
def store(request, tmp_db_path):
    """Each store implementation in turn."""
    if request.param == "sqlite":
        from src.data.db import ProgressDB
        return ProgressDB(db_path=tmp_db_path)
    from src.adapters.memory_store import MemoryStore
    return MemoryStore()


@pytest.fixture
def clock():
    """A clock frozen at 2026-03-02 09:00 (naive local time)."""
    return FixedClock(datetime(2026, 3, 2, 9, 0))


@pytest.fixture
def service(store, clock):
    from src.core.progress_service import ProgressService
    return ProgressService(store, clock)
