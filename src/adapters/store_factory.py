"""Store adapter factory — creates the right store based on config."""

from __future__ import annotations

from src.config import settings
from src.ports.store_port import StorePort


def create_store(db_path: str | None = None) -> StorePort:
    """Return the store matching the STORE_BACKEND setting.

    Args:
        db_path: SQLite file, overriding DATABASE_PATH. Ignored by the
            memory backend.
    """
    backend = settings.STORE_BACKEND.lower()

    if backend == "sqlite":
        from src.data.db import ProgressDB

        return ProgressDB(db_path=db_path)

    if backend == "memory":
        from src.adapters.memory_store import MemoryStore

        return MemoryStore()

    raise ValueError(f"Unknown STORE_BACKEND: {backend!r}")
