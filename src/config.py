"""
Milestone Quest — Centralized configuration.

Loads all settings from .env and validates them.
Every module that needs a setting imports the singleton from here.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

_STORE_BACKENDS = ("sqlite", "memory")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Storage backend: "sqlite" | "memory"
    STORE_BACKEND: str = "sqlite"

    # SQLite (only used when STORE_BACKEND=sqlite)
    DATABASE_PATH: str = "data/progress.db"

    # Clock
    TIMEZONE: str = "UTC"

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator("STORE_BACKEND", "LOG_LEVEL", mode="before")
    @classmethod
    def normalize(cls, v: str) -> str:
        return v.strip()

    @field_validator("STORE_BACKEND")
    @classmethod
    def lower_backend(cls, v: str) -> str:
        return v.lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper()


def _load_settings() -> Settings:
    """Load settings from environment, validating backend and timezone."""
    backend = os.getenv("STORE_BACKEND", "sqlite").strip().lower()
    timezone = os.getenv("TIMEZONE", "UTC")

    if backend not in _STORE_BACKENDS:
        print(
            f"ERROR: STORE_BACKEND must be one of {', '.join(_STORE_BACKENDS)}, got {backend!r}",
            file=sys.stderr,
        )
        sys.exit(1)

    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        print(f"ERROR: TIMEZONE {timezone!r} is not a known IANA zone", file=sys.stderr)
        sys.exit(1)

    return Settings(
        STORE_BACKEND=backend,
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/progress.db"),
        TIMEZONE=timezone,
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton — imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
