"""Clock port — the engine's only source of "now".

Core modules take the current instant from this protocol instead of
reading the wall clock, so every computation can be replayed in tests.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol


class ClockPort(Protocol):
    """Abstract clock used by the service layer."""

    def now(self) -> datetime: ...

    def today(self) -> date: ...
