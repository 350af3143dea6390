"""System clock adapter — implements ClockPort with the configured timezone."""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo


class SystemClock:
    """Wall-clock implementation of ClockPort.

    ``now()`` is timezone-aware in the given zone; ``today()`` is the
    calendar date in that zone, which is what task dates refer to.
    """

    def __init__(self, tz_name: str | None = None) -> None:
        if tz_name is None:
            from src.config import settings
            tz_name = settings.TIMEZONE
        self._tz = ZoneInfo(tz_name)

    @property
    def tz(self) -> ZoneInfo:
        return self._tz

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def today(self) -> date:
        return self.now().date()
