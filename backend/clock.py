from __future__ import annotations

import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

from backend.settings import get_settings

logger = logging.getLogger(__name__)


class Clock:
    """Source of "today". Routes depend on it so tests can pin the date."""

    def __init__(self, timezone_name: str | None = None):
        self.timezone_name = timezone_name

    def today(self) -> date:
        tz_name = self.timezone_name or get_settings().calendar_timezone
        try:
            return datetime.now(ZoneInfo(tz_name)).date()
        except Exception:
            logger.warning("Unknown timezone %s, falling back to local date.", tz_name)
            return date.today()


class FixedClock(Clock):
    def __init__(self, fixed: date):
        super().__init__()
        self.fixed = fixed

    def today(self) -> date:
        return self.fixed


_clock: Clock | None = None


def get_clock() -> Clock:
    global _clock
    if _clock is None:
        _clock = Clock()
    return _clock
