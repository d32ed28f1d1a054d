"""
School clock — the single source of "now" and "today".

Same-day rules compare ISO dates produced here, so every caller agrees on
where the day boundary falls regardless of the server's local time.
"""

from datetime import date, datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from schooldesk.core.config import settings


class SchoolClock:
    def __init__(self, tz_name: str = "UTC", now_fn: Optional[Callable[[], datetime]] = None):
        self.tz = ZoneInfo(tz_name)
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        current = self._now_fn()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current.astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def today_iso(self) -> str:
        return self.today().isoformat()

    def timestamp(self) -> str:
        """Stored timestamps are UTC so they order the same way as strings across DST changes."""
        return self.now().astimezone(timezone.utc).isoformat()


_clock: SchoolClock | None = None


def get_clock() -> SchoolClock:
    global _clock
    if _clock is None:
        _clock = SchoolClock(settings.SCHOOL_TIMEZONE)
    return _clock
