"""Injectable time source.

The ledger keys root messages and entries by local calendar day, so every
"today" decision goes through a Clock instead of calling datetime.now().
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple
from zoneinfo import ZoneInfo


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Return a tzinfo for a config value, treating empty or "UTC" as UTC."""

    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


class Clock:
    """Wall clock bound to the timezone that defines a "day"."""

    def __init__(self, tz: tzinfo = timezone.utc) -> None:
        self._tz = tz

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""

        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.day_of(self.now())

    def day_of(self, moment: datetime) -> date:
        """Calendar day of a timestamp in the configured timezone."""

        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(self._tz).date()

    def day_bounds(self, day: date) -> Tuple[datetime, datetime]:
        """Return [start, end) of a local day, both converted to UTC."""

        start = datetime.combine(day, time.min, tzinfo=self._tz)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=self._tz)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
