"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB.
- Calendar questions ("what is today", "when does the shift start") are answered
  in the company's IANA time zone through ZonedClock.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings

logger = logging.getLogger(__name__)

UTC = timezone.utc


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for check_in_time, check_out_time, created_at, etc."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def iso_8601_utc(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with Z for UTC."""
    if dt is None:
        return None
    s = ensure_utc(dt).isoformat()
    if s.endswith("+00:00"):
        s = s[:-6] + "Z"
    return s


def whole_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes elapsed from start to end, rounded down. Negative spans give 0."""
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // 60)


def parse_hhmm(value: str) -> time:
    """Parse a "HH:mm" wall-clock string."""
    hours, minutes = value.strip().split(":")[:2]
    return time(int(hours), int(minutes))


def resolve_zone(timezone_name: Optional[str]) -> ZoneInfo:
    """
    Resolve an IANA time zone name, falling back to settings.DEFAULT_TIMEZONE
    when the name is missing or unknown.
    """
    if timezone_name:
        try:
            return ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown time zone %r, using %s", timezone_name, settings.DEFAULT_TIMEZONE)
    return ZoneInfo(settings.DEFAULT_TIMEZONE)


class ZonedClock:
    """
    A clock pinned to one instant and one time zone.

    Every calendar computation made during a single operation goes through the
    same clock so "today" cannot change halfway through a request.

    Usage:
        clock = ZonedClock(company.timezone)
        clock.today()                    # local calendar date
        clock.day_start_utc()            # UTC instant of local midnight
        clock.at("09:00")                # UTC instant of 09:00 local today
    """

    def __init__(self, timezone_name: Optional[str], now: Optional[datetime] = None):
        self.tz = resolve_zone(timezone_name)
        self._now = ensure_utc(now) if now is not None else now_utc()

    @property
    def now_utc(self) -> datetime:
        return self._now

    def local_now(self) -> datetime:
        return self._now.astimezone(self.tz)

    def today(self) -> date:
        return self.local_now().date()

    def weekday(self, day: Optional[date] = None) -> int:
        """ISO weekday (Monday=1 ... Sunday=7) of a local date, today by default."""
        return (day or self.today()).isoweekday()

    def local_date_of(self, instant: datetime) -> date:
        """Local calendar date of a stored UTC instant."""
        return ensure_utc(instant).astimezone(self.tz).date()

    def day_start_utc(self, day: Optional[date] = None) -> datetime:
        """UTC instant of local midnight for the given local date."""
        day = day or self.today()
        return datetime.combine(day, time.min, tzinfo=self.tz).astimezone(UTC)

    def day_end_utc(self, day: Optional[date] = None) -> datetime:
        """UTC instant of the following local midnight (exclusive end of the day)."""
        day = day or self.today()
        return self.day_start_utc(day + timedelta(days=1))

    def at(self, hhmm: str, day: Optional[date] = None) -> datetime:
        """UTC instant of a "HH:mm" wall-clock time on a local date."""
        day = day or self.today()
        return datetime.combine(day, parse_hhmm(hhmm), tzinfo=self.tz).astimezone(UTC)
