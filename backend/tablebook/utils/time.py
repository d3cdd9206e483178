from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def resolve_zone(name: object) -> Optional[ZoneInfo]:
    """Return the IANA zone for `name`, or None when it is not a known zone."""
    if not isinstance(name, str) or not name.strip():
        return None
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        return None


def parse_local_date(value: object) -> Optional[date]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not _DATE_RE.match(value):
        return None
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        return None


def parse_local_time(value: object) -> Optional[time]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not _TIME_RE.match(value):
        return None
    try:
        return datetime.strptime(value, TIME_FORMAT).time()
    except ValueError:
        return None


def format_time(value: time | datetime) -> str:
    return value.strftime(TIME_FORMAT)


class TimeContext:
    """Tenant-local calendar arithmetic.

    Every comparison happens between absolute instants; wall-clock values are
    only ever interpreted in the tenant's own zone, and offsets come from
    `zoneinfo`.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utc_now

    def now(self, tz_name: str) -> datetime:
        zone = resolve_zone(tz_name)
        if zone is None:
            raise ValueError(f"unknown timezone: {tz_name!r}")
        current = self._clock()
        if current.tzinfo is None:
            raise ValueError("clock must return a timezone-aware datetime")
        return current.astimezone(zone)

    def parse(self, date_value: object, time_value: object, tz_name: object) -> Optional[datetime]:
        """Compose a local date and `HH:mm` time into an aware datetime; None if any part is malformed."""
        zone = resolve_zone(tz_name)
        local_date = parse_local_date(date_value)
        local_time = parse_local_time(time_value)
        if zone is None or local_date is None or local_time is None:
            return None
        return datetime.combine(local_date, local_time, tzinfo=zone)

    def is_past(self, date_value: object, time_value: object, tz_name: str) -> bool:
        instant = self.parse(date_value, time_value, tz_name)
        if instant is None:
            return False
        return self.instant_is_past(instant, tz_name)

    def instant_is_past(self, instant: datetime, tz_name: str) -> bool:
        # Slots have minute granularity; the current minute is still bookable.
        current = self.now(tz_name).replace(second=0, microsecond=0)
        return instant.astimezone(timezone.utc) < current.astimezone(timezone.utc)

    def horizon_end(self, tz_name: str, horizon_days: int) -> datetime:
        today = self.now(tz_name).date()
        last_day = today + timedelta(days=horizon_days)
        return datetime.combine(last_day, time.max, tzinfo=resolve_zone(tz_name))

    def beyond_horizon(self, instant: datetime, tz_name: str, horizon_days: int) -> bool:
        end = self.horizon_end(tz_name, horizon_days)
        return instant.astimezone(timezone.utc) > end.astimezone(timezone.utc)
