"""
Schedule date resolution

Works out which calendar day counts as "today" for a configured timezone.
Late games run past midnight, so before 09:30 local time the previous
day's schedule is still the one being watched.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

ROLLBACK_CUTOFF = time(9, 30)
DEFAULT_TIMEZONE = "America/Chicago"


@dataclass(frozen=True)
class TargetDate:
    """Effective schedule date in ISO and compact (YYYYMMDD) forms"""
    date_iso: str
    date_compact: str

    @classmethod
    def from_date(cls, value: date) -> 'TargetDate':
        iso = value.isoformat()
        return cls(date_iso=iso, date_compact=iso.replace("-", ""))


@dataclass(frozen=True)
class LocalDateParts:
    """Current instant broken down in a local timezone"""
    now: datetime
    local_date: date
    day_of_week: int  # 0 = Sunday ... 6 = Saturday
    minutes: int  # minutes since local midnight

    @property
    def date_iso(self) -> str:
        return self.local_date.isoformat()


def get_zone(name: Optional[str]) -> ZoneInfo:
    """Look up an IANA zone; raises ZoneInfoNotFoundError for unknown names"""
    return ZoneInfo(name or DEFAULT_TIMEZONE)


def is_valid_timezone(name: str) -> bool:
    try:
        get_zone(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_date_parts(tz_name: Optional[str], now: Optional[datetime] = None) -> LocalDateParts:
    """Local calendar date, weekday and minute-of-day for ``now`` in tz_name"""
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    local = now.astimezone(get_zone(tz_name))
    return LocalDateParts(
        now=now,
        local_date=local.date(),
        day_of_week=(local.weekday() + 1) % 7,
        minutes=local.hour * 60 + local.minute,
    )


def resolve_target_date(tz_name: Optional[str], now: Optional[datetime] = None,
                        use_previous_day_early: bool = True) -> TargetDate:
    """Return today's schedule date in tz_name, rolled back before 09:30"""
    parts = local_date_parts(tz_name, now)
    target = parts.local_date

    cutoff = ROLLBACK_CUTOFF.hour * 60 + ROLLBACK_CUTOFF.minute
    if use_previous_day_early and parts.minutes < cutoff:
        target = target - timedelta(days=1)

    return TargetDate.from_date(target)
