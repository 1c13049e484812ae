"""
Timezone helpers shared by models, services and schemas.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from ..config import get_settings


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a datetime to aware UTC.

    Naive values are treated as UTC, which is how they come back from
    databases without timezone support.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def facility_zone() -> ZoneInfo:
    """Timezone the facility opening hours are expressed in."""
    return ZoneInfo(get_settings().facility_timezone)


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """UTC start and end of a calendar day in the facility timezone."""
    zone = facility_zone()
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def month_bounds(moment: datetime) -> Tuple[datetime, datetime]:
    """UTC start and end of the facility-time month containing ``moment``."""
    local = to_facility_time(moment)
    first = local.date().replace(day=1)
    if first.month == 12:
        following = first.replace(year=first.year + 1, month=1)
    else:
        following = first.replace(month=first.month + 1)
    zone = facility_zone()
    start = datetime.combine(first, time.min, tzinfo=zone)
    end = datetime.combine(following, time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def to_facility_time(value: datetime) -> datetime:
    """Convert a UTC datetime to the facility timezone."""
    return as_utc(value).astimezone(facility_zone())
