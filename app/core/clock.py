"""Time helpers.

Instants are kept as naive UTC datetimes end to end. Anything that depends
on wall-clock time at the venue (slot grid, price windows) converts through
the configured service time zone.
"""
from datetime import date, datetime, time, timedelta, timezone

import pytz

from app.core.config import settings


def utcnow() -> datetime:
    """Current instant as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def service_timezone():
    return pytz.timezone(settings.TIMEZONE)


def to_utc_naive(value: datetime) -> datetime:
    """Normalise an incoming datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(pytz.UTC).replace(tzinfo=None)


def to_local(value: datetime) -> datetime:
    """Convert a naive UTC instant to the service's local time."""
    return pytz.UTC.localize(value).astimezone(service_timezone())


def local_to_utc(day: date, at: time) -> datetime:
    """Naive UTC instant for a local wall-clock time on ``day``."""
    local = service_timezone().localize(datetime.combine(day, at))
    return local.astimezone(pytz.UTC).replace(tzinfo=None)


def local_day_bounds(day: date):
    """UTC start and end of a local calendar day."""
    start = local_to_utc(day, time(0, 0))
    end = local_to_utc(day + timedelta(days=1), time(0, 0))
    return start, end


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600
