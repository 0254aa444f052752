"""Date helpers shared by the scheduler, resolver and stats.

All timestamps are naive UTC datetimes, which is also what SQLite hands back.
"""

import math
from datetime import datetime, time, timedelta, timezone

DAY = timedelta(days=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize(value: datetime) -> datetime:
    """Convert aware datetimes to naive UTC; leave naive ones alone."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def add_days(base: datetime, days: float) -> datetime:
    return base + timedelta(days=days)


def ceil_days(delta: timedelta) -> int:
    """Whole days covered by a span, rounding any partial day up."""
    return math.ceil(delta / DAY)


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min)


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max)
