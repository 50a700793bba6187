# File: src/peachrecon/utils/datetime.py
"""Timezone-aware date helpers for month-based billing."""

import calendar
import os
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

# Properties are managed out of Atlanta; month boundaries follow local time
APP_TIMEZONE = ZoneInfo(os.getenv("APP_TIMEZONE", "America/New_York"))


def now_local() -> datetime:
    """Get current datetime in the application timezone."""
    return datetime.now(APP_TIMEZONE)


def today_local() -> date:
    """Get today's date in the application timezone."""
    return now_local().date()


def now_utc() -> datetime:
    """Get current UTC datetime as NAIVE for database storage."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def first_of_month(value: date) -> date:
    """Normalize any date to the first day of its month."""
    return value.replace(day=1)


def days_in_month(value: date) -> int:
    """Number of days in the month containing value."""
    return calendar.monthrange(value.year, value.month)[1]


def month_bounds(value: date) -> tuple[date, date]:
    """Return (first_day, last_day) of the month containing value, both inclusive."""
    start = first_of_month(value)
    return start, start.replace(day=days_in_month(start))


def month_has_ended(month: date, today: date | None = None) -> bool:
    """True once the whole month containing `month` lies in the past."""
    _, last_day = month_bounds(month)
    return (today or today_local()) > last_day
