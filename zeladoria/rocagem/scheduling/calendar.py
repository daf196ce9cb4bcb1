"""
Business-day calendar used by the mowing schedule.

Weekends never count toward schedule progress. Public holidays are not
excluded by default; callers that want them pass a collection of dates.
"""

from datetime import date, datetime, timedelta
from typing import Collection, Optional


def _as_date(day) -> date:
    # Time of day is never meaningful to the schedule
    if isinstance(day, datetime):
        return day.date()
    return day


def is_business_day(day, holidays: Optional[Collection[date]] = None) -> bool:
    """
    Check whether a date counts as a working day.

    Args:
        day: date or datetime
        holidays: Optional collection of dates that are also non-working

    Returns:
        bool: False on Saturday, Sunday and any listed holiday
    """
    day = _as_date(day)
    if day.weekday() >= 5:  # Saturday=5, Sunday=6
        return False
    if holidays and day in holidays:
        return False
    return True


def next_business_day(day, holidays: Optional[Collection[date]] = None) -> date:
    """Return the first business day at or after the given date."""
    current = _as_date(day)
    while not is_business_day(current, holidays):
        current += timedelta(days=1)
    return current


def add_business_days(day, business_days: int, holidays: Optional[Collection[date]] = None) -> date:
    """
    Step forward a number of business days.

    The start date (rolled forward to a business day if needed) is day 0, so
    add_business_days(d, 0) is the first business day at or after d.

    Args:
        day: Start date (date or datetime)
        business_days: Number of business days to add (>= 0)
        holidays: Optional collection of non-working dates

    Returns:
        date: The resulting business day
    """
    if business_days < 0:
        raise ValueError(f"business_days must be >= 0, got {business_days}")

    current = next_business_day(day, holidays)
    counted = 0
    while counted < business_days:
        current += timedelta(days=1)
        if is_business_day(current, holidays):
            counted += 1

    return current
