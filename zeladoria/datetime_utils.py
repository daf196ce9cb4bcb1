"""
DateTime utility functions for the application.
"""
from datetime import date, datetime
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "America/Sao_Paulo"


def get_local_timezone(name=None):
    """
    Get the municipality timezone object.

    Returns:
        ZoneInfo: Local timezone (America/Sao_Paulo unless configured otherwise)
    """
    return ZoneInfo(name or DEFAULT_TIMEZONE)


def local_today(tz_name=None):
    """
    Return today's date in the municipality timezone.

    The server may run in UTC; a completion registered at 22:00 local time
    must still count as that local day.
    """
    return datetime.now(get_local_timezone(tz_name)).date()


def parse_iso_date(value):
    """
    Parse a YYYY-MM-DD string (or an ISO datetime string) into a date.

    Args:
        value: str, date, datetime or None

    Returns:
        date: Parsed date, or None for empty input

    Raises:
        ValueError: If the string is not an ISO date
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    value = str(value).strip()
    if len(value) > 10:
        return datetime.fromisoformat(value.replace('Z', '+00:00')).date()
    return date.fromisoformat(value)
