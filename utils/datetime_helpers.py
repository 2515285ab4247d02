"""Timezone-aware date/time helpers for the rental system."""

from datetime import date, datetime
from zoneinfo import ZoneInfo

from flask import current_app

from exceptions import InvalidRangeError


def get_timezone() -> ZoneInfo:
    """Get the configured timezone."""
    tz_name = current_app.config.get('TIMEZONE', 'America/Bogota')
    return ZoneInfo(tz_name)


def get_today() -> date:
    """Get today's date in the configured timezone."""
    return datetime.now(get_timezone()).date()


def get_now() -> datetime:
    """Get current datetime in the configured timezone."""
    return datetime.now(get_timezone())


def rental_days(start_date: date, end_date: date) -> int:
    """Number of days a booking covers; both ends are inclusive."""
    return (end_date - start_date).days + 1


def parse_date(value) -> date:
    """
    Accept a date, a datetime (its date is used) or a YYYY-MM-DD string.

    Raises:
        InvalidRangeError: If the value is not a real calendar date
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), '%Y-%m-%d').date()
    except ValueError as e:
        raise InvalidRangeError(value, None, f"Invalid date '{value}'; expected YYYY-MM-DD") from e
