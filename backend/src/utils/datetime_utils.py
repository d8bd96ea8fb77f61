"""
Datetime utilities for consistent timezone handling across the application.

This module provides utilities to ensure all datetime operations use timezone-aware
datetimes consistently. Instants are stored and compared in UTC; everything the
planner shows on the board is organization-local wall-clock time in the single
configured zone (ORG_TIMEZONE, e.g. "Europe/Vilnius").
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from core.config import ORG_TIMEZONE

logger = logging.getLogger(__name__)

# Organization timezone, configured once for the whole system
ORG_TZ = ZoneInfo(ORG_TIMEZONE)

LOCAL_INPUT_FORMAT = "%Y-%m-%dT%H:%M"


def utc_now() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def org_now() -> datetime:
    """
    Get current organization-local datetime.

    Returns:
        Current datetime with the organization timezone
    """
    return datetime.now(ORG_TZ)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is a timezone-aware UTC instant.

    Naive datetimes are treated as UTC. Some databases (SQLite) return naive
    values for TIMESTAMP WITH TIME ZONE columns, and everything is written in UTC.

    Args:
        dt: Datetime to normalize

    Returns:
        Timezone-aware UTC datetime, or None if input is None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_org_local_time(instant: datetime) -> datetime:
    """
    Convert an instant to organization-local wall-clock time.

    Naive input is interpreted as UTC.

    Args:
        instant: UTC (or any timezone-aware) datetime

    Returns:
        Timezone-aware datetime in the organization timezone
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(ORG_TZ)


def to_utc_instant(local_time: datetime) -> datetime:
    """
    Convert organization-local wall-clock time to a UTC instant for persistence.

    Naive input is interpreted as organization-local time.

    Args:
        local_time: Organization-local datetime

    Returns:
        Timezone-aware UTC datetime
    """
    if local_time.tzinfo is None:
        local_time = local_time.replace(tzinfo=ORG_TZ)
    return local_time.astimezone(timezone.utc)


def local_day(day: date | datetime) -> date:
    """Return the organization-local calendar day of a date or instant."""
    if isinstance(day, datetime):
        return to_org_local_time(day).date()
    return day


def local_midnight(day: date | datetime) -> datetime:
    """Organization-local midnight at the start of the given calendar day."""
    return datetime.combine(local_day(day), time(0, 0), tzinfo=ORG_TZ)


def get_org_date_key(day: date | datetime) -> str:
    """
    Format the organization-local calendar day as YYYY-MM-DD.

    Used as the date component of the planner cache key.
    """
    return local_day(day).isoformat()


def get_org_date_range(day: date | datetime) -> Tuple[datetime, datetime]:
    """
    Get the UTC range covering one organization-local calendar day.

    The range is half-open: [start, end). On DST transition days the range is
    23 or 25 hours long.

    Args:
        day: Calendar day (date) or any instant on that day

    Returns:
        Tuple of (start, end) UTC datetimes
    """
    current = local_day(day)
    start = to_utc_instant(datetime.combine(current, time(0, 0)))
    end = to_utc_instant(datetime.combine(current + timedelta(days=1), time(0, 0)))
    return start, end


def format_org_time(instant: datetime) -> str:
    """Format an instant as organization-local HH:MM."""
    return to_org_local_time(instant).strftime("%H:%M")


def to_org_local_input(instant: datetime) -> str:
    """
    Format an instant for a local datetime form field (YYYY-MM-DDTHH:MM).

    Args:
        instant: UTC datetime

    Returns:
        Organization-local value suitable for a datetime-local input
    """
    return to_org_local_time(instant).strftime(LOCAL_INPUT_FORMAT)


def from_org_local_input(value: str) -> datetime:
    """
    Parse a local datetime form value (YYYY-MM-DDTHH:MM) into a UTC instant.

    Args:
        value: Organization-local form value

    Returns:
        Timezone-aware UTC datetime

    Raises:
        ValueError: If the value cannot be parsed
    """
    if not value or not value.strip():
        raise ValueError("Datetime value cannot be empty")
    try:
        parsed = datetime.strptime(value.strip()[:16], LOCAL_INPUT_FORMAT)
    except ValueError as e:
        raise ValueError(f"Invalid local datetime format (expected YYYY-MM-DDTHH:MM): {value}") from e
    return to_utc_instant(parsed)


def parse_datetime_to_utc(v: str | datetime) -> datetime:
    """
    Parse datetime from an ISO string or return a datetime object, ensuring UTC.

    Handles various datetime string formats:
    - ISO format with timezone (e.g., "2024-05-01T11:00:00+03:00")
    - ISO format with Z (UTC) (e.g., "2024-05-01T08:00:00Z")
    - ISO format without timezone (assumes UTC)

    Args:
        v: Either a datetime string or a datetime object

    Returns:
        Datetime object in UTC

    Raises:
        ValueError: If datetime string cannot be parsed
    """
    if isinstance(v, datetime):
        result = ensure_utc(v)
        if result is None:
            raise ValueError("Cannot parse None datetime")
        return result
    try:
        parsed = datetime.fromisoformat(v.strip().replace('Z', '+00:00'))
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid datetime string format: {v}") from e
    result = ensure_utc(parsed)
    assert result is not None
    return result


def parse_date_string(date_str: str) -> date:
    """
    Parse a date string in YYYY-MM-DD or YYYY/MM/DD format.

    Accepts both formats:
    - YYYY-MM-DD (e.g., "2024-05-01", "2024-5-1")
    - YYYY/MM/DD (e.g., "2024/05/01", "2024/5/1")

    Automatically normalizes single-digit months/days.

    Args:
        date_str: Date string in YYYY-MM-DD or YYYY/MM/DD format

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if not date_str or not date_str.strip():
        raise ValueError("Date string cannot be empty")

    date_str = date_str.strip()

    if '/' in date_str:
        parts = date_str.split('/')
    elif '-' in date_str:
        parts = date_str.split('-')
    else:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}")

    if len(parts) != 3:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}")

    year = parts[0].zfill(4)
    month = parts[1].zfill(2)
    day = parts[2].zfill(2)

    normalized = f"{year}-{month}-{day}"

    try:
        return datetime.strptime(normalized, '%Y-%m-%d').date()
    except ValueError as e:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}") from e


def parse_time_string(time_str: str) -> time:
    """
    Parse a wall-clock time in HH:MM or HH:MM:SS format.

    Raises:
        ValueError: If the string is not a valid time
    """
    try:
        return time.fromisoformat(time_str.strip())
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid time format (expected HH:MM): {time_str}") from e


def minutes_between(start: datetime, end: datetime) -> float:
    """Elapsed minutes from start to end (negative when end is earlier)."""
    return (end - start).total_seconds() / 60
