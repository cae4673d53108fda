"""Date parsing utilities for command-line input."""

from datetime import date, datetime, timedelta, UTC
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - Absolute dates: "2024-01-15", "January 15, 2024", etc.
    - Relative dates: "today", "yesterday", "tomorrow", "next month",
      "next year", "in 10 days"

    Args:
        date_str: Date string in various formats
        today: Reference date for relative dates (defaults to date.today())

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    if today is None:
        today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
        "next week": today + timedelta(weeks=1),
        "next month": today + relativedelta(months=1),
        "next year": today + relativedelta(years=1),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    # "in N days"
    if date_str.startswith("in ") and date_str.endswith(" days"):
        count = date_str[3:-5].strip()
        if count.isdigit():
            return today + timedelta(days=int(count))

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_datetime(value: str) -> datetime:
    """Parse a timestamp into an aware UTC datetime.

    "now" is the current time. A bare date means midnight UTC of that day;
    a timestamp without an offset is taken as UTC.

    Raises:
        ValueError: If the string cannot be parsed
    """
    value = value.strip()
    if value.lower() == "now":
        return datetime.now(UTC)
    try:
        parsed = date_parser.isoparse(value)
    except (ValueError, TypeError, OverflowError):
        try:
            parsed = date_parser.parse(value)
        except (ValueError, TypeError, OverflowError) as e:
            raise ValueError(f"Could not parse timestamp '{value}': {e}")
    return as_utc(parsed)
