"""Date parsing utilities for transaction filters."""

from datetime import UTC, date, datetime, time, timedelta
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-01-15", "January 15, 2024") and relative
    ones: "today", "yesterday", "last month", "this week", "last friday",
    "30 days ago".

    Args:
        date_str: Date string in various formats
        today: Reference day for relative dates (defaults to today)

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = today or date.today()

    if date_str == "today":
        return today
    if date_str == "yesterday":
        return today - timedelta(days=1)

    if date_str.endswith(" days ago"):
        count = date_str[: -len(" days ago")].strip()
        if count.isdigit():
            return today - timedelta(days=int(count))

    if date_str.startswith("last "):
        period = date_str[5:]
        if period == "month":
            return (today - relativedelta(months=1)).replace(day=1)
        if period == "year":
            return today.replace(month=1, day=1) - relativedelta(years=1)
        if period == "week":
            # Monday of last week
            return today - timedelta(days=today.weekday() + 7)
        if period in _WEEKDAYS:
            days_ago = (today.weekday() - _WEEKDAYS.index(period)) % 7 or 7
            return today - timedelta(days=days_ago)

    if date_str.startswith("this "):
        period = date_str[5:]
        if period == "month":
            return today.replace(day=1)
        if period == "year":
            return today.replace(month=1, day=1)
        if period == "week":
            return today - timedelta(days=today.weekday())

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def day_bounds(
    start: Optional[date], end: Optional[date]
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Turn an inclusive day range into UTC timestamps.

    The start maps to midnight of the first day; the end maps to the last
    microsecond of the final day.
    """
    start_at = datetime.combine(start, time.min, tzinfo=UTC) if start else None
    end_at = datetime.combine(end, time.max, tzinfo=UTC) if end else None
    return start_at, end_at
