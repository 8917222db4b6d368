"""Date parsing utilities."""

from datetime import date, timedelta
from typing import Optional
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - Absolute dates: "2024-01-15", "15 January 2024", etc.
    - Relative dates: "today", "yesterday", "tomorrow"

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
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    try:
        # NZ convention: day before month for ambiguous numeric dates
        dt = date_parser.parse(date_str, dayfirst=not _is_iso(date_str))
        return dt.date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def _is_iso(date_str: str) -> bool:
    return len(date_str) >= 8 and date_str[:4].isdigit() and date_str[4] == "-"


def parse_period(period_str: str, today: Optional[date] = None) -> tuple[date, date]:
    """Parse a filing period into a half-open ``[start, end)`` date range.

    Accepts ``YYYY-MM`` for a calendar month, or one of the named periods
    understood by :func:`get_period_range`.

    Raises:
        ValueError: If the period cannot be parsed
    """
    period_str = period_str.strip().lower()
    if len(period_str) == 7 and period_str[4] == "-":
        try:
            year = int(period_str[:4])
            month = int(period_str[5:])
            start = date(year, month, 1)
        except ValueError:
            raise ValueError(f"Could not parse period '{period_str}' (expected YYYY-MM)")
        return start, start + relativedelta(months=1)
    return get_period_range(period_str, today=today)


def get_period_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    """Get a half-open ``[start, end)`` range for a named period.

    Args:
        period: this-month, last-month, this-year, last-year
        today: Reference date (defaults to date.today())

    Returns:
        Tuple of (start_date, end_date), end exclusive

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    if today is None:
        today = date.today()

    month_start = today.replace(day=1)
    year_start = today.replace(month=1, day=1)

    if period == "this-month":
        return month_start, month_start + relativedelta(months=1)
    elif period == "last-month":
        return month_start - relativedelta(months=1), month_start
    elif period == "this-year":
        return year_start, year_start + relativedelta(years=1)
    elif period == "last-year":
        return year_start - relativedelta(years=1), year_start
    else:
        raise ValueError(
            f"Unknown period: '{period}'. Supported periods: YYYY-MM, this-month, last-month, this-year, last-year"
        )
