"""Local-calendar date arithmetic.

Every function here is pure and works on ``datetime.date`` values (no time of
day). Storage and the CLI use ``YYYY-MM-DD`` strings; weekday numbering is
Sunday = 0 .. Saturday = 6.
"""

import calendar
import re
from collections.abc import Iterator
from datetime import date, datetime, timedelta

from dateutil import parser as dateutil_parser
from dateutil.parser import ParserError
from dateutil.relativedelta import relativedelta

from . import clock

__all__ = [
    "add_days",
    "day_of_week",
    "days_between",
    "days_in_month",
    "end_of_month",
    "end_of_year",
    "iter_days",
    "iter_months",
    "month_days",
    "parse_date",
    "parse_due_date",
    "start_of_month",
    "start_of_week",
    "to_str",
    "week_days",
]


def parse_date(value: str | date | datetime) -> date:
    """Parse ``YYYY-MM-DD`` (or an ISO datetime, truncated to its date)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip().split("T")[0])


def to_str(day: date) -> str:
    return day.isoformat()


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def day_of_week(day: date) -> int:
    return day.isoweekday() % 7


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def end_of_month(day: date) -> date:
    return day.replace(day=days_in_month(day.year, day.month))


def end_of_year(day: date) -> date:
    return date(day.year, 12, 31)


def start_of_week(day: date) -> date:
    return day - timedelta(days=day_of_week(day))


def week_days(day: date) -> list[date]:
    start = start_of_week(day)
    return [start + timedelta(days=i) for i in range(7)]


def month_days(day: date) -> list[date]:
    start = start_of_month(day)
    return [start + timedelta(days=i) for i in range(days_in_month(day.year, day.month))]


def days_between(start: date, end: date) -> int:
    """Signed whole-day difference ``end - start``."""
    return (end - start).days


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every date from start to end inclusive; nothing when start > end."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def iter_months(start: date, end: date) -> Iterator[date]:
    """First-of-month dates from start's month through end's month."""
    current = start_of_month(start)
    while current <= end:
        yield current
        current += relativedelta(months=1)


_DAY_MAP = {"sun": 0, "mon": 1, "tue": 2, "wed": 3, "thu": 4, "fri": 5, "sat": 6}
_DAY_ALIASES = {
    "sunday": "sun",
    "monday": "mon",
    "tuesday": "tue",
    "wednesday": "wed",
    "thursday": "thu",
    "friday": "fri",
    "saturday": "sat",
}


def parse_due_date(due_str: str) -> str | None:
    """Parses a due date string (e.g., 'today', 'tomorrow', 'mon', 'YYYY-MM-DD')."""
    due_str_lower = due_str.strip().lower()
    today = clock.today()

    if due_str_lower == "today":
        return today.isoformat()
    if due_str_lower == "yesterday":
        return (today - timedelta(days=1)).isoformat()
    if due_str_lower == "tomorrow":
        return (today + timedelta(days=1)).isoformat()
    due_str_lower = _DAY_ALIASES.get(due_str_lower, due_str_lower)
    if due_str_lower in _DAY_MAP:
        days_ahead = (_DAY_MAP[due_str_lower] - day_of_week(today) + 7) % 7
        return (today + timedelta(days=days_ahead)).isoformat()
    if re.match(r"^\d{1,2}:\d{2}$", due_str.strip()):
        return None
    try:
        return (
            dateutil_parser.parse(due_str, default=datetime(today.year, today.month, today.day))
            .date()
            .isoformat()
        )
    except (ParserError, ValueError, OverflowError):
        return None
