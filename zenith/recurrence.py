"""Expansion of a repeat rule into concrete calendar dates.

``generate`` is what materializes a recurring task into one stored row per
date. It is a total function: empty or out-of-range day sets yield nothing.
"""

from datetime import date

from .core.models import RepeatRule
from .core.types import RepeatType
from .lib.dates import day_of_week, days_in_month, end_of_year, iter_days, iter_months

__all__ = ["generate"]


def generate(anchor: date, rule: RepeatRule, horizon: date | None = None) -> list[date]:
    """Dates from anchor through horizon (inclusive) that the rule selects, ascending.

    horizon defaults to the last day of the anchor's year.
    """
    if horizon is None:
        horizon = end_of_year(anchor)
    if horizon < anchor:
        return []

    match rule.type:
        case RepeatType.DAILY:
            return list(iter_days(anchor, horizon))
        case RepeatType.EVERY_WEEK:
            weekday = day_of_week(anchor)
            return [d for d in iter_days(anchor, horizon) if day_of_week(d) == weekday]
        case RepeatType.WEEKLY:
            return [d for d in iter_days(anchor, horizon) if day_of_week(d) in rule.days_of_week]
        case RepeatType.EVERY_MONTH:
            return _every_month(anchor, horizon)
        case RepeatType.MONTHLY:
            return _monthly(anchor, horizon, rule.days_of_month)
        case _:
            return []


def _every_month(anchor: date, horizon: date) -> list[date]:
    # Clamp is per month: day 31 lands on Feb 29, Apr 30, May 31, ...
    out = []
    for month in iter_months(anchor, horizon):
        day = min(anchor.day, days_in_month(month.year, month.month))
        occurrence = month.replace(day=day)
        if anchor <= occurrence <= horizon:
            out.append(occurrence)
    return out


def _monthly(anchor: date, horizon: date, days_of_month: frozenset[int]) -> list[date]:
    """Explicit days of month, shifted down in short months.

    The shift is ``max(days) - days_in_month`` and applies to every configured
    day, so {1, 31} in a 30-day month yields only the 30th: day 1 shifts to 0
    and is dropped for that month.
    """
    days = sorted(days_of_month)
    if not days:
        return []
    max_day = days[-1]

    out = []
    for month in iter_months(anchor, horizon):
        month_len = days_in_month(month.year, month.month)
        adjustment = max(0, max_day - month_len)
        for configured in days:
            adjusted = configured - adjustment
            if adjusted <= 0 or adjusted > month_len:
                continue
            occurrence = month.replace(day=adjusted)
            if anchor <= occurrence <= horizon:
                out.append(occurrence)
    return out
