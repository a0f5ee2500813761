from datetime import date

from .core.models import RepeatRule
from .core.types import RepeatType
from .lib.dates import day_of_week, iter_days

__all__ = ["is_trackable", "trackable_days"]


def is_trackable(day: date, rule: RepeatRule) -> bool:
    """Whether a habit expects an entry on this date.

    Habits only repeat daily/weekly/monthly; every other rule type is never
    trackable. Monthly days are matched literally: a habit on the 31st is not
    due in 30-day months (the task generator clamps, this does not).
    """
    match rule.type:
        case RepeatType.DAILY:
            return True
        case RepeatType.WEEKLY:
            return day_of_week(day) in rule.days_of_week
        case RepeatType.MONTHLY:
            return day.day in rule.days_of_month
        case _:
            return False


def trackable_days(rule: RepeatRule, start: date, end: date) -> list[date]:
    return [d for d in iter_days(start, end) if is_trackable(d, rule)]
