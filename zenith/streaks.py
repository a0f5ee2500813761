from collections.abc import Iterable
from datetime import date, timedelta

from .core.models import DatedEntry, Habit, HabitEntry, HabitStats, RepeatRule
from .core.types import HabitType
from .lib.dates import days_between, iter_days
from .trackable import is_trackable

__all__ = ["compute_stats", "current_streak", "qualifies", "to_dated_entries"]


def qualifies(habit: Habit, entry: HabitEntry) -> bool:
    if habit.type is HabitType.COUNTABLE:
        return (entry.count or 0) >= (habit.target_count or 1)
    return bool(entry.is_completed)


def to_dated_entries(habit: Habit, entries: Iterable[HabitEntry]) -> list[DatedEntry]:
    return [DatedEntry(date=e.date, qualifies=qualifies(habit, e)) for e in entries]


def compute_stats(
    rule: RepeatRule, creation_date: date, entries: Iterable[DatedEntry], today: date
) -> HabitStats:
    entries = list(entries)
    done_dates = {e.date for e in entries if e.qualifies}

    total = 0
    done = 0
    for day in iter_days(min(creation_date, today), today):
        if is_trackable(day, rule):
            total += 1
            if day in done_dates:
                done += 1

    active_days = days_between(creation_date, today) + 1
    return HabitStats(
        total_instances=total,
        done_instances=done,
        current_streak=current_streak(rule, creation_date, done_dates, today),
        active_days=max(1, active_days),
    )


def current_streak(
    rule: RepeatRule, creation_date: date, done_dates: Iterable[date], today: date
) -> int:
    """Consecutive qualifying occurrences ending at the most recent one.

    Any trackable day after the last qualifying entry, today included, breaks
    the streak. A daily habit therefore reads 0 until today is marked done.
    """
    done = sorted((d for d in set(done_dates) if d >= creation_date), reverse=True)
    if not done:
        return 0

    last_done = done[0]
    expected = today
    for _ in range((today - last_done).days):
        if is_trackable(expected, rule):
            return 0
        expected -= timedelta(days=1)

    streak = 1
    anchor = last_done
    for entry_date in done[1:]:
        expected = anchor - timedelta(days=1)
        while expected >= entry_date:
            if is_trackable(expected, rule):
                if expected != entry_date:
                    return streak
                break
            expected -= timedelta(days=1)
        streak += 1
        anchor = entry_date
    return streak
