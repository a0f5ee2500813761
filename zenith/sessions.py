import dataclasses
from datetime import date

from fncli import cli

from . import db
from .core.models import FocusedSession
from .lib import clock
from .lib.converters import SESSION_COLS, row_to_session
from .lib.dates import add_days, end_of_month, iter_days, start_of_month, start_of_week
from .lib.errors import echo
from .lib.format import format_focused_time

__all__ = [
    "Overview",
    "daily_totals",
    "get_sessions",
    "log_session",
    "overview",
    "total_focused",
]


@dataclasses.dataclass(frozen=True)
class Overview:
    today: float
    week: float
    week_daily_average: float
    month: float
    week_by_day: dict[date, float]


def log_session(task_id: str, duration: float, day: date | None = None) -> int:
    day = day or clock.today()
    with db.get_db() as conn:
        cursor = conn.execute(
            "INSERT INTO focused_sessions (task_id, date, duration) VALUES (?, ?, ?)",
            (task_id, day.isoformat(), float(duration)),
        )
        return cursor.lastrowid or 0


def get_sessions(start: date, end: date) -> list[FocusedSession]:
    with db.get_db() as conn:
        rows = conn.execute(
            f"SELECT {SESSION_COLS} FROM focused_sessions WHERE date >= ? AND date <= ? ORDER BY date, id",  # noqa: S608
            (start.isoformat(), end.isoformat()),
        ).fetchall()
    return [row_to_session(row) for row in rows]


def total_focused(start: date, end: date) -> float:
    return sum(s.duration for s in get_sessions(start, end))


def daily_totals(start: date, end: date) -> dict[date, float]:
    totals = {day: 0.0 for day in iter_days(start, end)}
    for session in get_sessions(start, end):
        totals[session.date] += session.duration
    return totals


def overview(today: date | None = None) -> Overview:
    today = today or clock.today()
    week_start = start_of_week(today)
    week = daily_totals(week_start, add_days(week_start, 6))
    week_total = sum(week.values())
    return Overview(
        today=total_focused(today, today),
        week=week_total,
        week_daily_average=week_total / len(week),
        month=total_focused(start_of_month(today), end_of_month(today)),
        week_by_day=week,
    )


@cli("zenith", name="overview")
def overview_cmd():
    """Focused time today, this week and this month"""
    o = overview()
    echo(f"today  {format_focused_time(o.today)}")
    echo(f"week   {format_focused_time(o.week)}  (avg {format_focused_time(o.week_daily_average)}/day)")
    for day, seconds in o.week_by_day.items():
        echo(f"  {day.strftime('%a').lower()}  {round(seconds / 60)} min")
    echo(f"month  {format_focused_time(o.month)}")
