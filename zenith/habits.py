import calendar
import sqlite3
import uuid
from datetime import date

from fncli import UsageError, cli

from . import db
from .core.errors import NotFoundError, ValidationError
from .core.models import Habit, HabitEntry, HabitStats, RepeatRule
from .core.types import UNSET, HabitType, RepeatType, Unset
from .lib import ansi, clock
from .lib.converters import ENTRY_COLS, HABIT_COLS, repeat_to_db, row_to_entry, row_to_habit
from .lib.dates import month_days, parse_due_date
from .lib.errors import echo
from .lib.format import format_habit, format_status
from .lib.fuzzy import find_in_pool, find_in_pool_exact
from .streaks import compute_stats, to_dated_entries
from .trackable import is_trackable, trackable_days

__all__ = [
    "add_habit",
    "delete_habit",
    "find_habit",
    "get_entries",
    "get_habit",
    "get_habits",
    "habit_stats",
    "set_count",
    "set_entry",
    "toggle_entry",
    "update_habit",
]


# ── domain ───────────────────────────────────────────────────────────────────

_HABIT_REPEATS = (RepeatType.DAILY, RepeatType.WEEKLY, RepeatType.MONTHLY)


def _fetch_habits(
    conn: sqlite3.Connection, where: str, params: tuple[object, ...] = ()
) -> list[Habit]:
    cursor = conn.execute(f"SELECT {HABIT_COLS} FROM habits WHERE {where}", params)  # noqa: S608
    return [row_to_habit(row) for row in cursor.fetchall()]


def _check_repeat(rule: RepeatRule) -> RepeatRule:
    if rule.type not in _HABIT_REPEATS:
        raise ValidationError(f"habits repeat daily, weekly or monthly, not {rule.type.value}")
    return rule


def _check_target(kind: HabitType, target_count: int | None) -> int | None:
    if kind is HabitType.BINARY:
        return None
    if target_count is None:
        return 1
    if target_count < 1:
        raise ValidationError("target count must be at least 1")
    return target_count


def add_habit(
    name: str,
    kind: HabitType = HabitType.BINARY,
    target_count: int | None = None,
    repeat: RepeatRule | None = None,
    group_name: str = "",
) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("habit name is required")
    rule = _check_repeat(repeat or RepeatRule.daily())
    habit_id = str(uuid.uuid4())
    with db.get_db() as conn:
        conn.execute(
            f"INSERT INTO habits ({HABIT_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
            (
                habit_id,
                name,
                clock.now().isoformat(),
                kind.value,
                _check_target(kind, target_count),
                repeat_to_db(rule),
                group_name.strip(),
            ),
        )
    return habit_id


def get_habit(habit_id: str) -> Habit | None:
    with db.get_db() as conn:
        habits = _fetch_habits(conn, "id = ?", (habit_id,))
    return habits[0] if habits else None


def _require(habit_id: str) -> Habit:
    habit = get_habit(habit_id)
    if habit is None:
        raise NotFoundError(f"habit not found: {habit_id}")
    return habit


def get_habits() -> list[Habit]:
    with db.get_db() as conn:
        return _fetch_habits(conn, "1 = 1 ORDER BY group_name, created_at")


def update_habit(
    habit_id: str,
    name: str | Unset = UNSET,
    target_count: int | None | Unset = UNSET,
    repeat: RepeatRule | Unset = UNSET,
    group_name: str | Unset = UNSET,
) -> Habit:
    """Edit a habit in place. Past entries are kept and re-read under the new rule."""
    habit = _require(habit_id)
    changes: dict[str, object] = {}
    if name is not UNSET:
        if not name.strip():
            raise ValidationError("habit name is required")
        changes["name"] = name.strip()
    if target_count is not UNSET:
        changes["target_count"] = _check_target(habit.type, target_count)
    if repeat is not UNSET:
        changes["repeat"] = repeat_to_db(_check_repeat(repeat))
    if group_name is not UNSET:
        changes["group_name"] = group_name.strip()
    if changes:
        assignments = ", ".join(f"{col} = ?" for col in changes)
        with db.get_db() as conn:
            conn.execute(
                f"UPDATE habits SET {assignments} WHERE id = ?",  # noqa: S608
                (*changes.values(), habit_id),
            )
    return _require(habit_id)


def delete_habit(habit_id: str) -> None:
    """Remove a habit; its entries go with it."""
    _require(habit_id)
    with db.get_db() as conn:
        conn.execute("DELETE FROM habits WHERE id = ?", (habit_id,))


def get_entries(
    habit_id: str, start: date | None = None, end: date | None = None
) -> list[HabitEntry]:
    where = "habit_id = ?"
    params: list[object] = [habit_id]
    if start is not None:
        where += " AND date >= ?"
        params.append(start.isoformat())
    if end is not None:
        where += " AND date <= ?"
        params.append(end.isoformat())
    with db.get_db() as conn:
        rows = conn.execute(
            f"SELECT {ENTRY_COLS} FROM habit_entries WHERE {where} ORDER BY date",  # noqa: S608
            tuple(params),
        ).fetchall()
    return [row_to_entry(row) for row in rows]


def _get_entry(habit_id: str, day: date) -> HabitEntry | None:
    entries = get_entries(habit_id, day, day)
    return entries[0] if entries else None


def _check_clickable(habit: Habit, day: date) -> None:
    if day > clock.today():
        raise ValidationError(f"cannot record {habit.name} in the future ({day.isoformat()})")
    if day < habit.created_at.date():
        raise ValidationError(f"{habit.name} did not exist on {day.isoformat()}")
    if not is_trackable(day, habit.repeat):
        raise ValidationError(f"{habit.name} is not due on {day.isoformat()}")


def set_entry(
    habit_id: str,
    day: date | None = None,
    is_completed: bool | None = None,
    count: int | None = None,
) -> HabitEntry:
    """Write the single entry for (habit, day), replacing any earlier value."""
    habit = _require(habit_id)
    day = day or clock.today()
    _check_clickable(habit, day)
    if count is not None and count < 0:
        raise ValidationError("count cannot be negative")
    with db.get_db() as conn:
        conn.execute(
            "INSERT INTO habit_entries (habit_id, date, is_completed, count) VALUES (?, ?, ?, ?) "
            "ON CONFLICT (habit_id, date) DO UPDATE SET "
            "is_completed = excluded.is_completed, count = excluded.count",
            (
                habit_id,
                day.isoformat(),
                None if is_completed is None else int(is_completed),
                count,
            ),
        )
    return _get_entry(habit_id, day)  # type: ignore[return-value]


def toggle_entry(habit_id: str, day: date | None = None) -> HabitEntry:
    habit = _require(habit_id)
    if habit.type is not HabitType.BINARY:
        raise ValidationError(f"{habit.name} is countable, set a count instead")
    day = day or clock.today()
    current = _get_entry(habit_id, day)
    done = bool(current and current.is_completed)
    return set_entry(habit_id, day, is_completed=not done)


def set_count(habit_id: str, count: int, day: date | None = None) -> HabitEntry:
    habit = _require(habit_id)
    if habit.type is not HabitType.COUNTABLE:
        raise ValidationError(f"{habit.name} is a yes/no habit, toggle it instead")
    return set_entry(habit_id, day, count=count)


def habit_stats(habit_id: str, today: date | None = None) -> HabitStats:
    habit = _require(habit_id)
    today = today or clock.today()
    entries = to_dated_entries(habit, get_entries(habit_id, end=today))
    return compute_stats(habit.repeat, habit.created_at.date(), entries, today)


def find_habit(ref: str, exact: bool = False) -> Habit | None:
    habits = get_habits()
    return find_in_pool_exact(ref, habits) if exact else find_in_pool(ref, habits)


# ── cli ──────────────────────────────────────────────────────────────────────


def _resolve(ref: str, exact: bool = False) -> Habit:
    habit = find_habit(ref, exact)
    if habit is None:
        raise UsageError(f"no habit matches '{ref}'")
    return habit


def _parse_day(value: str | None) -> date | None:
    if value is None:
        return None
    parsed = parse_due_date(value)
    if parsed is None:
        raise UsageError(f"unrecognized date: {value}")
    return date.fromisoformat(parsed)


@cli("zenith habit", name="add")
def habit_add(
    name: list[str],
    weekly: list[int] | None = None,
    monthly: list[int] | None = None,
    target: int | None = None,
    group: str = "",
):
    """Add a habit (daily by default; --weekly 1 3 5 uses 0=Sunday; --target N makes it countable)"""
    content = " ".join(name)
    if not content:
        raise UsageError("Usage: zenith habit add <name>")
    if weekly and monthly:
        raise UsageError("choose --weekly or --monthly, not both")
    rule = (
        RepeatRule.weekly(weekly)
        if weekly
        else RepeatRule.monthly(monthly)
        if monthly
        else RepeatRule.daily()
    )
    kind = HabitType.COUNTABLE if target is not None else HabitType.BINARY
    try:
        habit_id = add_habit(content, kind=kind, target_count=target, repeat=rule, group_name=group)
    except ValidationError as e:
        raise UsageError(str(e)) from None
    echo(format_status("□", content, habit_id))


@cli("zenith habit", name="ls", default=True)
def habit_ls():
    """List habits with their streaks"""
    habits = get_habits()
    if not habits:
        echo("no habits")
        return
    group = None
    for habit in habits:
        if habit.group_name != group:
            group = habit.group_name
            if group:
                echo(ansi.bold(group))
        prefix = "  " if group else ""
        echo(prefix + format_habit(habit, habit_stats(habit.id)))


@cli("zenith habit", name="check", flags={"date": ["-d", "--date"]})
def habit_check(ref: str, date: str | None = None):
    """Toggle a yes/no habit for a day (default today)"""
    habit = _resolve(ref)
    try:
        entry = toggle_entry(habit.id, _parse_day(date))
    except ValidationError as e:
        raise UsageError(str(e)) from None
    echo(format_status("✓" if entry.is_completed else "□", habit.name, habit.id))


@cli("zenith habit", name="count", flags={"date": ["-d", "--date"]})
def habit_count(ref: str, count: int, date: str | None = None):
    """Set the count of a countable habit for a day"""
    habit = _resolve(ref)
    try:
        entry = set_count(habit.id, count, _parse_day(date))
    except ValidationError as e:
        raise UsageError(str(e)) from None
    echo(format_status(f"{entry.count}/{habit.target_count}", habit.name, habit.id))


@cli("zenith habit", name="stats")
def habit_stats_cmd(ref: str):
    """Completion rate and current streak"""
    habit = _resolve(ref)
    stats = habit_stats(habit.id)
    echo(format_habit(habit, stats))
    echo(f"completion {stats.completion_rate:.0%} ({stats.done_instances}/{stats.total_instances})")
    echo(f"streak     {stats.current_streak}")
    echo(f"active     {stats.active_days} days")


@cli("zenith habit", name="cal")
def habit_cal(ref: str, month: str | None = None):
    """Month grid: ✓ done, · due, blank not due (--month YYYY-MM)"""
    habit = _resolve(ref)
    today = clock.today()
    if month:
        try:
            first = date.fromisoformat(f"{month}-01")
        except ValueError:
            raise UsageError(f"month must look like YYYY-MM, got {month}") from None
    else:
        first = today.replace(day=1)
    last = month_days(first)[-1]
    start = max(first, habit.created_at.date())
    due = set(trackable_days(habit.repeat, start, min(last, today)))
    done = {
        e.date
        for e in to_dated_entries(habit, get_entries(habit.id, first, last))
        if e.qualifies
    }

    echo(f"{habit.name}  {first.strftime('%B %Y').lower()}")
    echo(" su mo tu we th fr sa")
    weeks = calendar.Calendar(firstweekday=calendar.SUNDAY).monthdayscalendar(first.year, first.month)
    for week in weeks:
        cells = []
        for day_num in week:
            if not day_num:
                cells.append("   ")
                continue
            day = first.replace(day=day_num)
            if day in done:
                cells.append(ansi.green("  ✓"))
            elif day in due:
                cells.append(ansi.muted("  ·"))
            else:
                cells.append("   ")
        echo("".join(cells))


@cli("zenith habit", name="rm")
def habit_rm(ref: str):
    """Delete a habit and all of its entries"""
    habit = _resolve(ref, exact=True)
    delete_habit(habit.id)
    echo(format_status("✗", habit.name, habit.id))
