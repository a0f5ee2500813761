import dataclasses
import sqlite3
import sys
import time
import uuid
from datetime import date
from typing import Any

from fncli import UsageError, cli

from . import config, db
from .core.errors import NotFoundError, StateError, ValidationError
from .core.models import RepeatRule, Subtask, Task, TimerRecord
from .core.types import RepeatType, Scope, TimerMode
from .lib import clock
from .lib.converters import TASK_COLS, repeat_to_db, row_to_task, subtasks_to_db
from .lib.dates import parse_date, parse_due_date, week_days
from .lib.errors import echo
from .lib.format import format_clock, format_focused_time, format_status, format_task
from .lib.fuzzy import find_in_pool, find_in_pool_exact
from .recurrence import generate
from .sessions import log_session
from .timers import TimerAccumulator, TimerWatch, display_seconds

__all__ = [
    "add_task",
    "delete_task",
    "find_task",
    "get_group",
    "get_task",
    "get_tasks_by_date",
    "get_tasks_in_range",
    "pause_task_timer",
    "save_task_timer",
    "start_task_timer",
    "toggle_complete",
    "toggle_subtask",
    "update_series",
    "update_task",
]


# ── domain ───────────────────────────────────────────────────────────────────

_SERIES_FIELDS = {"name", "scope", "timer_mode", "timer_duration", "repeat", "subtasks"}


def _fetch_tasks(
    conn: sqlite3.Connection, where: str, params: tuple[object, ...] = ()
) -> list[Task]:
    cursor = conn.execute(f"SELECT {TASK_COLS} FROM tasks WHERE {where}", params)  # noqa: S608
    return [row_to_task(row) for row in cursor.fetchall()]


def _task_row(task: Task) -> tuple[object, ...]:
    return (
        task.id,
        task.name,
        task.date.isoformat(),
        task.created_at.isoformat(),
        task.scope.value,
        int(task.is_completed),
        task.completed_at.isoformat() if task.completed_at else None,
        task.timer_mode.value,
        task.timer_duration,
        task.focused_time,
        repeat_to_db(task.repeat),
        task.repeat_group_id,
        subtasks_to_db(task.subtasks),
    )


def _column_values(changes: dict[str, Any]) -> dict[str, object]:
    out: dict[str, object] = {}
    for field, value in changes.items():
        match field:
            case "name":
                out["name"] = _clean_name(value)
            case "scope":
                out["scope"] = Scope(value).value
            case "timer_mode":
                out["timer_mode"] = TimerMode(value).value
            case "timer_duration":
                out["timer_duration"] = _check_duration(value)
            case "repeat":
                out["repeat"] = repeat_to_db(value)
            case "subtasks":
                out["subtasks"] = subtasks_to_db(value)
            case "date":
                out["date"] = parse_date(value).isoformat()
            case _:
                raise ValidationError(f"cannot update task field '{field}'")
    return out


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("task name is required")
    return cleaned


def _check_duration(seconds: int) -> int:
    if seconds < 0:
        raise ValidationError("timer duration cannot be negative")
    return int(seconds)


def _new_subtasks(names: list[str] | None) -> list[Subtask]:
    return [Subtask(id=str(uuid.uuid4()), name=n.strip()) for n in names or [] if n.strip()]


def add_task(
    name: str,
    day: date | None = None,
    scope: Scope = Scope.TODAY,
    repeat: RepeatRule | None = None,
    timer_mode: TimerMode = TimerMode.NONE,
    timer_duration: int = 0,
    subtasks: list[str] | None = None,
    horizon: date | None = None,
) -> list[str]:
    """Create a task, or one row per generated date for a repeating task.

    Rows of a series share a repeat_group_id. A rule that generates no dates
    creates nothing.
    """
    repeat = repeat or RepeatRule.none()
    if timer_mode is TimerMode.TIMER and timer_duration <= 0:
        raise ValidationError("timer mode needs a duration")
    base = Task(
        id="",
        name=_clean_name(name),
        date=day or clock.today(),
        created_at=clock.now(),
        scope=scope,
        timer_mode=timer_mode,
        timer_duration=_check_duration(timer_duration) if timer_mode is TimerMode.TIMER else 0,
        repeat=repeat,
        subtasks=_new_subtasks(subtasks),
    )

    if repeat.type is RepeatType.NONE:
        rows = [dataclasses.replace(base, id=str(uuid.uuid4()))]
    else:
        group_id = str(uuid.uuid4())
        rows = [
            dataclasses.replace(base, id=str(uuid.uuid4()), date=d, repeat_group_id=group_id)
            for d in generate(base.date, repeat, horizon)
        ]
    if not rows:
        return []

    with db.get_db() as conn:
        conn.executemany(
            f"INSERT INTO tasks ({TASK_COLS}) VALUES ({', '.join('?' * 13)})",  # noqa: S608
            [_task_row(t) for t in rows],
        )
    return [t.id for t in rows]


def get_task(task_id: str) -> Task | None:
    with db.get_db() as conn:
        tasks = _fetch_tasks(conn, "id = ?", (task_id,))
    return tasks[0] if tasks else None


def _require(task_id: str) -> Task:
    task = get_task(task_id)
    if task is None:
        raise NotFoundError(f"task not found: {task_id}")
    return task


def get_tasks_by_date(day: date) -> list[Task]:
    with db.get_db() as conn:
        return _fetch_tasks(conn, "date = ? ORDER BY is_completed, created_at", (day.isoformat(),))


def get_tasks_in_range(start: date, end: date) -> list[Task]:
    with db.get_db() as conn:
        return _fetch_tasks(
            conn,
            "date >= ? AND date <= ? ORDER BY date, is_completed, created_at",
            (start.isoformat(), end.isoformat()),
        )


def get_group(group_id: str) -> list[Task]:
    with db.get_db() as conn:
        return _fetch_tasks(conn, "repeat_group_id = ? ORDER BY date", (group_id,))


def update_series(group_id: str, **changes: Any) -> int:
    """Apply changes to every not-yet-completed task of a series.

    Completed instances keep their values. Returns the number of rows changed.
    """
    unknown = set(changes) - _SERIES_FIELDS
    if unknown:
        raise ValidationError(f"cannot update series field(s): {', '.join(sorted(unknown))}")
    columns = _column_values(changes)
    if not columns:
        return 0
    assignments = ", ".join(f"{col} = ?" for col in columns)
    with db.get_db() as conn:
        cursor = conn.execute(
            f"UPDATE tasks SET {assignments} WHERE repeat_group_id = ? AND is_completed = 0",  # noqa: S608
            (*columns.values(), group_id),
        )
        return cursor.rowcount


def update_task(task_id: str, **changes: Any) -> Task:
    """Edit one task. Tasks in a series are edited as a series."""
    task = _require(task_id)
    if task.repeat_group_id and set(changes) <= _SERIES_FIELDS:
        update_series(task.repeat_group_id, **changes)
        return _require(task_id)
    columns = _column_values(changes)
    if columns:
        assignments = ", ".join(f"{col} = ?" for col in columns)
        with db.get_db() as conn:
            conn.execute(
                f"UPDATE tasks SET {assignments} WHERE id = ?",  # noqa: S608
                (*columns.values(), task_id),
            )
    return _require(task_id)


def _set_completed(conn: sqlite3.Connection, task_id: str, completed: bool) -> None:
    conn.execute(
        "UPDATE tasks SET is_completed = ?, completed_at = ? WHERE id = ?",
        (int(completed), clock.now().isoformat() if completed else None, task_id),
    )


def toggle_complete(task_id: str) -> Task:
    task = _require(task_id)
    with db.get_db() as conn:
        _set_completed(conn, task_id, not task.is_completed)
    return _require(task_id)


def toggle_subtask(task_id: str, subtask_id: str) -> Task:
    """Flip one subtask. The task is complete exactly when all subtasks are."""
    task = _require(task_id)
    if not any(s.id == subtask_id for s in task.subtasks):
        raise NotFoundError(f"subtask not found: {subtask_id}")
    subtasks = [
        Subtask(s.id, s.name, not s.is_completed) if s.id == subtask_id else s
        for s in task.subtasks
    ]
    with db.get_db() as conn:
        conn.execute(
            "UPDATE tasks SET subtasks = ? WHERE id = ?", (subtasks_to_db(subtasks), task_id)
        )
        _set_completed(conn, task_id, all(s.is_completed for s in subtasks))
    return _require(task_id)


def delete_task(task_id: str, timers: TimerAccumulator | None = None) -> int:
    """Delete a task, or the unfinished part of its series.

    Any running timer of a deleted task is stopped first so no record keeps
    running for an owner that no longer exists.
    """
    task = _require(task_id)
    timers = timers or TimerAccumulator()
    if task.repeat_group_id:
        doomed = [t for t in get_group(task.repeat_group_id) if not t.is_completed]
    else:
        doomed = [task]
    running = timers.running()
    for t in doomed:
        if t.id in running:
            timers.pause(t.id)
    with db.get_db() as conn:
        conn.executemany("DELETE FROM tasks WHERE id = ?", [(t.id,) for t in doomed])
    return len(doomed)


def find_task(ref: str, exact: bool = False) -> Task | None:
    """Resolve a ref, preferring today's and upcoming instances of a series."""
    today = clock.today()
    with db.get_db() as conn:
        pool = _fetch_tasks(conn, "1 = 1")
    pool.sort(key=lambda t: (t.date < today, abs((t.date - today).days), t.created_at))
    return find_in_pool_exact(ref, pool) if exact else find_in_pool(ref, pool)


# ── timer policies ───────────────────────────────────────────────────────────


def _set_focused_time(task: Task, seconds: float) -> None:
    """Week/month tasks of a series share one focused-time total."""
    with db.get_db() as conn:
        if task.scope in (Scope.WEEK, Scope.MONTH) and task.repeat_group_id:
            conn.execute(
                "UPDATE tasks SET focused_time = ? WHERE repeat_group_id = ?",
                (seconds, task.repeat_group_id),
            )
        else:
            conn.execute("UPDATE tasks SET focused_time = ? WHERE id = ?", (seconds, task.id))


def _log_chunk(task: Task, chunk: float) -> None:
    if chunk > config.get_min_session_seconds():
        log_session(task.id, chunk)


def start_task_timer(task_id: str, timers: TimerAccumulator | None = None) -> TimerRecord:
    """A stopwatch resumes from the banked focused time; a countdown starts full."""
    task = _require(task_id)
    if task.timer_mode is TimerMode.NONE:
        raise StateError(f"task has no timer: {task.name}")
    timers = timers or TimerAccumulator()
    accumulated = task.focused_time if task.timer_mode is TimerMode.STOPWATCH else 0.0
    return timers.start(task.id, task.timer_mode, task.timer_duration, accumulated)


def pause_task_timer(task_id: str, timers: TimerAccumulator | None = None) -> float:
    """Stop the run segment and bank it into focused_time."""
    task = _require(task_id)
    timers = timers or TimerAccumulator()
    chunk = timers.pause(task.id)
    if chunk > 0:
        _set_focused_time(task, task.focused_time + chunk)
        _log_chunk(task, chunk)
    return chunk


def finish_task_timer(task_id: str, chunk: float) -> None:
    """Log the final chunk and reset the session total to zero."""
    task = get_task(task_id)
    if task is None:
        return
    _log_chunk(task, chunk)
    _set_focused_time(task, 0.0)


def save_task_timer(task_id: str, timers: TimerAccumulator | None = None) -> float:
    task = _require(task_id)
    timers = timers or TimerAccumulator()
    chunk = timers.pause(task.id)
    finish_task_timer(task.id, chunk)
    return chunk


# ── cli ──────────────────────────────────────────────────────────────────────


def _resolve(ref: str, exact: bool = False) -> Task:
    task = find_task(ref, exact)
    if task is None:
        raise UsageError(f"no task matches '{ref}'")
    return task


def _parse_day(value: str | None) -> date | None:
    if value is None:
        return None
    parsed = parse_due_date(value)
    if parsed is None:
        raise UsageError(f"unrecognized date: {value}")
    return date.fromisoformat(parsed)


def _parse_rule(repeat: str, days: list[int] | None) -> RepeatRule:
    try:
        kind = RepeatType(repeat)
    except ValueError:
        raise UsageError(f"unknown repeat type: {repeat}") from None
    if kind is RepeatType.WEEKLY:
        return RepeatRule.weekly(days or [])
    if kind is RepeatType.MONTHLY:
        return RepeatRule.monthly(days or [])
    return RepeatRule(kind)


@cli(
    "zenith",
    name="add",
    flags={"date": ["-d", "--date"], "repeat": ["-r", "--repeat"], "sub": ["-s", "--sub"]},
)
def add_cmd(
    name: list[str],
    date: str | None = None,
    scope: str = "today",
    repeat: str = "none",
    days: list[int] | None = None,
    timer: int = 0,
    stopwatch: bool = False,
    sub: list[str] | None = None,
):
    """Add a task (--repeat daily|weekly|monthly|every_week|every_month, --timer MINUTES)"""
    content = " ".join(name)
    if not content:
        raise UsageError("Usage: zenith add <task>")
    try:
        task_scope = Scope(scope)
    except ValueError:
        raise UsageError(f"unknown scope: {scope}") from None
    mode = TimerMode.TIMER if timer else TimerMode.STOPWATCH if stopwatch else TimerMode.NONE
    ids = add_task(
        content,
        day=_parse_day(date),
        scope=task_scope,
        repeat=_parse_rule(repeat, days),
        timer_mode=mode,
        timer_duration=timer * 60,
        subtasks=sub,
    )
    if not ids:
        echo(f"{content}: repeat rule matches no dates, nothing added")
        return
    suffix = f" ×{len(ids)}" if len(ids) > 1 else ""
    echo(format_status("□", f"{content}{suffix}", ids[0]))


@cli("zenith", name="ls", flags={"date": ["-d", "--date"]})
def ls_cmd(date: str | None = None):
    """List tasks for a day (default today)"""
    day = _parse_day(date) or clock.today()
    tasks = get_tasks_by_date(day)
    if not tasks:
        echo(f"no tasks for {day.isoformat()}")
        return
    running = TimerAccumulator().running()
    for task in tasks:
        echo(format_task(task, running=task.id in running))


@cli("zenith", name="week")
def week_cmd():
    """Tasks for this week, Sunday to Saturday"""
    days = week_days(clock.today())
    by_day: dict[date, list[Task]] = {d: [] for d in days}
    for task in get_tasks_in_range(days[0], days[-1]):
        by_day[task.date].append(task)
    for day, tasks in by_day.items():
        echo(f"{day.strftime('%a %d').lower()}")
        for task in tasks:
            echo(f"  {format_task(task)}")


@cli("zenith", name="done")
def done_cmd(ref: str):
    """Toggle a task complete"""
    task = toggle_complete(_resolve(ref).id)
    symbol = "✓" if task.is_completed else "□"
    echo(format_status(symbol, task.name, task.id))


@cli("zenith", name="edit")
def edit_cmd(ref: str, name: str | None = None, timer: int | None = None):
    """Rename a task or change its timer; series edits skip completed instances"""
    task = _resolve(ref)
    changes: dict[str, Any] = {}
    if name:
        changes["name"] = name
    if timer is not None:
        changes["timer_mode"] = TimerMode.TIMER if timer else TimerMode.NONE
        changes["timer_duration"] = timer * 60
    if not changes:
        raise UsageError("nothing to change")
    updated = update_task(task.id, **changes)
    echo(format_status("~", updated.name, updated.id))


@cli("zenith", name="rm")
def rm_cmd(ref: str):
    """Delete a task (unfinished instances of a series)"""
    task = _resolve(ref, exact=True)
    count = delete_task(task.id)
    suffix = f" ×{count}" if count > 1 else ""
    echo(format_status("✗", f"{task.name}{suffix}", task.id))


@cli("zenith timer", name="start")
def timer_start(ref: str):
    """Start or resume a task timer"""
    task = _resolve(ref)
    try:
        start_task_timer(task.id)
    except StateError as e:
        raise UsageError(str(e)) from None
    echo(format_status("▶", task.name, task.id))


@cli("zenith timer", name="pause")
def timer_pause(ref: str):
    """Pause a task timer, keeping the session total"""
    task = _resolve(ref)
    chunk = pause_task_timer(task.id)
    echo(format_status("⏸", f"{task.name} +{format_focused_time(chunk)}", task.id))


@cli("zenith timer", name="save")
def timer_save(ref: str):
    """Log the session and reset the task's focused time"""
    task = _resolve(ref)
    chunk = save_task_timer(task.id)
    echo(format_status("■", f"{task.name} {format_focused_time(task.focused_time + chunk)}", task.id))


@cli("zenith timer", name="status", default=True)
def timer_status():
    """Show running timers"""
    timers = TimerAccumulator()
    running = timers.running()
    if not running:
        echo("no timers running")
        return
    now = timers.now()
    for owner_id, record in running.items():
        task = get_task(owner_id)
        name = task.name if task else owner_id[:8]
        echo(f"{format_clock(display_seconds(record, now))} {record.mode.value} {name}")


@cli("zenith timer", name="watch")
def timer_watch(ref: str):
    """Follow a running timer, once per tick, until it stops or finishes"""
    task = _resolve(ref)
    watch = TimerWatch(TimerAccumulator(), task.id, lambda chunk: finish_task_timer(task.id, chunk))
    try:
        while (value := watch.tick()) is not None:
            sys.stdout.write(f"\r{format_clock(value)} {task.name}")
            sys.stdout.flush()
            if watch.finished:
                break
            time.sleep(config.get_tick_seconds())
    except KeyboardInterrupt:
        pass
    echo("")
    echo("finished" if watch.finished else "not running")
