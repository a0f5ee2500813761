import json
from datetime import date, datetime
from typing import cast

from zenith.core.models import FocusedSession, Habit, HabitEntry, RepeatRule, Subtask, Task
from zenith.core.types import HabitType, Scope, TimerMode

TaskRow = tuple[object, ...]
HabitRow = tuple[object, ...]
EntryRow = tuple[object, ...]
SessionRow = tuple[object, ...]

TASK_COLS = (
    "id, name, date, created_at, scope, is_completed, completed_at, timer_mode, "
    "timer_duration, focused_time, repeat, repeat_group_id, subtasks"
)
HABIT_COLS = "id, name, created_at, type, target_count, repeat, group_name"
ENTRY_COLS = "id, habit_id, date, is_completed, count"
SESSION_COLS = "id, task_id, date, duration"


def _parse_date(val) -> date | None:
    """Parse a YYYY-MM-DD (or ISO datetime) string."""
    if isinstance(val, str) and val:
        return date.fromisoformat(val.split("T")[0])
    return None


def _parse_datetime(val) -> datetime:
    if isinstance(val, str) and val:
        try:
            return datetime.fromisoformat(val)
        except ValueError:
            return datetime.combine(date.fromisoformat(val), datetime.min.time())
    return datetime.min


def _parse_datetime_optional(val) -> datetime | None:
    if isinstance(val, str) and val:
        return _parse_datetime(val)
    return None


def _load_json(val, default):
    if not isinstance(val, str) or not val:
        return default
    try:
        return json.loads(val)
    except ValueError:
        return default


def repeat_to_db(rule: RepeatRule) -> str:
    return json.dumps(rule.to_dict())


def repeat_from_db(val) -> RepeatRule:
    return RepeatRule.from_dict(_load_json(val, None))


def subtasks_to_db(subtasks: list[Subtask]) -> str:
    return json.dumps(
        [{"id": s.id, "name": s.name, "is_completed": s.is_completed} for s in subtasks]
    )


def subtasks_from_db(val) -> list[Subtask]:
    raw = _load_json(val, [])
    if not isinstance(raw, list):
        return []
    return [
        Subtask(id=str(s["id"]), name=str(s.get("name", "")), is_completed=bool(s.get("is_completed")))
        for s in raw
        if isinstance(s, dict) and "id" in s
    ]


def row_to_task(row: TaskRow) -> Task:
    """
    Converts a raw database row from tasks table into a Task object.
    Expected row format matches TASK_COLS.
    """
    return Task(
        id=cast(str, row[0]),
        name=cast(str, row[1]),
        date=cast(date, _parse_date(row[2])),
        created_at=_parse_datetime(row[3]),
        scope=Scope(row[4]) if row[4] else Scope.TODAY,
        is_completed=bool(row[5]),
        completed_at=_parse_datetime_optional(row[6]),
        timer_mode=TimerMode(row[7]) if row[7] else TimerMode.NONE,
        timer_duration=int(cast(int, row[8]) or 0),
        focused_time=float(cast(float, row[9]) or 0.0),
        repeat=repeat_from_db(row[10]),
        repeat_group_id=cast(str, row[11]) if row[11] is not None else None,
        subtasks=subtasks_from_db(row[12]),
    )


def row_to_habit(row: HabitRow) -> Habit:
    return Habit(
        id=cast(str, row[0]),
        name=cast(str, row[1]),
        created_at=_parse_datetime(row[2]),
        type=HabitType(row[3]) if row[3] else HabitType.BINARY,
        target_count=cast(int, row[4]) if row[4] is not None else None,
        repeat=repeat_from_db(row[5]),
        group_name=cast(str, row[6]) or "",
    )


def row_to_entry(row: EntryRow) -> HabitEntry:
    return HabitEntry(
        id=cast(int, row[0]),
        habit_id=cast(str, row[1]),
        date=cast(date, _parse_date(row[2])),
        is_completed=bool(row[3]) if row[3] is not None else None,
        count=cast(int, row[4]) if row[4] is not None else None,
    )


def row_to_session(row: SessionRow) -> FocusedSession:
    return FocusedSession(
        id=cast(int, row[0]),
        task_id=cast(str, row[1]),
        date=cast(date, _parse_date(row[2])),
        duration=float(cast(float, row[3])),
    )
