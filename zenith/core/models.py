import dataclasses
from datetime import date, datetime
from typing import Any

from .types import HabitType, RepeatType, Scope, TimerMode


@dataclasses.dataclass(frozen=True)
class RepeatRule:
    """Abstract repeat rule. Only weekly/monthly read their day sets.

    days_of_week uses Sunday = 0 .. Saturday = 6; days_of_month 1..31.
    """

    type: RepeatType = RepeatType.NONE
    days_of_week: frozenset[int] = frozenset()
    days_of_month: frozenset[int] = frozenset()

    @classmethod
    def none(cls) -> "RepeatRule":
        return cls()

    @classmethod
    def daily(cls) -> "RepeatRule":
        return cls(RepeatType.DAILY)

    @classmethod
    def weekly(cls, days: set[int] | frozenset[int] | list[int]) -> "RepeatRule":
        return cls(RepeatType.WEEKLY, days_of_week=frozenset(days))

    @classmethod
    def monthly(cls, days: set[int] | frozenset[int] | list[int]) -> "RepeatRule":
        return cls(RepeatType.MONTHLY, days_of_month=frozenset(days))

    @classmethod
    def every_week(cls) -> "RepeatRule":
        return cls(RepeatType.EVERY_WEEK)

    @classmethod
    def every_month(cls) -> "RepeatRule":
        return cls(RepeatType.EVERY_MONTH)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type.value}
        if self.type is RepeatType.WEEKLY:
            out["days_of_week"] = sorted(self.days_of_week)
        if self.type is RepeatType.MONTHLY:
            out["days_of_month"] = sorted(self.days_of_month)
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "RepeatRule":
        """Tolerant decode: unknown types and junk day values degrade, never raise."""
        if not isinstance(raw, dict):
            return cls()
        try:
            kind = RepeatType(raw.get("type") or "none")
        except ValueError:
            return cls()
        return cls(
            kind,
            days_of_week=frozenset(_ints(raw.get("days_of_week"))),
            days_of_month=frozenset(_ints(raw.get("days_of_month"))),
        )


def _ints(values: object) -> list[int]:
    if not isinstance(values, (list, tuple, set, frozenset)):
        return []
    return [v for v in values if isinstance(v, int) and not isinstance(v, bool)]


@dataclasses.dataclass(frozen=True)
class Subtask:
    id: str
    name: str
    is_completed: bool = False


@dataclasses.dataclass(frozen=True)
class Task:
    id: str
    name: str
    date: date
    created_at: datetime
    scope: Scope = Scope.TODAY
    is_completed: bool = False
    completed_at: datetime | None = None
    timer_mode: TimerMode = TimerMode.NONE
    timer_duration: int = 0
    focused_time: float = 0.0
    repeat: RepeatRule = dataclasses.field(default_factory=RepeatRule)
    repeat_group_id: str | None = None
    subtasks: list[Subtask] = dataclasses.field(default_factory=list, hash=False)


@dataclasses.dataclass(frozen=True)
class Habit:
    id: str
    name: str
    created_at: datetime
    type: HabitType = HabitType.BINARY
    target_count: int | None = None
    repeat: RepeatRule = dataclasses.field(default_factory=RepeatRule.daily)
    group_name: str = ""


@dataclasses.dataclass(frozen=True)
class HabitEntry:
    id: int
    habit_id: str
    date: date
    is_completed: bool | None = None
    count: int | None = None


@dataclasses.dataclass(frozen=True)
class DatedEntry:
    date: date
    qualifies: bool


@dataclasses.dataclass(frozen=True)
class HabitStats:
    total_instances: int = 0
    done_instances: int = 0
    current_streak: int = 0
    active_days: int = 1

    @property
    def completion_rate(self) -> float:
        if not self.total_instances:
            return 0.0
        return self.done_instances / self.total_instances


@dataclasses.dataclass(frozen=True)
class FocusedSession:
    id: int
    task_id: str
    date: date
    duration: float


@dataclasses.dataclass(frozen=True)
class TimerRecord:
    owner_id: str
    start_time: float
    mode: TimerMode
    initial_duration: float = 0.0
    accumulated: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_time": self.start_time,
            "mode": self.mode.value,
            "initial_duration": self.initial_duration,
            "accumulated": self.accumulated,
        }

    @classmethod
    def from_dict(cls, owner_id: str, raw: dict[str, Any]) -> "TimerRecord":
        return cls(
            owner_id=owner_id,
            start_time=float(raw["start_time"]),
            mode=TimerMode(raw["mode"]),
            initial_duration=float(raw.get("initial_duration", 0.0)),
            accumulated=float(raw.get("accumulated", 0.0)),
        )
