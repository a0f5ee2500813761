"""Core type definitions."""

from enum import Enum, StrEnum
from typing import Literal


class _Unset(Enum):
    UNSET = "UNSET"


UNSET: Literal[_Unset.UNSET] = _Unset.UNSET
Unset = Literal[_Unset.UNSET]


class RepeatType(StrEnum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    EVERY_WEEK = "every_week"
    EVERY_MONTH = "every_month"


class TimerMode(StrEnum):
    NONE = "none"
    STOPWATCH = "stopwatch"
    TIMER = "timer"


class Scope(StrEnum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class HabitType(StrEnum):
    BINARY = "binary"
    COUNTABLE = "countable"
