from zenith.core.models import Habit, HabitStats, RepeatRule, Task
from zenith.core.types import RepeatType, TimerMode

from . import ansi

__all__ = [
    "format_clock",
    "format_focused_time",
    "format_habit",
    "format_status",
    "format_task",
    "format_time",
    "repeat_symbol",
]


def format_time(seconds: float) -> str:
    """HH:MM."""
    seconds = max(0, int(seconds))
    return f"{seconds // 3600:02d}:{(seconds % 3600) // 60:02d}"


def format_clock(seconds: float) -> str:
    """MM:SS countdown/stopwatch face. Minutes are not wrapped at an hour."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def format_focused_time(seconds: float) -> str:
    if seconds < 3600:
        return f"{round(seconds / 60)} min"
    return f"{seconds / 3600:.1f} hr"


_REPEAT_LETTERS = {
    RepeatType.DAILY: "D",
    RepeatType.WEEKLY: "W",
    RepeatType.EVERY_WEEK: "W",
    RepeatType.MONTHLY: "M",
    RepeatType.EVERY_MONTH: "M",
}


def repeat_symbol(rule: RepeatRule) -> str:
    letter = _REPEAT_LETTERS.get(rule.type)
    return f"↻{letter}" if letter else ""


def format_status(symbol: str, content: str, item_id: str | None = None) -> str:
    """Format status message for action confirmations."""
    if item_id:
        return f"{symbol} {content} {ansi.muted(f'[{item_id[:8]}]')}"
    return f"{symbol} {content}"


def format_task(task: Task, running: bool = False) -> str:
    """[✓|□] name [subtasks] [↻X] [timer] [id]"""
    parts = [ansi.gray("✓") if task.is_completed else "□", task.name]

    if task.subtasks:
        done = sum(1 for s in task.subtasks if s.is_completed)
        parts.append(ansi.muted(f"({done}/{len(task.subtasks)})"))

    symbol = repeat_symbol(task.repeat)
    if symbol:
        parts.append(ansi.muted(symbol))

    if task.timer_mode is TimerMode.TIMER:
        parts.append(ansi.muted(f"⏱ {format_clock(task.timer_duration)}"))
    elif task.timer_mode is TimerMode.STOPWATCH and task.focused_time:
        parts.append(ansi.muted(f"⏱ {format_focused_time(task.focused_time)}"))
    if running:
        parts.append(ansi.green("●"))

    parts.append(ansi.muted(f"[{task.id[:8]}]"))
    return " ".join(parts)


def format_habit(habit: Habit, stats: HabitStats) -> str:
    streak = ansi.orange(f"🔥{stats.current_streak}") if stats.current_streak else "🔥0"
    return (
        f"{habit.name} {streak} "
        f"{stats.done_instances}/{stats.total_instances} "
        f"{ansi.muted(f'{stats.active_days}d [{habit.id[:8]}]')}"
    )
