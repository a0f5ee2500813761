from datetime import date, datetime

from zenith.core.models import Habit, HabitStats, RepeatRule, Subtask, Task
from zenith.core.types import TimerMode
from zenith.lib import ansi
from zenith.lib.format import (
    format_clock,
    format_focused_time,
    format_habit,
    format_status,
    format_task,
    format_time,
    repeat_symbol,
)


def _task(**kwargs) -> Task:
    defaults = {
        "id": "abcdef12-0000",
        "name": "write report",
        "date": date(2024, 1, 10),
        "created_at": datetime(2024, 1, 10, 9),
    }
    return Task(**{**defaults, **kwargs})


def setup_function():
    ansi.use(ansi.PLAIN)


def test_format_time_is_hours_and_minutes():
    assert format_time(3 * 3600 + 5 * 60 + 59) == "03:05"
    assert format_time(-10) == "00:00"


def test_format_clock_does_not_wrap_hours():
    assert format_clock(65) == "01:05"
    assert format_clock(3725) == "62:05"


def test_format_focused_time_switches_to_hours():
    assert format_focused_time(0) == "0 min"
    assert format_focused_time(25 * 60) == "25 min"
    assert format_focused_time(5400) == "1.5 hr"


def test_repeat_symbol():
    assert repeat_symbol(RepeatRule.daily()) == "↻D"
    assert repeat_symbol(RepeatRule.every_week()) == "↻W"
    assert repeat_symbol(RepeatRule.monthly({1})) == "↻M"
    assert repeat_symbol(RepeatRule.none()) == ""


def test_format_status_with_id():
    assert format_status("✓", "done", "abcdef1234") == "✓ done [abcdef12]"
    assert format_status("✗", "gone") == "✗ gone"


def test_format_task_shows_progress_and_timer():
    task = _task(
        subtasks=[Subtask("s1", "outline", True), Subtask("s2", "draft")],
        repeat=RepeatRule.daily(),
        timer_mode=TimerMode.TIMER,
        timer_duration=1500,
    )
    assert format_task(task, running=True) == "□ write report (1/2) ↻D ⏱ 25:00 ● [abcdef12]"


def test_format_task_completed():
    assert format_task(_task(is_completed=True)) == "✓ write report [abcdef12]"


def test_format_habit():
    habit = Habit(id="1234abcd-ffff", name="read", created_at=datetime(2024, 1, 1))
    stats = HabitStats(total_instances=10, done_instances=8, current_streak=3, active_days=10)
    assert format_habit(habit, stats) == "read 🔥3 8/10 10d [1234abcd]"
