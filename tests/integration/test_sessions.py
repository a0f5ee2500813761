from datetime import date

import pytest

from zenith.sessions import daily_totals, get_sessions, log_session, overview, total_focused


def test_log_and_read_sessions(tmp_zenith_dir, frozen_clock):
    log_session("t1", 600)
    log_session("t2", 120, day=date(2024, 1, 2))

    assert [s.task_id for s in get_sessions(date(2024, 1, 1), date(2024, 1, 31))] == ["t2", "t1"]
    assert total_focused(date(2024, 1, 10), date(2024, 1, 10)) == 600


def test_daily_totals_zero_fill(tmp_zenith_dir, frozen_clock):
    log_session("t1", 60, day=date(2024, 1, 2))
    log_session("t1", 30, day=date(2024, 1, 2))

    totals = daily_totals(date(2024, 1, 1), date(2024, 1, 3))
    assert totals == {date(2024, 1, 1): 0.0, date(2024, 1, 2): 90.0, date(2024, 1, 3): 0.0}


def test_overview_groups_by_sunday_week_and_month(tmp_zenith_dir, frozen_clock):
    log_session("t1", 700)  # wed 2024-01-10
    log_session("t1", 1400, day=date(2024, 1, 7))  # sunday, same week
    log_session("t1", 3600, day=date(2024, 1, 6))  # saturday, previous week
    log_session("t1", 5000, day=date(2023, 12, 31))  # previous month

    o = overview()

    assert o.today == 700
    assert o.week == 2100
    assert o.week_daily_average == pytest.approx(300)
    assert o.month == 5700
    assert list(o.week_by_day) == [date(2024, 1, d) for d in range(7, 14)]
