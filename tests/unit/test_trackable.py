from datetime import date, timedelta

from zenith.core.models import RepeatRule
from zenith.trackable import is_trackable, trackable_days


def test_daily_is_always_trackable():
    start = date(2024, 1, 1)
    assert all(is_trackable(start + timedelta(days=i), RepeatRule.daily()) for i in range(400))


def test_weekly_matches_weekday_set():
    rule = RepeatRule.weekly({0, 6})
    assert is_trackable(date(2024, 1, 6), rule)  # saturday
    assert is_trackable(date(2024, 1, 7), rule)  # sunday
    assert not is_trackable(date(2024, 1, 8), rule)


def test_weekly_without_days_never_trackable():
    assert not is_trackable(date(2024, 1, 6), RepeatRule.weekly(set()))


def test_monthly_does_not_clamp_short_months():
    rule = RepeatRule.monthly({31})
    assert is_trackable(date(2024, 1, 31), rule)
    assert not is_trackable(date(2024, 4, 30), rule)
    assert trackable_days(rule, date(2024, 4, 1), date(2024, 4, 30)) == []


def test_task_only_rules_never_trackable():
    day = date(2024, 1, 10)
    for rule in (RepeatRule.none(), RepeatRule.every_week(), RepeatRule.every_month()):
        assert not is_trackable(day, rule)


def test_trackable_days_in_range():
    days = trackable_days(RepeatRule.monthly({1, 15}), date(2024, 1, 1), date(2024, 2, 28))
    assert days == [date(2024, 1, 1), date(2024, 1, 15), date(2024, 2, 1), date(2024, 2, 15)]
