from datetime import datetime

import pytest

from recurrence_engine.models.recurrence_pattern import RecurrencePattern
from recurrence_engine.services.recurrence_calculator import compute_next, sunday_based_weekday

MONDAY, WEDNESDAY, SUNDAY = 1, 3, 0


def test_daily_adds_interval_days():
    assert compute_next(datetime(2024, 2, 28), "daily") == datetime(2024, 2, 29)
    assert compute_next(datetime(2024, 12, 30), "daily", 3) == datetime(2025, 1, 2)


def test_sunday_based_weekday():
    assert sunday_based_weekday(datetime(2024, 1, 7)) == SUNDAY
    assert sunday_based_weekday(datetime(2024, 1, 3)) == WEDNESDAY


def test_weekly_without_anchor_adds_whole_weeks():
    assert compute_next(datetime(2024, 1, 3), "weekly") == datetime(2024, 1, 10)
    assert compute_next(datetime(2024, 1, 3), "weekly", 3) == datetime(2024, 1, 24)


def test_weekly_anchor_finds_next_matching_day():
    # 2024-01-03 is a Wednesday
    assert compute_next(datetime(2024, 1, 3), "weekly", 1, anchor_day_of_week=MONDAY) == datetime(2024, 1, 8)
    assert compute_next(datetime(2024, 1, 3), "weekly", 1, anchor_day_of_week=SUNDAY) == datetime(2024, 1, 7)


def test_weekly_anchor_on_same_day_moves_a_full_week():
    assert compute_next(datetime(2024, 1, 3), "weekly", 1, anchor_day_of_week=WEDNESDAY) == datetime(2024, 1, 10)
    assert compute_next(datetime(2024, 1, 3), "weekly", 2, anchor_day_of_week=WEDNESDAY) == datetime(2024, 1, 17)


def test_weekly_anchor_with_interval_uses_every_nth_week():
    assert compute_next(datetime(2024, 1, 3), "weekly", 2, anchor_day_of_week=MONDAY) == datetime(2024, 1, 15)
    assert compute_next(datetime(2024, 1, 3), "weekly", 3, anchor_day_of_week=MONDAY) == datetime(2024, 1, 22)


def test_biweekly_ignores_anchor():
    assert compute_next(datetime(2024, 1, 3), "biweekly", 1, anchor_day_of_week=MONDAY) == datetime(2024, 1, 17)
    assert compute_next(datetime(2024, 1, 3), "biweekly", 2) == datetime(2024, 1, 31)


@pytest.mark.parametrize(
    "current,interval,anchor,expected",
    [
        (datetime(2023, 1, 31), 1, None, datetime(2023, 2, 28)),
        (datetime(2024, 1, 31), 1, None, datetime(2024, 2, 29)),
        (datetime(2024, 1, 31), 1, 31, datetime(2024, 2, 29)),
        (datetime(2024, 3, 31), 1, None, datetime(2024, 4, 30)),
        (datetime(2024, 4, 30), 1, 31, datetime(2024, 5, 31)),
        (datetime(2024, 5, 31), 1, None, datetime(2024, 6, 30)),
        (datetime(2023, 1, 29), 1, 29, datetime(2023, 2, 28)),
        (datetime(2023, 1, 30), 1, 30, datetime(2023, 2, 28)),
        (datetime(2024, 1, 30), 1, 30, datetime(2024, 2, 29)),
        (datetime(2024, 2, 29), 1, 31, datetime(2024, 3, 31)),
        (datetime(2024, 1, 15), 1, 1, datetime(2024, 2, 1)),
        (datetime(2024, 12, 15), 1, None, datetime(2025, 1, 15)),
        (datetime(2024, 11, 30), 3, None, datetime(2025, 2, 28)),
        (datetime(2024, 1, 31), 13, None, datetime(2025, 2, 28)),
        (datetime(2100, 1, 31), 1, None, datetime(2100, 2, 28)),
        (datetime(2000, 1, 31), 1, None, datetime(2000, 2, 29)),
    ],
)
def test_monthly_clamps_to_last_day_of_target_month(current, interval, anchor, expected):
    assert compute_next(current, "monthly", interval, anchor_day_of_month=anchor) == expected


@pytest.mark.parametrize(
    "current,interval,anchor,expected",
    [
        (datetime(2024, 1, 31), 1, None, datetime(2024, 4, 30)),
        (datetime(2024, 11, 30), 1, None, datetime(2025, 2, 28)),
        (datetime(2023, 11, 30), 1, None, datetime(2024, 2, 29)),
        (datetime(2024, 4, 30), 1, 31, datetime(2024, 7, 31)),
        (datetime(2024, 1, 31), 4, None, datetime(2025, 1, 31)),
        (datetime(2024, 10, 15), 2, 1, datetime(2025, 4, 1)),
    ],
)
def test_quarterly_advances_three_months_per_interval(current, interval, anchor, expected):
    assert compute_next(current, "quarterly", interval, anchor_day_of_month=anchor) == expected


def test_yearly_leap_day_clamps_in_common_year():
    assert compute_next(datetime(2024, 2, 29), "yearly") == datetime(2025, 2, 28)
    assert compute_next(datetime(2024, 2, 29), "yearly", 4) == datetime(2028, 2, 29)


def test_yearly_uses_anchor_month_and_day():
    assert compute_next(
        datetime(2023, 6, 1), "yearly", 1, anchor_day_of_month=29, anchor_month_of_year=2
    ) == datetime(2024, 2, 29)
    assert compute_next(
        datetime(2024, 6, 1), "yearly", 1, anchor_day_of_month=31, anchor_month_of_year=4
    ) == datetime(2025, 4, 30)
    assert compute_next(datetime(2024, 6, 1), "yearly", 2, anchor_month_of_year=1) == datetime(2026, 1, 1)


def test_time_of_day_is_preserved():
    assert compute_next(datetime(2024, 1, 31, 9, 30), "monthly") == datetime(2024, 2, 29, 9, 30)
    assert compute_next(datetime(2024, 1, 3, 17, 45), "weekly", 1, anchor_day_of_week=MONDAY) == datetime(
        2024, 1, 8, 17, 45
    )


def test_accepts_enum_members():
    assert compute_next(datetime(2024, 1, 1), RecurrencePattern.QUARTERLY) == datetime(2024, 4, 1)


def test_unrecognized_pattern_returns_none():
    assert compute_next(datetime(2024, 1, 1), "fortnightly") is None
    assert compute_next(datetime(2024, 1, 1), None) is None


def test_non_positive_interval_treated_as_one():
    assert compute_next(datetime(2024, 1, 1), "daily", 0) == datetime(2024, 1, 2)


@pytest.mark.parametrize(
    "pattern,interval,anchors",
    [
        ("daily", 1, {}),
        ("weekly", 1, {"anchor_day_of_week": MONDAY}),
        ("weekly", 2, {"anchor_day_of_week": SUNDAY}),
        ("biweekly", 1, {}),
        ("monthly", 1, {"anchor_day_of_month": 31}),
        ("monthly", 1, {"anchor_day_of_month": 1}),
        ("monthly", 5, {}),
        ("quarterly", 1, {"anchor_day_of_month": 30}),
        ("yearly", 1, {"anchor_day_of_month": 29, "anchor_month_of_year": 2}),
        ("yearly", 1, {"anchor_month_of_year": 1}),
    ],
)
def test_successive_occurrences_strictly_increase(pattern, interval, anchors):
    current = datetime(2023, 12, 31, 8, 0)
    for _ in range(60):
        following = compute_next(current, pattern, interval, **anchors)
        assert following > current
        current = following
