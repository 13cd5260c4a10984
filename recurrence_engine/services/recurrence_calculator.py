"""
Recurrence Calculator.

Computes the successor of a scheduling instant for a recurrence rule.
Arithmetic is calendar based at day granularity; time of day is kept.
"""

import calendar
from datetime import datetime, timedelta
from typing import Optional, Union

from recurrence_engine.models.recurrence_pattern import RecurrencePattern


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def sunday_based_weekday(value: datetime) -> int:
    """Day of week with 0=Sunday .. 6=Saturday."""
    return (value.weekday() + 1) % 7


def _add_months(current: datetime, months: int, anchor_day_of_month: Optional[int]) -> datetime:
    month_index = current.month - 1 + months
    year = current.year + month_index // 12
    month = month_index % 12 + 1
    day = min(anchor_day_of_month or current.day, days_in_month(year, month))
    return current.replace(year=year, month=month, day=day)


def _next_weekly(current: datetime, interval: int, anchor_day_of_week: Optional[int]) -> datetime:
    if anchor_day_of_week is None:
        return current + timedelta(weeks=interval)

    days_until = (anchor_day_of_week - sunday_based_weekday(current)) % 7
    if days_until == 0:
        days_until = 7
    return current + timedelta(days=days_until + 7 * (interval - 1))


def compute_next(
    current: datetime,
    pattern: Union[RecurrencePattern, str],
    interval: int = 1,
    anchor_day_of_week: Optional[int] = None,
    anchor_day_of_month: Optional[int] = None,
    anchor_month_of_year: Optional[int] = None,
) -> Optional[datetime]:
    """
    Calculate the next occurrence after current.

    Args:
        current: Instant being resolved
        pattern: Recurrence pattern (enum member or its string value)
        interval: Repeat every N pattern units
        anchor_day_of_week: 0=Sunday .. 6=Saturday, weekly only
        anchor_day_of_month: 1-31, clamped to the target month's length
        anchor_month_of_year: 1-12, yearly only

    Returns:
        Next instant, or None for an unrecognized pattern
    """
    pattern = RecurrencePattern.parse(pattern)
    if pattern is None:
        return None

    interval = max(interval or 1, 1)

    if pattern is RecurrencePattern.DAILY:
        return current + timedelta(days=interval)
    elif pattern is RecurrencePattern.WEEKLY:
        return _next_weekly(current, interval, anchor_day_of_week)
    elif pattern is RecurrencePattern.BIWEEKLY:
        return current + timedelta(weeks=2 * interval)
    elif pattern is RecurrencePattern.MONTHLY:
        return _add_months(current, interval, anchor_day_of_month)
    elif pattern is RecurrencePattern.QUARTERLY:
        return _add_months(current, 3 * interval, anchor_day_of_month)
    elif pattern is RecurrencePattern.YEARLY:
        year = current.year + interval
        month = anchor_month_of_year or current.month
        day = min(anchor_day_of_month or current.day, days_in_month(year, month))
        return current.replace(year=year, month=month, day=day)

    raise AssertionError(f"Unhandled recurrence pattern: {pattern!r}")
