"""Calendar arithmetic for recurring schedules.

All dates are plain calendar dates (UTC midnight); nothing here looks at the
time of day. Weekdays use a Sunday-first index: 0 = Sunday … 6 = Saturday.
"""

from collections.abc import Iterable
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from ..core.models import Task
from ..core.types import Pattern

__all__ = [
    "add_days",
    "next_for",
    "next_occurrence_after",
    "weekday_index",
]


def add_days(d: date, n: int) -> date:
    return d + timedelta(days=n)


def weekday_index(d: date) -> int:
    return d.isoweekday() % 7


def _next_weekday(days: Iterable[int], cursor: date) -> date:
    ordered = sorted({d for d in days if 0 <= d <= 6})
    if not ordered:
        return add_days(cursor, 7)
    dow = weekday_index(cursor)
    later = next((d for d in ordered if d > dow), None)
    if later is not None:
        return add_days(cursor, later - dow)
    return add_days(cursor, 7 - dow + ordered[0])


def next_occurrence_after(
    pattern: str | Pattern | None,
    interval: int | None,
    recurring_days: Iterable[int] | None,
    cursor: date,
) -> date | None:
    """First scheduled date strictly after ``cursor``, or None for an unusable pattern.

    Monthly keeps the day of month and clamps to the last day of shorter
    months (Jan 31 -> Feb 29 -> Mar 29). A step past the end of the
    calendar also yields None.
    """
    step = interval if interval and interval > 0 else 1
    try:
        match Pattern.parse(pattern):
            case Pattern.DAILY:
                return add_days(cursor, 1)
            case Pattern.WEEKLY:
                return _next_weekday(recurring_days or (), cursor)
            case Pattern.MONTHLY:
                return cursor + relativedelta(months=step)
            case Pattern.CUSTOM:
                return add_days(cursor, step)
            case _:
                return None
    except (OverflowError, ValueError):
        return None


def next_for(task: Task, cursor: date) -> date | None:
    return next_occurrence_after(
        task.recurring_pattern, task.recurring_interval, task.recurring_days, cursor
    )
