import dataclasses
from datetime import date, datetime, timedelta

import pytest

from habitual.core.models import Task
from habitual.occurrences import MAX_MISSED_DATES, missed_dates
from habitual.schedule import advance, next_due_date


def _habit(**overrides) -> Task:
    base = Task(
        id="h1",
        content="stretch",
        created=datetime(2024, 1, 1),
        is_recurring=True,
        recurring_pattern="daily",
        deadline=date(2024, 1, 1),
    )
    return dataclasses.replace(base, **overrides)


def test_daily_missed_dates_exclude_horizon():
    result = missed_dates(_habit(), date(2024, 1, 1), date(2024, 1, 5))
    assert result == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3), date(2024, 1, 4)]


def test_start_on_horizon_is_empty():
    assert missed_dates(_habit(), date(2024, 1, 5), date(2024, 1, 5)) == []


def test_weekly_days_enumeration():
    habit = _habit(recurring_pattern="weekly", recurring_days=(1, 3))
    result = missed_dates(habit, date(2024, 1, 1), date(2024, 1, 15))
    assert result == [
        date(2024, 1, 1),
        date(2024, 1, 3),
        date(2024, 1, 8),
        date(2024, 1, 10),
    ]


def test_enumeration_is_capped():
    today = date(2024, 6, 1)
    start = today - timedelta(days=400)
    result = missed_dates(_habit(deadline=start), start, today)
    assert len(result) == MAX_MISSED_DATES == 365
    assert result[0] == start
    assert result[-1] == start + timedelta(days=364)


def test_malformed_pattern_returns_partial():
    habit = _habit(recurring_pattern="fortnightly")
    assert missed_dates(habit, date(2024, 1, 1), date(2024, 1, 10)) == [date(2024, 1, 1)]


def test_enumeration_is_restartable():
    habit = _habit(recurring_pattern="custom", recurring_interval=2)
    first = missed_dates(habit, date(2024, 1, 1), date(2024, 1, 10))
    assert first == missed_dates(habit, date(2024, 1, 1), date(2024, 1, 10))
    assert first == [date(2024, 1, d) for d in (1, 3, 5, 7, 9)]


def test_advance_lands_on_today():
    assert advance(_habit(), date(2024, 1, 5)) == date(2024, 1, 5)


def test_advance_lands_after_today_for_sparse_pattern():
    habit = _habit(recurring_pattern="weekly", deadline=date(2024, 1, 1))
    assert advance(habit, date(2024, 1, 10)) == date(2024, 1, 15)


def test_advance_leaves_future_deadline_alone():
    assert advance(_habit(deadline=date(2024, 2, 1)), date(2024, 1, 5)) == date(2024, 2, 1)


def test_advance_stops_on_malformed_pattern():
    habit = _habit(recurring_pattern=None)
    assert advance(habit, date(2024, 1, 5)) == date(2024, 1, 1)


def test_advance_requires_deadline():
    with pytest.raises(ValueError):
        advance(_habit(deadline=None), date(2024, 1, 5))


def test_next_due_steps_past_future_deadline():
    habit = _habit(deadline=date(2024, 1, 10))
    assert next_due_date(habit, date(2024, 1, 5)) == date(2024, 1, 11)


def test_next_due_skips_elapsed_dates():
    habit = _habit(deadline=date(2024, 1, 1))
    assert next_due_date(habit, date(2024, 1, 5)) == date(2024, 1, 5)


def test_next_due_none_for_malformed_pattern():
    assert next_due_date(_habit(recurring_pattern="yearly"), date(2024, 1, 5)) is None
