from collections.abc import Iterator
from datetime import date
from itertools import islice, takewhile

from .core.models import Task
from .lib.recurrence import next_for

__all__ = ["MAX_MISSED_DATES", "iter_occurrences", "missed_dates"]

# A habit left unresolved for years reports at most this many misses.
MAX_MISSED_DATES = 365


def iter_occurrences(task: Task, start: date) -> Iterator[date]:
    """Yield ``start`` and every following scheduled date. Stops early on a malformed pattern."""
    cursor: date | None = start
    while cursor is not None:
        yield cursor
        cursor = next_for(task, cursor)


def missed_dates(task: Task, start: date, horizon: date) -> list[date]:
    """Scheduled dates in ``[start, horizon)``, oldest first, capped at MAX_MISSED_DATES."""
    due = takewhile(lambda d: d < horizon, iter_occurrences(task, start))
    return list(islice(due, MAX_MISSED_DATES))
