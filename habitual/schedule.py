import logging
from datetime import date

from .core.models import Task
from .lib.recurrence import next_for

__all__ = ["advance", "next_due_date"]

logger = logging.getLogger(__name__)

NEXT_DUE_MAX_STEPS = 400


def advance(task: Task, today: date) -> date:
    """Move the task's deadline forward until it is no longer before ``today``.

    If the pattern stops producing dates, the last computable date is returned
    even though it is still in the past.
    """
    if task.deadline is None:
        raise ValueError("cannot advance a task without a deadline")
    cursor = task.deadline
    while cursor < today:
        nxt = next_for(task, cursor)
        if nxt is None:
            logger.warning(
                "habit %s has unusable pattern %r; deadline stuck at %s",
                task.id,
                task.recurring_pattern,
                cursor.isoformat(),
            )
            break
        cursor = nxt
    return cursor


def next_due_date(task: Task, today: date) -> date | None:
    """Deadline for the instance that follows a completion.

    Always steps at least once past the current deadline (or today when the
    task has none), then skips any dates already behind ``today``.
    """
    cursor = task.deadline or today
    for _ in range(NEXT_DUE_MAX_STEPS):
        nxt = next_for(task, cursor)
        if nxt is None:
            return None
        cursor = nxt
        if cursor >= today:
            break
    return cursor
