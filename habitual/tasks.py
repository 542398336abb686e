import logging
import sqlite3
import uuid
from collections.abc import Iterable
from datetime import date, datetime, time

from dateutil.relativedelta import relativedelta
from fncli import UsageError, cli

from . import db
from .core.errors import NotFoundError, StateError, ValidationError
from .core.models import Task
from .core.types import Pattern, Priority
from .lib import clock
from .lib.converters import format_days, row_to_task
from .lib.dates import parse_weekdays, require_date
from .lib.errors import echo
from .lib.fuzzy import find_in_pool
from .schedule import next_due_date

__all__ = [
    "TASK_COLS",
    "add_task",
    "complete_task",
    "fetch_tasks",
    "find_task",
    "get_all_tasks",
    "get_recurring_roots",
    "get_task",
    "log_time",
    "resolve_task",
]

logger = logging.getLogger(__name__)

# ── domain ───────────────────────────────────────────────────────────────────

TASK_COLS = (
    "id, content, created, done, completed_at, deadline, priority, category, "
    "time_spent_minutes, is_recurring, recurring_pattern, recurring_interval, "
    "recurring_days, recurring_start_date, parent_recurring_id, current_streak, "
    "longest_streak, total_missed, total_completed, last_completed_date"
)

# Days of slack allowed on top of the pattern's gap before a streak restarts.
STREAK_TOLERANCE_DAYS = 1

# Keeps every schedule step inside the representable calendar.
MAX_INTERVAL = 3650

_DAYS_PER_STEP = {
    Pattern.DAILY: 1,
    Pattern.WEEKLY: 7,
}


def fetch_tasks(
    conn: sqlite3.Connection, where: str, params: tuple[object, ...] = ()
) -> list[Task]:
    cursor = conn.execute(f"SELECT {TASK_COLS} FROM tasks WHERE {where}", params)  # noqa: S608
    return [row_to_task(row) for row in cursor.fetchall()]


def _fetch_one(conn: sqlite3.Connection, task_id: str) -> Task | None:
    found = fetch_tasks(conn, "id = ?", (task_id,))
    return found[0] if found else None


def _validate_recurrence(
    pattern: str | None, interval: int, days: Iterable[int] | None
) -> Pattern | None:
    if pattern is None:
        if days:
            raise ValidationError("weekdays given without a recurrence pattern")
        return None
    parsed = Pattern.parse(pattern.lower())
    if parsed is None:
        choices = ", ".join(p.value for p in Pattern)
        raise ValidationError(f"unknown pattern '{pattern}' - use one of {choices}")
    if not 1 <= interval <= MAX_INTERVAL:
        raise ValidationError(f"interval must be between 1 and {MAX_INTERVAL}, got {interval}")
    bad = [d for d in days or () if not 0 <= d <= 6]
    if bad:
        raise ValidationError(f"weekdays must be 0 (Sunday) to 6 (Saturday), got {bad}")
    if days and parsed is not Pattern.WEEKLY:
        raise ValidationError("weekdays only apply to the weekly pattern")
    return parsed


def _insert(conn: sqlite3.Connection, task_id: str, fields: dict[str, object]) -> None:
    cols = ["id", *fields]
    placeholders = ", ".join("?" * len(cols))
    try:
        conn.execute(
            f"INSERT INTO tasks ({', '.join(cols)}) VALUES ({placeholders})",  # noqa: S608
            (task_id, *fields.values()),
        )
    except sqlite3.IntegrityError as e:
        raise ValidationError(f"Failed to add task: {e}") from e


def add_task(
    content: str,
    deadline: date | None = None,
    priority: str | None = None,
    category: str | None = None,
    created: datetime | None = None,
    pattern: str | None = None,
    interval: int = 1,
    days: Iterable[int] | None = None,
    start_date: date | None = None,
    parent_recurring_id: str | None = None,
) -> str:
    if not content or not content.strip():
        raise ValidationError("content cannot be empty")
    if priority is not None and priority not in {p.value for p in Priority}:
        raise ValidationError(f"unknown priority '{priority}'")
    day_list = list(days or ())
    recurring = _validate_recurrence(pattern, interval, day_list)

    task_id = str(uuid.uuid4())
    start = start_date or deadline
    with db.get_db() as conn:
        _insert(
            conn,
            task_id,
            {
                "content": content.strip(),
                "created": (created or clock.now()).isoformat(),
                "deadline": deadline.isoformat() if deadline else None,
                "priority": priority,
                "category": category,
                "is_recurring": int(recurring is not None),
                "recurring_pattern": recurring.value if recurring else None,
                "recurring_interval": interval,
                "recurring_days": format_days(day_list),
                "recurring_start_date": start.isoformat() if recurring and start else None,
                "parent_recurring_id": parent_recurring_id,
            },
        )
    return task_id


def get_task(task_id: str) -> Task | None:
    with db.get_db() as conn:
        return _fetch_one(conn, task_id)


def get_all_tasks() -> list[Task]:
    with db.get_db() as conn:
        return fetch_tasks(conn, "1 = 1 ORDER BY created")


def get_recurring_roots() -> list[Task]:
    with db.get_db() as conn:
        return fetch_tasks(conn, "is_recurring = 1 AND parent_recurring_id IS NULL ORDER BY created")


def log_time(task_id: str, minutes: int) -> Task:
    if minutes <= 0:
        raise ValidationError("minutes must be positive")
    with db.get_db() as conn:
        conn.execute(
            "UPDATE tasks SET time_spent_minutes = time_spent_minutes + ? WHERE id = ?",
            (minutes, task_id),
        )
        task = _fetch_one(conn, task_id)
    if task is None:
        raise NotFoundError(f"No task found with id {task_id}")
    return task


def _expected_gap(pattern: Pattern | None, interval: int, since: date) -> int:
    if pattern is Pattern.MONTHLY:
        return (since + relativedelta(months=interval) - since).days
    return _DAYS_PER_STEP.get(pattern, 1) * interval if pattern else interval


def _continued_streak(root: Task, pattern: Pattern | None, interval: int, on: date) -> int:
    if root.last_completed_date is None:
        return 1
    gap = (on - root.last_completed_date).days
    expected = _expected_gap(pattern, interval, root.last_completed_date)
    if gap <= expected + STREAK_TOLERANCE_DAYS:
        return root.current_streak + 1
    return 1


def complete_task(task_id: str, on: date | None = None, skip_next: bool = False) -> Task | None:
    """Mark a task done. Recurring instances roll the root's stats and schedule the next instance.

    Returns the next instance when one was created, otherwise the completed task.
    """
    today = on or clock.today()
    completed_at = datetime.combine(on, time(23, 59, 59)) if on else clock.now()

    with db.get_db(immediate=True) as conn:
        task = _fetch_one(conn, task_id)
        if task is None:
            return None
        if task.done:
            raise StateError(f"'{task.content}' is already done")

        conn.execute(
            "UPDATE tasks SET done = 1, completed_at = ? WHERE id = ?",
            (completed_at.isoformat(), task_id),
        )
        if not task.is_recurring:
            return _fetch_one(conn, task_id)

        root_id = task.root_id
        root = _fetch_one(conn, root_id) if root_id != task.id else task
        if root is None:
            logger.info("task %s points at deleted root %s; promoting to root", task.id, root_id)
            conn.execute("UPDATE tasks SET parent_recurring_id = NULL WHERE id = ?", (task.id,))
            root_id, root = task.id, task

        streak = _continued_streak(
            root, Pattern.parse(task.recurring_pattern), task.recurring_interval, today
        )
        conn.execute(
            """
            UPDATE tasks
            SET current_streak = ?,
                longest_streak = MAX(longest_streak, ?),
                total_completed = total_completed + 1,
                last_completed_date = ?
            WHERE id = ?""",
            (streak, streak, today.isoformat(), root_id),
        )

        if skip_next:
            return _fetch_one(conn, task_id)

        conn.execute(
            "DELETE FROM tasks WHERE parent_recurring_id = ? AND done = 0 AND id != ? AND deadline < ?",
            (root_id, task_id, today.isoformat()),
        )

        next_deadline = next_due_date(task, today)
        if next_deadline is None:
            return _fetch_one(conn, task_id)

        next_id = str(uuid.uuid4())
        start = root.recurring_start_date or task.deadline
        _insert(
            conn,
            next_id,
            {
                "content": task.content,
                "created": completed_at.isoformat(),
                "deadline": next_deadline.isoformat(),
                "priority": task.priority,
                "category": task.category,
                "is_recurring": 1,
                "recurring_pattern": task.recurring_pattern,
                "recurring_interval": task.recurring_interval,
                "recurring_days": format_days(task.recurring_days),
                "recurring_start_date": start.isoformat() if start else None,
                "parent_recurring_id": root_id,
            },
        )
        return _fetch_one(conn, next_id)


def find_task(ref: str) -> Task | None:
    live = [t for t in get_all_tasks() if not t.done]
    return find_in_pool(ref, live) or find_in_pool(ref, get_recurring_roots())


def resolve_task(ref: str) -> Task:
    task = find_task(ref)
    if task is None:
        raise NotFoundError(f"No task found for '{ref}'")
    return task


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("habitual")
def add(
    content: str,
    pattern: str | None = None,
    interval: int = 1,
    days: str | None = None,
    due: str | None = None,
    priority: str | None = None,
    category: str | None = None,
) -> None:
    """Add a task; --pattern daily|weekly|monthly|custom makes it a habit"""
    if not content.strip():
        raise UsageError("Usage: habitual add <content>")
    deadline = require_date(due) if due else (clock.today() if pattern else None)
    task_id = add_task(
        content,
        deadline=deadline,
        priority=priority,
        category=category,
        pattern=pattern,
        interval=interval,
        days=parse_weekdays(days) if days else None,
    )
    echo(f"added: {content} [{task_id[:8]}]")


@cli("habitual")
def done(ref: str) -> None:
    """Complete a task or the current instance of a habit"""
    task = resolve_task(ref)
    result = complete_task(task.id)
    if result and result.id != task.id and result.deadline:
        echo(f"✓ {task.content}  next {result.deadline.isoformat()}")
    else:
        echo(f"✓ {task.content}")


@cli("habitual")
def log(ref: str, minutes: int) -> None:
    """Log minutes spent on a task"""
    task = log_time(resolve_task(ref).id, minutes)
    echo(f"{task.content}  {task.time_spent_minutes}m total")
