"""Missed-occurrence detection.

A habit's deadline is the earliest date whose outcome is still open. Once
"today" passes it, every scheduled date in ``[deadline, today)`` is written to
the ledger under the root habit, the deadline is moved forward to today or
later, and the root's miss counter and streak are patched. All of that
happens inside a single ``BEGIN IMMEDIATE`` transaction per habit, so two
runs racing on the same habit serialize and the loser finds nothing new.
"""

import dataclasses
import json as _json
import logging
import sqlite3
from datetime import date

from fncli import cli

from . import db, ledger
from .core.errors import StateError
from .core.models import Task
from .core.types import Pattern
from .lib import clock
from .lib.errors import echo
from .occurrences import missed_dates
from .schedule import advance
from .tasks import fetch_tasks, resolve_task

__all__ = [
    "DetectionResult",
    "SweepResult",
    "check_all_missed_recurring",
    "detect_and_log_missed",
]

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class DetectionResult:
    missed_count: int = 0
    new_deadline: date | None = None
    missed_dates: tuple[date, ...] = ()
    stuck: bool = False


@dataclasses.dataclass(frozen=True)
class SweepResult:
    processed: int = 0
    total_new_misses: int = 0
    failed: tuple[str, ...] = ()


def _is_overdue(task: Task | None, today: date) -> bool:
    if task is None or not task.is_recurring or task.done or task.deadline is None:
        return False
    return task.deadline < today


def _count_misses(conn: sqlite3.Connection, target_id: str, count: int) -> int:
    cursor = conn.execute(
        """
        UPDATE tasks
        SET total_missed = total_missed + ?,
            current_streak = CASE WHEN ? > 0 THEN 0 ELSE current_streak END
        WHERE id = ?""",
        (count, count, target_id),
    )
    return cursor.rowcount


def _load(conn: sqlite3.Connection, task_id: str) -> Task | None:
    found = fetch_tasks(conn, "id = ?", (task_id,))
    return found[0] if found else None


def _resolve(conn: sqlite3.Connection, task: Task, today: date) -> DetectionResult:
    if task.deadline is None:
        raise StateError(f"habit {task.id} has no deadline to detect from")
    root_id = task.root_id
    pattern = task.recurring_pattern or Pattern.DAILY.value

    already = ledger.logged_dates(conn, root_id)
    candidates = [d for d in missed_dates(task, task.deadline, today) if d not in already]
    new_dates = ledger.append_many(conn, root_id, candidates, pattern, task.content)

    new_deadline = advance(task, today)
    stuck = new_deadline < today

    conn.execute(
        "UPDATE tasks SET deadline = ? WHERE id = ?", (new_deadline.isoformat(), task.id)
    )
    if _count_misses(conn, root_id, len(new_dates)) == 0 and root_id != task.id:
        logger.warning("root %s of habit %s is gone; counting misses on the instance", root_id, task.id)
        _count_misses(conn, task.id, len(new_dates))

    if new_dates:
        logger.info(
            "habit %s (%s): %d new misses, deadline %s -> %s",
            task.id,
            task.content,
            len(new_dates),
            task.deadline.isoformat(),
            new_deadline.isoformat(),
        )
    return DetectionResult(
        missed_count=len(new_dates),
        new_deadline=new_deadline,
        missed_dates=tuple(new_dates),
        stuck=stuck,
    )


def _detect_one(task_id: str, today: date) -> DetectionResult:
    with db.get_db(immediate=True) as conn:
        task = _load(conn, task_id)
        if task is None or not _is_overdue(task, today):
            return DetectionResult()
        return _resolve(conn, task, today)


def detect_and_log_missed(task_id: str, today: date | None = None) -> DetectionResult:
    """Log every elapsed, unresolved occurrence of one habit and advance its deadline.

    Missing, non-recurring, finished or deadline-less tasks are a no-op, as is a
    deadline that has not passed yet. Storage errors propagate.
    """
    today = today or clock.today()
    with db.get_db() as conn:
        task = _load(conn, task_id)
    if not _is_overdue(task, today):
        return DetectionResult()
    return _detect_one(task_id, today)


def _overdue_ids(today: date) -> list[str]:
    with db.get_db() as conn:
        rows = conn.execute(
            """
            SELECT id FROM tasks
            WHERE is_recurring = 1 AND done = 0 AND deadline IS NOT NULL AND deadline < ?
            ORDER BY deadline""",
            (today.isoformat(),),
        ).fetchall()
    return [r[0] for r in rows]


def check_all_missed_recurring(today: date | None = None) -> SweepResult:
    """Run detection for every live habit whose deadline has passed.

    Each habit commits on its own; a failure on one is logged and skipped.
    """
    today = today or clock.today()
    processed = 0
    total_new = 0
    failed: list[str] = []

    for task_id in _overdue_ids(today):
        try:
            result = _detect_one(task_id, today)
        except (sqlite3.Error, ValueError, ArithmeticError):
            logger.exception("missed detection failed for habit %s", task_id)
            failed.append(task_id)
            continue
        processed += 1
        total_new += result.missed_count

    logger.info(
        "sweep %s: %d processed, %d new misses, %d failed",
        today.isoformat(),
        processed,
        total_new,
        len(failed),
    )
    return SweepResult(processed=processed, total_new_misses=total_new, failed=tuple(failed))


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("habitual")
def detect(ref: str, json: bool = False) -> None:
    """Log missed occurrences for one habit"""
    task = resolve_task(ref)
    result = detect_and_log_missed(task.id)
    if json:
        print(_json.dumps(dataclasses.asdict(result), default=str))
        return
    if result.new_deadline is None:
        echo(f"{task.content}: nothing elapsed")
        return
    echo(f"{task.content}: {result.missed_count} missed, next {result.new_deadline.isoformat()}")
    if result.stuck:
        echo(f"  ! deadline stuck at {result.new_deadline.isoformat()} (pattern unusable)")


@cli("habitual")
def sweep(json: bool = False) -> None:
    """Log missed occurrences for all habits"""
    result = check_all_missed_recurring()
    if json:
        print(_json.dumps(dataclasses.asdict(result)))
        return
    echo(f"processed {result.processed}, {result.total_new_misses} new misses")
    for task_id in result.failed:
        echo(f"  ! failed: {task_id[:8]}")
