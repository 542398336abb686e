"""Per-habit compliance: counters, completion rate and a 30-day history strip."""

import dataclasses
import json as _json
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, timedelta
from enum import StrEnum

from fncli import cli

from . import db
from .core.models import MissedLog, Task
from .core.types import Pattern
from .ledger import get_all_missed_logs, get_missed_logs
from .lib import clock
from .lib.errors import echo
from .lib.scores import percent
from .tasks import fetch_tasks, get_task, resolve_task

__all__ = [
    "DayState",
    "DayStatus",
    "HISTORY_DAYS",
    "RecurringStats",
    "get_all_recurring_stats",
    "get_recurring_stats",
]

HISTORY_DAYS = 30


class DayState(StrEnum):
    COMPLETED = "completed"
    MISSED = "missed"
    NONE = "none"


@dataclasses.dataclass(frozen=True)
class DayStatus:
    day: date
    status: DayState


@dataclasses.dataclass(frozen=True)
class RecurringStats:
    recurring_root_id: str
    task_text: str
    pattern: str
    recurring_days: tuple[int, ...]
    recurring_interval: int
    current_streak: int
    longest_streak: int
    total_missed: int
    total_completed: int
    completion_rate: int
    last_completed_date: date | None
    deadline: date | None
    history: tuple[DayStatus, ...]
    missed_logs: tuple[MissedLog, ...]


def build_history(
    start: date | None, missed: set[date], today: date, days: int = HISTORY_DAYS
) -> tuple[DayStatus, ...]:
    """Classify each of the last ``days`` dates, oldest first.

    Without a per-occurrence completion log, any active day that is not a
    logged miss counts as completed.
    """
    history = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        if day in missed:
            state = DayState.MISSED
        elif start is not None and start <= day < today:
            state = DayState.COMPLETED
        else:
            state = DayState.NONE
        history.append(DayStatus(day, state))
    return tuple(history)


def _current_deadline(root: Task, chain: Iterable[Task]) -> date | None:
    live = [t.deadline for t in chain if not t.done and t.deadline is not None]
    return min(live) if live else root.deadline


def _build(root: Task, chain: list[Task], logs: list[MissedLog], today: date) -> RecurringStats:
    start = root.recurring_start_date or root.deadline
    missed = {log.missed_date for log in logs}
    return RecurringStats(
        recurring_root_id=root.id,
        task_text=root.content,
        pattern=root.recurring_pattern or Pattern.DAILY.value,
        recurring_days=root.recurring_days,
        recurring_interval=root.recurring_interval,
        current_streak=root.current_streak,
        longest_streak=root.longest_streak,
        total_missed=root.total_missed,
        total_completed=root.total_completed,
        completion_rate=percent(root.total_completed, root.total_completed + root.total_missed),
        last_completed_date=root.last_completed_date,
        deadline=_current_deadline(root, chain),
        history=build_history(start, missed, today),
        missed_logs=tuple(sorted(logs, key=lambda log: log.missed_date, reverse=True)),
    )


def _chain(root_id: str) -> list[Task]:
    with db.get_db() as conn:
        return fetch_tasks(conn, "id = ? OR parent_recurring_id = ?", (root_id, root_id))


def get_recurring_stats(root_id: str, today: date | None = None) -> RecurringStats | None:
    """Stats for one recurring habit. An instance id resolves to its root."""
    today = today or clock.today()
    task = get_task(root_id)
    if task is None or not task.is_recurring:
        return None
    root = get_task(task.root_id) or task
    return _build(root, _chain(root.id), get_missed_logs(root.id), today)


def get_all_recurring_stats(today: date | None = None) -> list[RecurringStats]:
    """Stats for every root habit, worst completion rate first."""
    today = today or clock.today()
    with db.get_db() as conn:
        recurring = fetch_tasks(conn, "is_recurring = 1")
    chains: dict[str, list[Task]] = defaultdict(list)
    for task in recurring:
        chains[task.root_id].append(task)
    logs: dict[str, list[MissedLog]] = defaultdict(list)
    for log in get_all_missed_logs():
        logs[log.recurring_root_id].append(log)

    roots = [t for t in recurring if t.parent_recurring_id is None]
    stats = [_build(root, chains[root.id], logs[root.id], today) for root in roots]
    return sorted(stats, key=lambda s: s.completion_rate)


_STRIP = {DayState.COMPLETED: "●", DayState.MISSED: "✗", DayState.NONE: "·"}


def _render(s: RecurringStats) -> str:
    strip = "".join(_STRIP[d.status] for d in s.history)
    due = s.deadline.isoformat() if s.deadline else "-"
    return (
        f"{s.task_text} [{s.recurring_root_id[:8]}]  {s.pattern}\n"
        f"  {strip}\n"
        f"  rate {s.completion_rate}%  streak {s.current_streak} (best {s.longest_streak})"
        f"  done {s.total_completed}  missed {s.total_missed}  due {due}"
    )


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("habitual")
def habit(ref: str, json: bool = False) -> None:
    """Compliance stats for one habit"""
    stats = get_recurring_stats(resolve_task(ref).id)
    if stats is None:
        echo(f"'{ref}' is not a habit")
        return
    if json:
        print(_json.dumps(dataclasses.asdict(stats), default=str))
        return
    echo(_render(stats))


@cli("habitual")
def habits(json: bool = False) -> None:
    """Compliance stats for all habits, worst first"""
    all_stats = get_all_recurring_stats()
    if json:
        print(_json.dumps([dataclasses.asdict(s) for s in all_stats], default=str))
        return
    if not all_stats:
        echo("no habits")
        return
    for s in all_stats:
        echo(_render(s))
