import dataclasses
import json as _json
from datetime import date, datetime, timedelta

from fncli import cli

from .core.models import Task
from .core.types import Pattern, Priority
from .lib import clock
from .lib.errors import echo
from .tasks import get_all_tasks

__all__ = [
    "MissedAnalysis",
    "NeverStartedTask",
    "OverdueTask",
    "SkippedRecurring",
    "get_missed_tasks_analysis",
]

NEVER_STARTED_AFTER = timedelta(days=7)
NO_PRIORITY = "none"

_WINDOW_DAYS = {
    Pattern.DAILY: 1,
    Pattern.WEEKLY: 7,
    Pattern.MONTHLY: 30,
}
_DEFAULT_WINDOW_DAYS = 7


@dataclasses.dataclass(frozen=True)
class OverdueTask:
    id: str
    text: str
    deadline: date
    days_overdue: int
    priority: str
    category: str


@dataclasses.dataclass(frozen=True)
class NeverStartedTask:
    id: str
    text: str
    created_days_ago: int
    priority: str
    category: str


@dataclasses.dataclass(frozen=True)
class SkippedRecurring:
    id: str
    text: str
    recurring_pattern: str
    recurring_interval: int
    last_completed_at: date | None
    days_since_last_completion: int | None
    priority: str
    category: str


@dataclasses.dataclass(frozen=True)
class MissedSummary:
    total_missed: int
    critical_missed: int
    recurring_missed: int
    overdue_count: int
    never_started_count: int


@dataclasses.dataclass(frozen=True)
class MissedAnalysis:
    overdue_tasks: list[OverdueTask]
    never_started_tasks: list[NeverStartedTask]
    skipped_recurring: list[SkippedRecurring]
    summary: MissedSummary


def pattern_window(pattern: str | None, interval: int) -> timedelta:
    """How long a recurring task may go without a completion before it counts as skipped."""
    parsed = Pattern.parse(pattern)
    if parsed in _WINDOW_DAYS:
        return timedelta(days=_WINDOW_DAYS[parsed] * (interval or 1))
    return timedelta(days=_DEFAULT_WINDOW_DAYS)


def _overdue(tasks: list[Task], today: date) -> list[OverdueTask]:
    found = [
        OverdueTask(
            id=t.id,
            text=t.content,
            deadline=t.deadline,
            days_overdue=(today - t.deadline).days,
            priority=t.priority or NO_PRIORITY,
            category=t.category_name,
        )
        for t in tasks
        if not t.done and t.deadline is not None and t.deadline < today
    ]
    return sorted(found, key=lambda o: o.days_overdue, reverse=True)


def _never_started(tasks: list[Task], now: datetime) -> list[NeverStartedTask]:
    found = [
        NeverStartedTask(
            id=t.id,
            text=t.content,
            created_days_ago=(now - t.created).days,
            priority=t.priority or NO_PRIORITY,
            category=t.category_name,
        )
        for t in tasks
        if not t.done and now - t.created > NEVER_STARTED_AFTER and t.time_spent_minutes <= 0
    ]
    return sorted(found, key=lambda n: n.created_days_ago, reverse=True)


def _last_completions(tasks: list[Task]) -> dict[str, datetime]:
    """Latest completion per recurring chain, keyed by root id."""
    last: dict[str, datetime] = {}
    for t in tasks:
        if not (t.done and t.is_recurring):
            continue
        finished = t.completed_at or t.created
        if t.root_id not in last or finished > last[t.root_id]:
            last[t.root_id] = finished
    return last


def _skipped(tasks: list[Task], now: datetime) -> list[SkippedRecurring]:
    last = _last_completions(tasks)
    found = []
    for t in tasks:
        if not t.is_recurring or t.done:
            continue
        latest = last.get(t.root_id)
        if latest is not None and now - latest <= pattern_window(
            t.recurring_pattern, t.recurring_interval
        ):
            continue
        found.append(
            SkippedRecurring(
                id=t.id,
                text=t.content,
                recurring_pattern=t.recurring_pattern or Pattern.CUSTOM.value,
                recurring_interval=t.recurring_interval,
                last_completed_at=latest.date() if latest else None,
                days_since_last_completion=(now - latest).days if latest else None,
                priority=t.priority or NO_PRIORITY,
                category=t.category_name,
            )
        )
    # Never-completed chains sort first.
    return sorted(
        found,
        key=lambda s: (
            s.days_since_last_completion is not None,
            -(s.days_since_last_completion or 0),
        ),
    )


def get_missed_tasks_analysis(now: datetime | None = None) -> MissedAnalysis:
    """Overdue, never-started and skipped-recurring tasks, each computed independently."""
    now = now or clock.now()
    tasks = get_all_tasks()
    overdue = _overdue(tasks, now.date())
    never_started = _never_started(tasks, now)
    skipped = _skipped(tasks, now)
    return MissedAnalysis(
        overdue_tasks=overdue,
        never_started_tasks=never_started,
        skipped_recurring=skipped,
        summary=MissedSummary(
            total_missed=len(overdue) + len(never_started) + len(skipped),
            critical_missed=sum(1 for o in overdue if o.priority == Priority.HIGH),
            recurring_missed=len(skipped),
            overdue_count=len(overdue),
            never_started_count=len(never_started),
        ),
    )


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("habitual")
def triage(json: bool = False) -> None:
    """Overdue, never-started and skipped-recurring tasks"""
    analysis = get_missed_tasks_analysis()
    if json:
        print(_json.dumps(dataclasses.asdict(analysis), default=str))
        return
    s = analysis.summary
    echo(f"missed {s.total_missed}  critical {s.critical_missed}")
    for o in analysis.overdue_tasks:
        echo(f"  overdue {o.days_overdue}d  {o.text}  [{o.priority}]")
    for n in analysis.never_started_tasks:
        echo(f"  untouched {n.created_days_ago}d  {n.text}")
    for r in analysis.skipped_recurring:
        since = f"{r.days_since_last_completion}d" if r.days_since_last_completion is not None else "never"
        echo(f"  skipped {since}  {r.text}  ({r.recurring_pattern})")
