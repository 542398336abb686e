"""Per-category mastery and lag scores over a trailing window."""

import dataclasses
import json as _json
from collections import defaultdict
from datetime import date, datetime, timedelta
from enum import StrEnum

from fncli import cli

from . import config
from .core.errors import ValidationError
from .core.models import Task
from .core.types import PERIOD_DAYS, Period, Priority
from .lib import clock
from .lib.errors import echo
from .lib.scores import percent, round_half_up
from .tasks import get_all_tasks

__all__ = [
    "LagCategory",
    "LagPriority",
    "LagReport",
    "MasteryStats",
    "Trend",
    "get_lag_indicators",
    "get_task_mastery_stats",
    "mastery_score",
    "lag_score",
    "trend_of",
]

MASTERY_WEIGHTS = (0.5, 0.3, 0.2)
LAG_WEIGHTS = (40, 40, 20)
LAG_OVERDUE_HORIZON_DAYS = 30
IMPROVING_FACTOR = 1.2
DECLINING_FACTOR = 0.8


class Trend(StrEnum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


@dataclasses.dataclass(frozen=True)
class MasteryStats:
    category: str
    total: int
    completed: int
    completion_rate: int
    avg_time_minutes: int
    high_priority_completed: int
    high_priority_total: int
    high_priority_ratio: int
    consistency_score: int
    mastery_score: int
    trend: Trend
    active_days: int


@dataclasses.dataclass(frozen=True)
class LagCategory:
    category: str
    total: int
    completed: int
    pending_count: int
    overdue_count: int
    completion_rate: int
    avg_days_overdue: int
    lag_score: int
    last_completed_at: date | None
    days_since_last_completion: int | None


@dataclasses.dataclass(frozen=True)
class LagPriority:
    priority: Priority
    total: int
    completed: int
    pending_count: int
    overdue_count: int
    completion_rate: int


@dataclasses.dataclass(frozen=True)
class LagReport:
    lag_categories: list[LagCategory]
    lag_priorities: list[LagPriority]
    overall_lag_score: int


def period_days(period: Period | str | None) -> int:
    if period is None:
        return PERIOD_DAYS[config.get_default_period()]
    try:
        return PERIOD_DAYS[Period(period)]
    except ValueError:
        choices = ", ".join(p.value for p in Period)
        raise ValidationError(f"unknown period '{period}' - use one of {choices}") from None


def _reference_time(task: Task) -> datetime:
    if task.done and task.completed_at:
        return task.completed_at
    return task.created


def _completion_time(task: Task) -> datetime:
    return task.completed_at or task.created


def tasks_in_period(tasks: list[Task], now: datetime, days: int) -> list[Task]:
    start = now - timedelta(days=days)
    return [t for t in tasks if _reference_time(t) >= start]


def _is_overdue(task: Task, today: date) -> bool:
    return not task.done and task.deadline is not None and task.deadline < today


def mastery_score(completion_rate: int, consistency: int, high_priority_ratio: int) -> int:
    """Blend three 0-100 percentages. Only a perfect record scores 100."""
    w_rate, w_consistency, w_priority = MASTERY_WEIGHTS
    score = min(
        100,
        round_half_up(
            completion_rate * w_rate + consistency * w_consistency + high_priority_ratio * w_priority
        ),
    )
    if score == 100 and min(completion_rate, consistency, high_priority_ratio) < 100:
        return 99
    return score


def trend_of(first_half: int, second_half: int) -> Trend:
    if second_half > first_half * IMPROVING_FACTOR:
        return Trend.IMPROVING
    if second_half < first_half * DECLINING_FACTOR:
        return Trend.DECLINING
    return Trend.STABLE


def lag_score(overdue_ratio: float, completion_rate: int, avg_days_overdue: int) -> int:
    w_overdue, w_incomplete, w_age = LAG_WEIGHTS
    raw = (
        overdue_ratio * w_overdue
        + (1 - completion_rate / 100) * w_incomplete
        + min(avg_days_overdue / LAG_OVERDUE_HORIZON_DAYS, 1) * w_age
    )
    return min(100, round_half_up(raw))


@dataclasses.dataclass
class _Bucket:
    total: int = 0
    completed: int = 0
    high_total: int = 0
    high_completed: int = 0
    minutes: int = 0
    days: set[date] = dataclasses.field(default_factory=set)
    first_half: int = 0
    second_half: int = 0


def get_task_mastery_stats(
    period: Period | str | None = None, now: datetime | None = None
) -> list[MasteryStats]:
    """Mastery per category for tasks touched in the window, best first."""
    now = now or clock.now()
    days = period_days(period)
    midpoint = now - timedelta(days=days / 2)

    buckets: dict[str, _Bucket] = defaultdict(_Bucket)
    for task in tasks_in_period(get_all_tasks(), now, days):
        b = buckets[task.category_name]
        b.total += 1
        high = task.priority == Priority.HIGH
        b.high_total += high
        if not task.done:
            continue
        b.completed += 1
        b.high_completed += high
        b.minutes += task.time_spent_minutes
        finished = _completion_time(task)
        b.days.add(finished.date())
        if finished < midpoint:
            b.first_half += 1
        else:
            b.second_half += 1

    result = []
    for category, b in buckets.items():
        rate = percent(b.completed, b.total)
        consistency = min(100, percent(len(b.days), days))
        high_ratio = percent(b.high_completed, b.high_total) if b.high_total else rate
        result.append(
            MasteryStats(
                category=category,
                total=b.total,
                completed=b.completed,
                completion_rate=rate,
                avg_time_minutes=round_half_up(b.minutes / b.completed) if b.completed else 0,
                high_priority_completed=b.high_completed,
                high_priority_total=b.high_total,
                high_priority_ratio=high_ratio,
                consistency_score=consistency,
                mastery_score=mastery_score(rate, consistency, high_ratio),
                trend=trend_of(b.first_half, b.second_half),
                active_days=len(b.days),
            )
        )
    return sorted(result, key=lambda m: m.mastery_score, reverse=True)


def _lag_category(category: str, tasks: list[Task], now: datetime) -> LagCategory:
    today = now.date()
    done = [t for t in tasks if t.done]
    overdue = [t for t in tasks if _is_overdue(t, today)]
    days_overdue = sum((today - t.deadline).days for t in overdue if t.deadline)

    rate = percent(len(done), len(tasks))
    avg_overdue = round_half_up(days_overdue / len(overdue)) if overdue else 0
    last = max((_completion_time(t) for t in done), default=None)
    return LagCategory(
        category=category,
        total=len(tasks),
        completed=len(done),
        pending_count=len(tasks) - len(done),
        overdue_count=len(overdue),
        completion_rate=rate,
        avg_days_overdue=avg_overdue,
        lag_score=lag_score(len(overdue) / len(tasks), rate, avg_overdue),
        last_completed_at=last.date() if last else None,
        days_since_last_completion=(now - last).days if last else None,
    )


def get_lag_indicators(period: Period | str | None = None, now: datetime | None = None) -> LagReport:
    """Where work is piling up: per category, per priority, and overall."""
    now = now or clock.now()
    today = now.date()
    in_period = tasks_in_period(get_all_tasks(), now, period_days(period))

    by_category: dict[str, list[Task]] = defaultdict(list)
    for task in in_period:
        by_category[task.category_name].append(task)
    categories = [_lag_category(cat, tasks, now) for cat, tasks in by_category.items()]

    priorities = []
    for priority in Priority:
        tasks = [t for t in in_period if t.priority == priority]
        completed = sum(1 for t in tasks if t.done)
        priorities.append(
            LagPriority(
                priority=priority,
                total=len(tasks),
                completed=completed,
                pending_count=len(tasks) - completed,
                overdue_count=sum(1 for t in tasks if _is_overdue(t, today)),
                completion_rate=percent(completed, len(tasks)),
            )
        )

    overall = (
        round_half_up(sum(c.lag_score for c in categories) / len(categories)) if categories else 0
    )
    return LagReport(
        lag_categories=sorted(categories, key=lambda c: c.lag_score, reverse=True),
        lag_priorities=priorities,
        overall_lag_score=overall,
    )


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("habitual")
def mastery(period: str | None = None, json: bool = False) -> None:
    """Mastery score per category (--period week|month|quarter)"""
    stats = get_task_mastery_stats(period)
    if json:
        print(_json.dumps([dataclasses.asdict(s) for s in stats]))
        return
    if not stats:
        echo("no tasks in period")
        return
    for s in stats:
        echo(
            f"{s.mastery_score:>3}  {s.category}  {s.completed}/{s.total} done"
            f"  consistency {s.consistency_score}%  {s.trend}"
        )


@cli("habitual")
def lag(period: str | None = None, json: bool = False) -> None:
    """Lag score per category and priority (--period week|month|quarter)"""
    report = get_lag_indicators(period)
    if json:
        print(_json.dumps(dataclasses.asdict(report), default=str))
        return
    echo(f"overall lag {report.overall_lag_score}")
    for c in report.lag_categories:
        echo(f"{c.lag_score:>3}  {c.category}  {c.overdue_count} overdue  avg {c.avg_days_overdue}d")
    for p in report.lag_priorities:
        if p.total:
            echo(f"     {p.priority}  {p.completed}/{p.total} done  {p.overdue_count} overdue")
