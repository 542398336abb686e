"""Append-only ledger of missed occurrences, unique per (root habit, calendar date)."""

import logging
import sqlite3
from collections.abc import Iterable
from datetime import date, datetime

from fncli import cli

from . import db
from .core.models import MissedLog
from .lib import clock
from .lib.converters import row_to_missed_log
from .lib.dates import require_date
from .lib.errors import echo

__all__ = [
    "append",
    "append_many",
    "get_all_missed_logs",
    "get_missed_logs",
    "logged_dates",
]

logger = logging.getLogger(__name__)

_LOG_COLS = "id, recurring_root_id, missed_date, pattern, task_text, logged_at"


def append(
    conn: sqlite3.Connection,
    root_id: str,
    missed: date,
    pattern: str,
    task_text: str,
    logged_at: datetime | None = None,
) -> bool:
    """Record one miss. Returns False when the date was already logged for this root."""
    cursor = conn.execute(
        "INSERT OR IGNORE INTO recurring_missed_logs "
        "(recurring_root_id, missed_date, pattern, task_text, logged_at) VALUES (?, ?, ?, ?, ?)",
        (root_id, missed.isoformat(), pattern, task_text, (logged_at or clock.now()).isoformat()),
    )
    return cursor.rowcount == 1


def append_many(
    conn: sqlite3.Connection,
    root_id: str,
    dates: Iterable[date],
    pattern: str,
    task_text: str,
) -> list[date]:
    """Record several misses with one timestamp. Returns only the dates that were new."""
    logged_at = clock.now()
    inserted = [d for d in dates if append(conn, root_id, d, pattern, task_text, logged_at)]
    logger.debug("ledger %s: %d new entries", root_id, len(inserted))
    return inserted


def logged_dates(conn: sqlite3.Connection, root_id: str) -> set[date]:
    rows = conn.execute(
        "SELECT missed_date FROM recurring_missed_logs WHERE recurring_root_id = ?",
        (root_id,),
    ).fetchall()
    return {date.fromisoformat(r[0]) for r in rows}


def _range_clause(start: date | None, end: date | None) -> tuple[str, list[object]]:
    clauses: list[str] = []
    params: list[object] = []
    if start:
        clauses.append("missed_date >= ?")
        params.append(start.isoformat())
    if end:
        clauses.append("missed_date <= ?")
        params.append(end.isoformat())
    return " AND ".join(clauses), params


def get_missed_logs(
    root_id: str,
    start: date | None = None,
    end: date | None = None,
    limit: int | None = None,
) -> list[MissedLog]:
    """Misses for one root, newest first, optionally bounded to [start, end]."""
    where, params = _range_clause(start, end)
    sql = f"SELECT {_LOG_COLS} FROM recurring_missed_logs WHERE recurring_root_id = ?"  # noqa: S608
    if where:
        sql += f" AND {where}"
    sql += " ORDER BY missed_date DESC, id DESC"
    if limit:
        sql += " LIMIT ?"
        params.append(limit)
    with db.get_db() as conn:
        rows = conn.execute(sql, (root_id, *params)).fetchall()
    return [row_to_missed_log(r) for r in rows]


def get_all_missed_logs(start: date | None = None, end: date | None = None) -> list[MissedLog]:
    where, params = _range_clause(start, end)
    sql = f"SELECT {_LOG_COLS} FROM recurring_missed_logs"  # noqa: S608
    if where:
        sql += f" WHERE {where}"
    sql += " ORDER BY missed_date DESC, id DESC"
    with db.get_db() as conn:
        rows = conn.execute(sql, tuple(params)).fetchall()
    return [row_to_missed_log(r) for r in rows]


def _print_logs(logs: list[MissedLog], show_text: bool) -> None:
    if not logs:
        echo("no misses logged")
        return
    for entry in logs:
        text = f"  {entry.task_text}" if show_text else ""
        echo(f"✗ {entry.missed_date.isoformat()}  {entry.pattern}{text}")


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("habitual")
def missed(
    ref: str, since: str | None = None, until: str | None = None, limit: int | None = None
) -> None:
    """Show logged misses for a habit"""
    from .tasks import resolve_task

    task = resolve_task(ref)
    logs = get_missed_logs(
        task.root_id,
        start=require_date(since) if since else None,
        end=require_date(until) if until else None,
        limit=limit,
    )
    _print_logs(logs, show_text=False)


@cli("habitual")
def ledger(since: str | None = None, until: str | None = None) -> None:
    """Show logged misses across all habits"""
    logs = get_all_missed_logs(
        start=require_date(since) if since else None,
        end=require_date(until) if until else None,
    )
    _print_logs(logs, show_text=True)
