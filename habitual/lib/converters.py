from datetime import date, datetime
from typing import cast

from habitual.core.models import MissedLog, Task

TaskRow = tuple[object, ...]
MissedLogRow = tuple[object, ...]


def _parse_date(val) -> date | None:
    """Parse a date value that may be str or numeric timestamp."""
    if isinstance(val, str) and val:
        return date.fromisoformat(val.split("T")[0])
    if isinstance(val, (int, float)):
        return datetime.fromtimestamp(val).date()
    return None


def _parse_datetime(val) -> datetime:
    """Parse a datetime value that may be str or numeric timestamp."""
    if isinstance(val, (int, float)):
        return datetime.fromtimestamp(val)
    if isinstance(val, str) and val:
        try:
            return datetime.fromisoformat(val)
        except ValueError:
            return datetime.combine(date.fromisoformat(val), datetime.min.time())
    return datetime.min


def _parse_datetime_optional(val) -> datetime | None:
    if val is None or val == "":
        return None
    return _parse_datetime(val)


def _parse_days(val) -> tuple[int, ...]:
    """Parse the stored weekday list ("1,3") into a sorted tuple."""
    if not isinstance(val, str) or not val.strip():
        return ()
    return tuple(sorted({int(part) for part in val.split(",") if part.strip()}))


def format_days(days) -> str:
    return ",".join(str(d) for d in sorted(set(days or ())))


def row_to_task(row: TaskRow) -> Task:
    """
    Converts a raw database row from tasks table into a Task object.
    Expected row format matches TASK_COLS in habitual.tasks.
    """
    return Task(
        id=cast(str, row[0]),
        content=cast(str, row[1]),
        created=_parse_datetime(row[2]),
        done=bool(row[3]),
        completed_at=_parse_datetime_optional(row[4]),
        deadline=_parse_date(row[5]),
        priority=cast(str, row[6]) if row[6] is not None else None,
        category=cast(str, row[7]) if row[7] is not None else None,
        time_spent_minutes=int(cast(int, row[8]) or 0),
        is_recurring=bool(row[9]),
        recurring_pattern=cast(str, row[10]) if row[10] is not None else None,
        recurring_interval=int(cast(int, row[11]) or 1),
        recurring_days=_parse_days(row[12]),
        recurring_start_date=_parse_date(row[13]),
        parent_recurring_id=cast(str, row[14]) if row[14] is not None else None,
        current_streak=int(cast(int, row[15]) or 0),
        longest_streak=int(cast(int, row[16]) or 0),
        total_missed=int(cast(int, row[17]) or 0),
        total_completed=int(cast(int, row[18]) or 0),
        last_completed_date=_parse_date(row[19]),
    )


def row_to_missed_log(row: MissedLogRow) -> MissedLog:
    """
    Converts a raw row from recurring_missed_logs into a MissedLog.
    Expected row format: (id, recurring_root_id, missed_date, pattern, task_text, logged_at)
    """
    missed = _parse_date(row[2])
    if missed is None:
        raise ValueError(f"missed log {row[0]} has no missed_date")
    return MissedLog(
        id=cast(int, row[0]),
        recurring_root_id=cast(str, row[1]),
        missed_date=missed,
        pattern=cast(str, row[3]),
        task_text=cast(str, row[4]),
        logged_at=_parse_datetime(row[5]),
    )
