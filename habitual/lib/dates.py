import re
from datetime import date, datetime, timedelta

from dateutil import parser as dateutil_parser
from dateutil.parser import ParserError

from ..core.errors import ValidationError
from . import clock

_DAY_ALIASES = {
    "monday": "mon",
    "tuesday": "tue",
    "wednesday": "wed",
    "thursday": "thu",
    "friday": "fri",
    "saturday": "sat",
    "sunday": "sun",
}
_DAY_MAP = {"mon": 0, "tue": 1, "wed": 2, "thu": 3, "fri": 4, "sat": 5, "sun": 6}


def parse_due_date(due_str: str, today: date | None = None) -> date | None:
    """Parses a due date string (e.g., 'today', 'tomorrow', 'mon', 'YYYY-MM-DD')."""
    due_str_lower = due_str.strip().lower()
    today = today or clock.today()

    if due_str_lower == "today":
        return today
    if due_str_lower == "yesterday":
        return today - timedelta(days=1)
    if due_str_lower == "tomorrow":
        return today + timedelta(days=1)
    due_str_lower = _DAY_ALIASES.get(due_str_lower, due_str_lower)
    if due_str_lower in _DAY_MAP:
        days_ahead = (_DAY_MAP[due_str_lower] - today.weekday() + 7) % 7
        return today + timedelta(days=days_ahead)
    if re.match(r"^\d{1,2}:\d{2}$", due_str_lower):
        return None
    try:
        return dateutil_parser.parse(
            due_str, default=datetime(today.year, today.month, today.day)
        ).date()
    except (ParserError, ValueError, OverflowError):
        return None


def require_date(value: str, today: date | None = None) -> date:
    parsed = parse_due_date(value, today)
    if parsed is None:
        raise ValidationError(f"could not parse date '{value}'")
    return parsed


def parse_weekdays(value: str) -> list[int]:
    """Parse '1,3' or 'mon,wed' into Sunday-first weekday indexes."""
    result: list[int] = []
    for raw in value.split(","):
        token = _DAY_ALIASES.get(raw.strip().lower(), raw.strip().lower())
        if not token:
            continue
        if token in _DAY_MAP:
            result.append((_DAY_MAP[token] + 1) % 7)
            continue
        try:
            result.append(int(token))
        except ValueError:
            raise ValidationError(f"invalid weekday '{raw.strip()}'") from None
    return result
