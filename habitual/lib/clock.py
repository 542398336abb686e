from datetime import UTC, date, datetime

__all__ = ["now", "today"]


def now() -> datetime:
    """Current UTC wall-clock time, naive."""
    return datetime.now(UTC).replace(tzinfo=None)


def today() -> date:
    """Current UTC calendar date."""
    return now().date()
