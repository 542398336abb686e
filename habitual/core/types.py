"""Core type definitions."""

import dataclasses
from enum import StrEnum


class Pattern(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: "str | Pattern | None") -> "Pattern | None":
        """Return the pattern for a stored value, or None when it is absent or unknown."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Period(StrEnum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"


PERIOD_DAYS: dict[Period, int] = {
    Period.WEEK: 7,
    Period.MONTH: 30,
    Period.QUARTER: 90,
}


@dataclasses.dataclass(frozen=True)
class Root:
    """A recurring task definition that owns the schedule and the ledger."""

    id: str


@dataclasses.dataclass(frozen=True)
class Occurrence:
    """A scheduled instance linked back to its root."""

    id: str
    root_id: str


Role = Root | Occurrence
