import dataclasses
from datetime import date, datetime

from .types import Occurrence, Role, Root

UNCATEGORIZED = "Uncategorized"


@dataclasses.dataclass(frozen=True)
class Task:
    id: str
    content: str
    created: datetime
    done: bool = False
    completed_at: datetime | None = None
    deadline: date | None = None
    priority: str | None = None
    category: str | None = None
    time_spent_minutes: int = 0
    is_recurring: bool = False
    recurring_pattern: str | None = None
    recurring_interval: int = 1
    recurring_days: tuple[int, ...] = ()
    recurring_start_date: date | None = None
    parent_recurring_id: str | None = None
    current_streak: int = 0
    longest_streak: int = 0
    total_missed: int = 0
    total_completed: int = 0
    last_completed_date: date | None = None

    @property
    def role(self) -> Role:
        if self.parent_recurring_id is None:
            return Root(self.id)
        return Occurrence(self.id, self.parent_recurring_id)

    @property
    def root_id(self) -> str:
        role = self.role
        return role.root_id if isinstance(role, Occurrence) else role.id

    @property
    def category_name(self) -> str:
        return self.category or UNCATEGORIZED


@dataclasses.dataclass(frozen=True)
class MissedLog:
    id: int
    recurring_root_id: str
    missed_date: date
    pattern: str
    task_text: str
    logged_at: datetime
