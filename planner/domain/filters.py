from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .enums import Priority
from .inputs import check_datetime, check_priority, normalize_datetimes


@dataclass(frozen=True)
class TaskFilters:
    list_id: str | None = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    completed: bool | None = None
    priority: Priority | None = None
    overdue: bool = False
    search: str | None = None
    label_id: str | None = None
    include_deleted: bool = False
    # takes precedence over include_deleted
    deleted_only: bool = False

    def __post_init__(self) -> None:
        normalize_datetimes(self, ("date_from", "date_to"))

    def validate(self) -> None:
        check_datetime("date_from", self.date_from)
        check_datetime("date_to", self.date_to)
        if self.priority:
            check_priority(self.priority)
