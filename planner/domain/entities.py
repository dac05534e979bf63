from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, Optional, TypeVar

from .enums import Priority, ReminderType

T = TypeVar("T")


@dataclass(frozen=True)
class TaskEntity:
    id: str
    list_id: str
    name: str
    description: str | None
    scheduled_at: Optional[datetime]
    deadline_at: Optional[datetime]
    estimate_minutes: int | None
    actual_minutes: int | None
    priority: Priority
    recurring_rule: str | None
    completed: bool
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime]

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass(frozen=True)
class ChangeRecord:
    id: str
    task_id: str
    field_name: str
    old_value: str | None
    new_value: str | None
    changed_at: datetime


@dataclass(frozen=True)
class ChangeRecordWithTask(ChangeRecord):
    task_name: str = ""


@dataclass(frozen=True)
class FieldChangeCount:
    field_name: str
    change_count: int


@dataclass(frozen=True)
class ListEntity:
    id: str
    name: str
    color: str
    emoji: str | None
    is_default: bool
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class SubtaskEntity:
    id: str
    task_id: str
    name: str
    completed: bool
    position: int
    created_at: datetime


@dataclass(frozen=True)
class LabelEntity:
    id: str
    name: str
    color: str
    icon: str | None
    created_at: datetime


@dataclass(frozen=True)
class ReminderEntity:
    id: str
    task_id: str
    remind_at: datetime
    type: ReminderType
    sent: bool
    created_at: datetime


@dataclass(frozen=True)
class AttachmentEntity:
    id: str
    task_id: str
    filename: str
    file_path: str
    file_size: int
    mime_type: str
    created_at: datetime


@dataclass(frozen=True)
class TaskWithRelations:
    task: TaskEntity
    list: ListEntity | None
    subtasks: list[SubtaskEntity] = field(default_factory=list)
    labels: list[LabelEntity] = field(default_factory=list)
    reminders: list[ReminderEntity] = field(default_factory=list)
    attachments: list[AttachmentEntity] = field(default_factory=list)


@dataclass(frozen=True)
class PageResult(Generic[T]):
    data: list[T]
    page: int
    limit: int
    total_count: int
    total_pages: int
    has_next: bool
    has_prev: bool
