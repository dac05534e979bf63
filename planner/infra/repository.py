from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from sqlalchemy import delete, func, or_, select

from planner.domain.entities import (
    AttachmentEntity,
    LabelEntity,
    PageResult,
    ReminderEntity,
    SubtaskEntity,
    TaskEntity,
    TaskWithRelations,
)
from planner.domain.enums import Priority, ReminderType
from planner.domain.errors import InvariantViolation, ValidationError
from planner.domain.filters import TaskFilters
from planner.domain.inputs import UNSET, TaskCreate, TaskPatch
from planner.domain.values import encode_value

from .db import Clock, Database, utcnow
from .history import ChangeAuditLog
from .lists import list_to_entity
from .models import (
    AttachmentModel,
    LabelModel,
    ListModel,
    ReminderModel,
    SubtaskModel,
    TaskModel,
    task_labels,
)
from .store import EntityStore

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"


def escape_like(text: str, escape: str = LIKE_ESCAPE) -> str:
    """Escape LIKE wildcards so ``text`` only ever matches itself."""
    return (
        text.replace(escape, escape + escape)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )


def _to_entity(model: TaskModel) -> TaskEntity:
    completed = bool(model.completed)
    if completed != (model.completed_at is not None):
        raise InvariantViolation(
            f"task {model.id}: completed={completed} but completed_at={model.completed_at}"
        )
    return TaskEntity(
        id=model.id,
        list_id=model.list_id,
        name=model.name,
        description=model.description,
        scheduled_at=model.scheduled_at,
        deadline_at=model.deadline_at,
        estimate_minutes=model.estimate_minutes,
        actual_minutes=model.actual_minutes,
        priority=Priority(model.priority),
        recurring_rule=model.recurring_rule,
        completed=completed,
        completed_at=model.completed_at,
        created_at=model.created_at,
        updated_at=model.updated_at,
        deleted_at=model.deleted_at,
    )


def _subtask_to_entity(model: SubtaskModel) -> SubtaskEntity:
    return SubtaskEntity(
        id=model.id,
        task_id=model.task_id,
        name=model.name,
        completed=bool(model.completed),
        position=model.position,
        created_at=model.created_at,
    )


def _label_to_entity(model: LabelModel) -> LabelEntity:
    return LabelEntity(
        id=model.id,
        name=model.name,
        color=model.color,
        icon=model.icon,
        created_at=model.created_at,
    )


def _reminder_to_entity(model: ReminderModel) -> ReminderEntity:
    return ReminderEntity(
        id=model.id,
        task_id=model.task_id,
        remind_at=model.remind_at,
        type=ReminderType(model.type),
        sent=bool(model.sent),
        created_at=model.created_at,
    )


def _attachment_to_entity(model: AttachmentModel) -> AttachmentEntity:
    return AttachmentEntity(
        id=model.id,
        task_id=model.task_id,
        filename=model.filename,
        file_path=model.file_path,
        file_size=model.file_size,
        mime_type=model.mime_type,
        created_at=model.created_at,
    )


def _apply_filters(stmt, filters: TaskFilters, now: datetime) -> object:
    if filters.deleted_only:
        stmt = stmt.where(TaskModel.deleted_at.is_not(None))
    elif not filters.include_deleted:
        stmt = stmt.where(TaskModel.deleted_at.is_(None))

    if filters.list_id:
        stmt = stmt.where(TaskModel.list_id == filters.list_id)

    if filters.date_from is not None:
        stmt = stmt.where(TaskModel.scheduled_at >= filters.date_from)

    if filters.date_to is not None:
        stmt = stmt.where(TaskModel.scheduled_at <= filters.date_to)

    if filters.completed is not None:
        stmt = stmt.where(TaskModel.completed == filters.completed)

    if filters.priority:
        stmt = stmt.where(TaskModel.priority == Priority(filters.priority).value)

    if filters.overdue:
        stmt = stmt.where(
            TaskModel.deadline_at.is_not(None),
            TaskModel.deadline_at < now,
            TaskModel.completed.is_(False),
        )

    if filters.search:
        pattern = f"%{escape_like(filters.search)}%"
        stmt = stmt.where(
            or_(
                TaskModel.name.ilike(pattern, escape=LIKE_ESCAPE),
                TaskModel.description.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )

    if filters.label_id:
        stmt = stmt.where(
            TaskModel.id.in_(
                select(task_labels.c.task_id).where(task_labels.c.label_id == filters.label_id)
            )
        )

    return stmt


def _order(stmt) -> object:
    return stmt.order_by(
        TaskModel.scheduled_at.is_(None),
        TaskModel.scheduled_at.asc(),
        TaskModel.created_at.desc(),
        TaskModel.id.asc(),
    )


@dataclass(frozen=True)
class StagedChange:
    field: str
    old: Any
    new: Any


class TaskRepository(EntityStore[TaskEntity]):
    """Task lifecycle with a field-level audit trail.

    Every mutation that changes at least one column writes one
    :class:`ChangeAuditLog` entry per changed column inside the same
    transaction as the row update. This is the only writer of task history.
    """

    model = TaskModel

    def __init__(
        self,
        db: Database,
        history: ChangeAuditLog | None = None,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(db, clock)
        if history is None:
            history = ChangeAuditLog(db, clock)
        if history._db is not db:
            raise InvariantViolation("task history must share the task store's database")
        self.history = history

    def _to_entity(self, model: TaskModel) -> TaskEntity:
        return _to_entity(model)

    # ---- writes ----

    def create(self, data: TaskCreate) -> TaskEntity:
        data.validate()
        task_id = self.generate_id()
        timestamp = self.now()
        with self.transaction() as session:
            session.add(
                TaskModel(
                    id=task_id,
                    **data.columns(),
                    completed=False,
                    completed_at=None,
                    deleted_at=None,
                    created_at=timestamp,
                    updated_at=timestamp,
                )
            )
            session.flush()
        logger.info("Created task %s in list %s", task_id, data.list_id)
        return self.find_by_id(task_id)

    def update(self, task_id: str, patch: TaskPatch) -> Optional[TaskEntity]:
        patch.validate()
        with self.transaction() as session:
            row = self._get(session, task_id)
            if row is None:
                return None
            current = _to_entity(row)

            timestamp = self.now()
            changes = self._diff(current, patch, timestamp)
            if not changes:
                return current

            if not self._apply(task_id, changes, timestamp):
                return None
        return self.find_by_id(task_id)

    @staticmethod
    def _diff(current: TaskEntity, patch: TaskPatch, timestamp: datetime) -> list[StagedChange]:
        changes: list[StagedChange] = []
        for field, value in patch.supplied():
            if field == "completed":
                continue
            if field == "priority":
                value = Priority(value)
            old = getattr(current, field)
            if old != value:
                changes.append(StagedChange(field, old, value))

        if patch.completed is not UNSET and patch.completed != current.completed:
            changes.append(StagedChange("completed", current.completed, patch.completed))
            changes.append(
                StagedChange(
                    "completed_at", current.completed_at, timestamp if patch.completed else None
                )
            )
        return changes

    @staticmethod
    def _check_staged(changes: list[StagedChange]) -> None:
        fields = [change.field for change in changes]
        if len(fields) != len(set(fields)):
            raise InvariantViolation(f"field staged twice: {fields}")
        if ("completed_at" in fields) != ("completed" in fields):
            raise InvariantViolation("completed_at must change together with completed")

    def _apply(self, task_id: str, changes: list[StagedChange], timestamp: datetime) -> bool:
        """Write staged changes and their history rows. False if the task is gone."""
        self._check_staged(changes)
        with self.transaction() as session:
            row = self._get(session, task_id)
            if row is None:
                return False
            for change in changes:
                value = change.new.value if isinstance(change.new, Priority) else change.new
                setattr(row, change.field, value)
            row.updated_at = timestamp
            session.flush()

            for change in changes:
                self.history.append(
                    task_id,
                    change.field,
                    encode_value(change.old),
                    encode_value(change.new),
                    changed_at=timestamp,
                )
        logger.debug("Updated task %s: %s", task_id, ", ".join(c.field for c in changes))
        return True

    def mark_complete(self, task_id: str) -> Optional[TaskEntity]:
        return self.update(task_id, TaskPatch(completed=True))

    def mark_incomplete(self, task_id: str) -> Optional[TaskEntity]:
        return self.update(task_id, TaskPatch(completed=False))

    def move_to_list(self, task_id: str, list_id: str) -> Optional[TaskEntity]:
        return self.update(task_id, TaskPatch(list_id=list_id))

    def set_priority(self, task_id: str, priority: Priority | str) -> Optional[TaskEntity]:
        return self.update(task_id, TaskPatch(priority=priority))

    def set_due_date(self, task_id: str, scheduled_at: datetime | None) -> Optional[TaskEntity]:
        return self.update(task_id, TaskPatch(scheduled_at=scheduled_at))

    # ---- soft delete ----

    def _set_deleted_at(self, task_id: str, deleted: bool) -> Optional[TaskEntity]:
        with self.transaction() as session:
            row = self._get(session, task_id)
            if row is None:
                return None
            if (row.deleted_at is not None) == deleted:
                return _to_entity(row)

            timestamp = self.now()
            old = row.deleted_at
            new = timestamp if deleted else None
            row.deleted_at = new
            row.updated_at = timestamp
            session.flush()
            self.history.append(
                task_id, "deleted_at", encode_value(old), encode_value(new), changed_at=timestamp
            )
        logger.info("%s task %s", "Soft-deleted" if deleted else "Restored", task_id)
        return self.find_by_id(task_id)

    def soft_delete(self, task_id: str) -> Optional[TaskEntity]:
        return self._set_deleted_at(task_id, deleted=True)

    def restore(self, task_id: str) -> Optional[TaskEntity]:
        return self._set_deleted_at(task_id, deleted=False)

    def _purge_where(self, *conditions) -> int:
        stmt = (
            delete(TaskModel)
            .where(TaskModel.deleted_at.is_not(None), *conditions)
            .execution_options(synchronize_session=False)
        )
        with self.transaction() as session:
            result = session.execute(stmt)
        return result.rowcount

    def purge(self, task_id: str) -> bool:
        purged = self._purge_where(TaskModel.id == task_id) > 0
        if purged:
            logger.info("Purged task %s", task_id)
        return purged

    def purge_all(self) -> int:
        count = self._purge_where()
        logger.info("Purged %s deleted tasks", count)
        return count

    def purge_older_than(self, cutoff: datetime) -> int:
        count = self._purge_where(TaskModel.deleted_at < cutoff)
        logger.info("Purged %s tasks deleted before %s", count, cutoff)
        return count

    def find_deleted(self) -> list[TaskEntity]:
        stmt = (
            select(TaskModel)
            .where(TaskModel.deleted_at.is_not(None))
            .order_by(TaskModel.deleted_at.desc())
        )
        with self.transaction() as session:
            return [_to_entity(task) for task in session.scalars(stmt)]

    def find_deleted_by_list(self, list_id: str) -> list[TaskEntity]:
        stmt = (
            select(TaskModel)
            .where(TaskModel.list_id == list_id, TaskModel.deleted_at.is_not(None))
            .order_by(TaskModel.deleted_at.desc())
        )
        with self.transaction() as session:
            return [_to_entity(task) for task in session.scalars(stmt)]

    # ---- reads ----

    def find_with_filters(self, filters: TaskFilters) -> list[TaskEntity]:
        filters.validate()
        stmt = _order(_apply_filters(select(TaskModel), filters, self.now()))
        with self.transaction() as session:
            return [_to_entity(task) for task in session.scalars(stmt)]

    def find_with_filters_paginated(
        self, filters: TaskFilters, page: int, limit: int
    ) -> PageResult[TaskEntity]:
        if page < 1:
            raise ValidationError("page", "must be 1 or greater")
        if limit < 1:
            raise ValidationError("limit", "must be 1 or greater")
        filters.validate()

        filtered = _apply_filters(select(TaskModel), filters, self.now())
        offset = (page - 1) * limit
        with self.transaction() as session:
            total = session.scalar(
                select(func.count()).select_from(filtered.subquery())
            ) or 0
            rows = session.scalars(_order(filtered).limit(limit).offset(offset))
            data = [_to_entity(task) for task in rows]

        total_pages = -(-total // limit)
        return PageResult(
            data=data,
            page=page,
            limit=limit,
            total_count=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )

    def find_by_list(self, list_id: str) -> list[TaskEntity]:
        return self.find_with_filters(TaskFilters(list_id=list_id))

    def find_by_date(self, day: date) -> list[TaskEntity]:
        start = datetime.combine(day, time.min)
        end = start + timedelta(days=1)
        stmt = _order(
            select(TaskModel).where(
                TaskModel.deleted_at.is_(None),
                TaskModel.scheduled_at >= start,
                TaskModel.scheduled_at < end,
            )
        )
        with self.transaction() as session:
            return [_to_entity(task) for task in session.scalars(stmt)]

    def find_overdue(self) -> list[TaskEntity]:
        stmt = _apply_filters(select(TaskModel), TaskFilters(overdue=True), self.now())
        stmt = stmt.order_by(TaskModel.deadline_at.asc(), TaskModel.id.asc())
        with self.transaction() as session:
            return [_to_entity(task) for task in session.scalars(stmt)]

    def count_by_list(self, list_id: str) -> int:
        return self.count_by("list_id", list_id)

    def completed_count_by_list(self, list_id: str) -> int:
        with self.transaction() as session:
            return session.scalar(
                select(func.count())
                .select_from(TaskModel)
                .where(
                    TaskModel.list_id == list_id,
                    TaskModel.completed.is_(True),
                    TaskModel.deleted_at.is_(None),
                )
            ) or 0

    def find_with_relations(self, task_id: str) -> Optional[TaskWithRelations]:
        with self.transaction() as session:
            task = self._get(session, task_id)
            if task is None:
                return None

            task_list = session.get(ListModel, task.list_id)
            subtasks = session.scalars(
                select(SubtaskModel)
                .where(SubtaskModel.task_id == task_id)
                .order_by(SubtaskModel.position.asc(), SubtaskModel.created_at.asc())
            )
            labels = session.scalars(
                select(LabelModel)
                .join(task_labels, task_labels.c.label_id == LabelModel.id)
                .where(task_labels.c.task_id == task_id)
                .order_by(LabelModel.name.asc())
            )
            reminders = session.scalars(
                select(ReminderModel)
                .where(ReminderModel.task_id == task_id)
                .order_by(ReminderModel.remind_at.asc())
            )
            attachments = session.scalars(
                select(AttachmentModel)
                .where(AttachmentModel.task_id == task_id)
                .order_by(AttachmentModel.created_at.desc())
            )
            return TaskWithRelations(
                task=_to_entity(task),
                list=list_to_entity(task_list) if task_list is not None else None,
                subtasks=[_subtask_to_entity(item) for item in subtasks],
                labels=[_label_to_entity(item) for item in labels],
                reminders=[_reminder_to_entity(item) for item in reminders],
                attachments=[_attachment_to_entity(item) for item in attachments],
            )
