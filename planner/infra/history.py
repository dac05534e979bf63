from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select

from planner.domain.entities import ChangeRecord, ChangeRecordWithTask, FieldChangeCount

from .models import TaskHistoryModel, TaskModel
from .store import EntityStore

logger = logging.getLogger(__name__)


def _to_entity(model: TaskHistoryModel) -> ChangeRecord:
    return ChangeRecord(
        id=model.id,
        task_id=model.task_id,
        field_name=model.field_name,
        old_value=model.old_value,
        new_value=model.new_value,
        changed_at=model.changed_at,
    )


_NEWEST_FIRST = (TaskHistoryModel.changed_at.desc(), TaskHistoryModel.seq.desc())


class ChangeAuditLog(EntityStore[ChangeRecord]):
    """Append-only field change log for tasks.

    Only :class:`planner.infra.repository.TaskRepository` appends; everything
    else here is read-side or retention. Values arrive already encoded (see
    :mod:`planner.domain.values`).
    """

    model = TaskHistoryModel

    def _to_entity(self, model: TaskHistoryModel) -> ChangeRecord:
        return _to_entity(model)

    def append(
        self,
        task_id: str,
        field_name: str,
        old_value: str | None,
        new_value: str | None,
        changed_at: datetime | None = None,
    ) -> ChangeRecord:
        with self.transaction() as session:
            row = TaskHistoryModel(
                id=self.generate_id(),
                task_id=task_id,
                field_name=field_name,
                old_value=old_value,
                new_value=new_value,
                changed_at=changed_at or self.now(),
            )
            session.add(row)
            session.flush()
            return _to_entity(row)

    def by_task(self, task_id: str) -> list[ChangeRecord]:
        stmt = (
            select(TaskHistoryModel)
            .where(TaskHistoryModel.task_id == task_id)
            .order_by(*_NEWEST_FIRST)
        )
        with self.transaction() as session:
            return [_to_entity(row) for row in session.scalars(stmt)]

    def by_task_and_field(self, task_id: str, field_name: str) -> list[ChangeRecord]:
        stmt = (
            select(TaskHistoryModel)
            .where(
                TaskHistoryModel.task_id == task_id,
                TaskHistoryModel.field_name == field_name,
            )
            .order_by(*_NEWEST_FIRST)
        )
        with self.transaction() as session:
            return [_to_entity(row) for row in session.scalars(stmt)]

    def by_task_with_details(self, task_id: str) -> list[ChangeRecordWithTask]:
        stmt = (
            select(TaskHistoryModel, TaskModel.name)
            .join(TaskModel, TaskModel.id == TaskHistoryModel.task_id)
            .where(TaskHistoryModel.task_id == task_id)
            .order_by(*_NEWEST_FIRST)
        )
        with self.transaction() as session:
            return [
                ChangeRecordWithTask(**vars(_to_entity(row)), task_name=name)
                for row, name in session.execute(stmt)
            ]

    def recent(self, limit: int = 50) -> list[ChangeRecord]:
        stmt = select(TaskHistoryModel).order_by(*_NEWEST_FIRST).limit(limit)
        with self.transaction() as session:
            return [_to_entity(row) for row in session.scalars(stmt)]

    def by_date_range(self, start: datetime, end: datetime) -> list[ChangeRecord]:
        stmt = (
            select(TaskHistoryModel)
            .where(TaskHistoryModel.changed_at.between(start, end))
            .order_by(*_NEWEST_FIRST)
        )
        with self.transaction() as session:
            return [_to_entity(row) for row in session.scalars(stmt)]

    def last_change(self, task_id: str, field_name: str) -> Optional[ChangeRecord]:
        stmt = (
            select(TaskHistoryModel)
            .where(
                TaskHistoryModel.task_id == task_id,
                TaskHistoryModel.field_name == field_name,
            )
            .order_by(*_NEWEST_FIRST)
            .limit(1)
        )
        with self.transaction() as session:
            row = session.scalar(stmt)
            return _to_entity(row) if row is not None else None

    def change_summary(self, task_id: str) -> list[FieldChangeCount]:
        change_count = func.count().label("change_count")
        stmt = (
            select(TaskHistoryModel.field_name, change_count)
            .where(TaskHistoryModel.task_id == task_id)
            .group_by(TaskHistoryModel.field_name)
            .order_by(change_count.desc(), TaskHistoryModel.field_name.asc())
        )
        with self.transaction() as session:
            return [
                FieldChangeCount(field_name=row.field_name, change_count=row.change_count)
                for row in session.execute(stmt)
            ]

    def count_for_task(self, task_id: str) -> int:
        return self.count_by("task_id", task_id)

    def prune_older_than(self, cutoff: datetime) -> int:
        with self.transaction() as session:
            result = session.execute(
                delete(TaskHistoryModel).where(TaskHistoryModel.changed_at < cutoff)
            )
        logger.info("Pruned %s history entries older than %s", result.rowcount, cutoff)
        return result.rowcount

    def delete_for_task(self, task_id: str) -> int:
        with self.transaction() as session:
            result = session.execute(
                delete(TaskHistoryModel).where(TaskHistoryModel.task_id == task_id)
            )
            return result.rowcount
