from __future__ import annotations

from datetime import timedelta
from typing import Any

from planner.domain.entities import (
    ChangeRecord,
    PageResult,
    TaskEntity,
    TaskWithRelations,
)
from planner.domain.errors import ValidationError
from planner.domain.filters import TaskFilters
from planner.domain.inputs import UNSET, TaskCreate, TaskPatch
from planner.infra.lists import ListRepository
from planner.infra.repository import TaskRepository


class TaskService:
    def __init__(
        self,
        repo: TaskRepository,
        lists: ListRepository,
        default_page_size: int = 20,
    ) -> None:
        self._repo = repo
        self._lists = lists
        self._default_page_size = default_page_size

    def list_tasks(self, filters: TaskFilters) -> list[TaskEntity]:
        return self._repo.find_with_filters(filters)

    def list_tasks_page(
        self, filters: TaskFilters, page: int = 1, limit: int | None = None
    ) -> PageResult[TaskEntity]:
        return self._repo.find_with_filters_paginated(
            filters, page, limit if limit is not None else self._default_page_size
        )

    def get_task(self, task_id: str) -> TaskEntity | None:
        return self._repo.find_by_id(task_id)

    def get_task_details(self, task_id: str) -> TaskWithRelations | None:
        return self._repo.find_with_relations(task_id)

    def create_task(self, data: TaskCreate | dict[str, Any]) -> TaskEntity:
        if isinstance(data, dict):
            data = self._normalize_create(data)
        data.validate()
        self._require_list(data.list_id)
        return self._repo.create(data)

    def update_task(self, task_id: str, data: TaskPatch | dict[str, Any]) -> TaskEntity | None:
        patch = TaskPatch.from_dict(data) if isinstance(data, dict) else data
        patch.validate()
        if patch.list_id is not UNSET:
            self._require_list(patch.list_id)
        return self._repo.update(task_id, patch)

    def complete_task(self, task_id: str) -> TaskEntity | None:
        return self._repo.mark_complete(task_id)

    def reopen_task(self, task_id: str) -> TaskEntity | None:
        return self._repo.mark_incomplete(task_id)

    def move_task(self, task_id: str, list_id: str) -> TaskEntity | None:
        self._require_list(list_id)
        return self._repo.move_to_list(task_id, list_id)

    def delete_task(self, task_id: str) -> TaskEntity | None:
        return self._repo.soft_delete(task_id)

    def restore_task(self, task_id: str) -> TaskEntity | None:
        return self._repo.restore(task_id)

    def purge_task(self, task_id: str) -> bool:
        return self._repo.purge(task_id)

    def empty_trash(self, older_than_days: int | None = None) -> int:
        if older_than_days is None:
            return self._repo.purge_all()
        if older_than_days < 0:
            raise ValidationError("older_than_days", "must not be negative")
        cutoff = self._repo.now() - timedelta(days=older_than_days)
        return self._repo.purge_older_than(cutoff)

    def task_history(self, task_id: str) -> list[ChangeRecord]:
        return self._repo.history.by_task(task_id)

    def prune_history(self, older_than_days: int) -> int:
        if older_than_days < 0:
            raise ValidationError("older_than_days", "must not be negative")
        cutoff = self._repo.now() - timedelta(days=older_than_days)
        return self._repo.history.prune_older_than(cutoff)

    def _require_list(self, list_id: str) -> None:
        if not self._lists.exists(list_id):
            raise ValidationError("list_id", f"list {list_id} does not exist")

    @staticmethod
    def _normalize_create(data: dict[str, Any]) -> TaskCreate:
        normalized = dict(data)
        if isinstance(normalized.get("name"), str):
            normalized["name"] = normalized["name"].strip()
        if normalized.get("priority") is None:
            normalized.pop("priority", None)
        try:
            return TaskCreate(**normalized)
        except TypeError as exc:
            raise ValidationError("task", str(exc)) from exc
