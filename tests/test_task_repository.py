from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from planner.domain.enums import Priority
from planner.domain.errors import InvariantViolation, StorageUnavailableError, ValidationError
from planner.domain.filters import TaskFilters
from planner.domain.inputs import TaskCreate, TaskPatch
from planner.infra.db import Database
from planner.infra.history import ChangeAuditLog
from planner.infra.models import SubtaskModel, TaskModel
from planner.infra.repository import StagedChange, TaskRepository


@pytest.fixture
def task(repo, inbox):
    return repo.create(
        TaskCreate(
            list_id=inbox.id,
            name="Write report",
            description="Quarterly numbers",
            estimate_minutes=90,
        )
    )


def _fields(history, task_id: str) -> list[str]:
    return sorted(record.field_name for record in history.by_task(task_id))


def test_create_sets_defaults_and_writes_no_history(repo, history, inbox) -> None:
    created = repo.create(TaskCreate(list_id=inbox.id, name="Buy milk"))

    assert created.name == "Buy milk"
    assert created.priority is Priority.NONE
    assert created.completed is False
    assert created.completed_at is None
    assert created.deleted_at is None
    assert created.created_at == created.updated_at
    assert history.by_task(created.id) == []


def test_create_rejects_blank_name_before_touching_storage(repo, inbox) -> None:
    with pytest.raises(ValidationError) as excinfo:
        repo.create(TaskCreate(list_id=inbox.id, name="   "))

    assert excinfo.value.field == "name"
    assert repo.count() == 0


def test_create_rejects_unknown_priority(repo, inbox) -> None:
    with pytest.raises(ValidationError) as excinfo:
        repo.create(TaskCreate(list_id=inbox.id, name="Buy milk", priority="urgent"))

    assert excinfo.value.field == "priority"


def test_update_unknown_id_returns_none(repo) -> None:
    assert repo.update("missing", TaskPatch(name="Anything")) is None


def test_update_writes_one_record_per_changed_field(repo, history, task) -> None:
    updated = repo.update(
        task.id,
        TaskPatch(name="Write final report", description="Quarterly numbers", estimate_minutes=120),
    )

    assert updated.name == "Write final report"
    assert updated.estimate_minutes == 120
    assert updated.updated_at > task.updated_at
    assert _fields(history, task.id) == ["estimate_minutes", "name"]

    name_change = history.last_change(task.id, "name")
    assert json.loads(name_change.old_value) == "Write report"
    assert json.loads(name_change.new_value) == "Write final report"


def test_update_with_current_snapshot_is_a_no_op(repo, history, task) -> None:
    snapshot = TaskPatch(
        list_id=task.list_id,
        name=task.name,
        description=task.description,
        scheduled_at=task.scheduled_at,
        deadline_at=task.deadline_at,
        estimate_minutes=task.estimate_minutes,
        actual_minutes=task.actual_minutes,
        priority=task.priority,
        recurring_rule=task.recurring_rule,
        completed=task.completed,
    )

    result = repo.update(task.id, snapshot)

    assert result == task
    assert repo.find_by_id(task.id).updated_at == task.updated_at
    assert history.by_task(task.id) == []


def test_update_compares_by_value(repo, history, task) -> None:
    repo.update(task.id, TaskPatch(scheduled_at=datetime(2026, 3, 1, 9, 0)))
    repo.update(task.id, TaskPatch(scheduled_at=datetime(2026, 3, 1, 9, 0), priority="none"))

    assert _fields(history, task.id) == ["scheduled_at"]


def test_setting_a_field_to_none_is_recorded_as_null(repo, history, task) -> None:
    updated = repo.update(task.id, TaskPatch(description=None))

    assert updated.description is None
    record = history.last_change(task.id, "description")
    assert record.old_value == json.dumps("Quarterly numbers")
    assert record.new_value is None


def test_unsupplied_fields_are_left_untouched(repo, task) -> None:
    updated = repo.update(task.id, TaskPatch(priority=Priority.LOW))

    assert updated.description == "Quarterly numbers"
    assert updated.estimate_minutes == 90


def test_priority_and_completion_in_one_call(repo, history, task) -> None:
    updated = repo.update(task.id, TaskPatch(priority="high", completed=True))

    assert updated.priority is Priority.HIGH
    assert updated.completed is True
    assert updated.completed_at is not None
    assert updated.updated_at > task.updated_at
    assert _fields(history, task.id) == ["completed", "completed_at", "priority"]

    completed_at = history.last_change(task.id, "completed_at")
    assert completed_at.old_value is None
    assert json.loads(completed_at.new_value) == updated.completed_at.isoformat()
    assert history.last_change(task.id, "completed").new_value == "true"


def test_completion_flag_and_timestamp_move_together(repo, history, task) -> None:
    done = repo.mark_complete(task.id)
    assert done.completed and done.completed_at is not None

    again = repo.mark_complete(task.id)
    assert again == done

    reopened = repo.mark_incomplete(task.id)
    assert reopened.completed is False
    assert reopened.completed_at is None

    cleared = history.last_change(task.id, "completed_at")
    assert json.loads(cleared.old_value) == done.completed_at.isoformat()
    assert cleared.new_value is None
    assert history.count_for_task(task.id) == 4


def test_convenience_wrappers(repo, lists, task) -> None:
    work = lists.create("Work")
    when = datetime(2026, 4, 2, 8, 30)

    assert repo.move_to_list(task.id, work.id).list_id == work.id
    assert repo.set_priority(task.id, Priority.MEDIUM).priority is Priority.MEDIUM
    assert repo.set_due_date(task.id, when).scheduled_at == when
    assert repo.set_due_date(task.id, None).scheduled_at is None


def test_failed_history_write_rolls_back_the_task_row(repo, history, task, monkeypatch) -> None:
    original_append = history.append
    calls = []

    def flaky_append(*args, **kwargs):
        calls.append(args)
        if len(calls) == 2:
            raise OperationalError("INSERT INTO task_history", {}, Exception("disk I/O error"))
        return original_append(*args, **kwargs)

    monkeypatch.setattr(history, "append", flaky_append)

    with pytest.raises(StorageUnavailableError):
        repo.update(task.id, TaskPatch(name="Write final report", priority="high"))

    monkeypatch.undo()
    stored = repo.find_by_id(task.id)
    assert stored == task
    assert history.by_task(task.id) == []


def test_staged_completed_at_without_completed_is_rejected(repo, task) -> None:
    with pytest.raises(InvariantViolation):
        repo._apply(
            task.id, [StagedChange("completed_at", None, datetime(2026, 1, 1))], datetime(2026, 1, 1)
        )


def test_history_must_share_the_database(engine, db) -> None:
    with pytest.raises(InvariantViolation):
        TaskRepository(db, ChangeAuditLog(Database(engine)))


def test_soft_delete_then_restore(repo, history, task) -> None:
    deleted = repo.soft_delete(task.id)

    assert deleted.deleted_at is not None
    assert deleted.updated_at > task.updated_at
    assert deleted.completed is False
    assert repo.find_with_filters(TaskFilters()) == []

    restored = repo.restore(task.id)

    assert restored.deleted_at is None
    assert [t.id for t in repo.find_with_filters(TaskFilters())] == [task.id]

    records = history.by_task_and_field(task.id, "deleted_at")
    assert len(records) == 2
    restore_record, delete_record = records
    assert delete_record.old_value is None
    assert json.loads(delete_record.new_value) == deleted.deleted_at.isoformat()
    assert json.loads(restore_record.old_value) == deleted.deleted_at.isoformat()
    assert restore_record.new_value is None


def test_soft_delete_and_restore_unknown_id(repo) -> None:
    assert repo.soft_delete("missing") is None
    assert repo.restore("missing") is None


def test_repeated_soft_delete_keeps_the_original_timestamp(repo, history, task) -> None:
    first = repo.soft_delete(task.id)
    second = repo.soft_delete(task.id)

    assert second.deleted_at == first.deleted_at
    assert history.count_for_task(task.id) == 1
    repo.restore(task.id)
    assert repo.restore(task.id).deleted_at is None
    assert history.count_for_task(task.id) == 2


def test_update_still_resolves_soft_deleted_tasks(repo, task) -> None:
    repo.soft_delete(task.id)

    assert repo.update(task.id, TaskPatch(name="Archived report")).name == "Archived report"


def test_find_deleted_and_by_list(repo, lists, inbox, task) -> None:
    work = lists.create("Work")
    other = repo.create(TaskCreate(list_id=work.id, name="Send invoice"))
    repo.create(TaskCreate(list_id=work.id, name="Book flights"))
    repo.soft_delete(task.id)
    repo.soft_delete(other.id)

    assert [t.id for t in repo.find_deleted()] == [other.id, task.id]
    assert [t.id for t in repo.find_deleted_by_list(work.id)] == [other.id]


def test_purge_only_removes_deleted_rows(repo, task) -> None:
    assert repo.purge(task.id) is False
    assert repo.find_by_id(task.id) is not None

    repo.soft_delete(task.id)

    assert repo.purge(task.id) is True
    assert repo.find_by_id(task.id) is None


def test_purge_cascades_to_history_and_children(repo, history, db, task, clock) -> None:
    repo.update(task.id, TaskPatch(priority="low"))
    with db.transaction() as session:
        session.add(SubtaskModel(id="sub-1", task_id=task.id, name="Collect data", created_at=clock()))
    repo.soft_delete(task.id)

    repo.purge(task.id)

    assert history.count_for_task(task.id) == 0
    with db.transaction() as session:
        assert session.scalars(select(SubtaskModel)).all() == []


def test_purge_all_and_purge_older_than(repo, inbox, clock) -> None:
    old = repo.create(TaskCreate(list_id=inbox.id, name="Old"))
    recent = repo.create(TaskCreate(list_id=inbox.id, name="Recent"))
    active = repo.create(TaskCreate(list_id=inbox.id, name="Active"))
    repo.soft_delete(old.id)
    clock.advance(days=10)
    cutoff = clock.current
    clock.advance(days=1)
    repo.soft_delete(recent.id)

    assert repo.purge_older_than(cutoff) == 1
    assert repo.find_by_id(old.id) is None
    assert repo.find_by_id(recent.id) is not None

    assert repo.purge_all() == 1
    assert [t.id for t in repo.find_all()] == [active.id]


def test_convenience_reads(repo, lists, inbox, clock) -> None:
    work = lists.create("Work")
    day = datetime(2026, 5, 4)
    morning = repo.create(TaskCreate(list_id=work.id, name="Standup", scheduled_at=day.replace(hour=9)))
    repo.create(TaskCreate(list_id=work.id, name="Next day", scheduled_at=day + timedelta(days=1)))
    late = repo.create(
        TaskCreate(list_id=inbox.id, name="Taxes", deadline_at=clock.current - timedelta(days=2))
    )
    repo.mark_complete(morning.id)

    assert [t.name for t in repo.find_by_date(day.date())] == ["Standup"]
    assert [t.id for t in repo.find_overdue()] == [late.id]
    assert repo.count_by_list(work.id) == 2
    assert repo.completed_count_by_list(work.id) == 1
    assert {t.name for t in repo.find_by_list(work.id)} == {"Standup", "Next day"}


def test_aware_datetimes_are_stored_as_naive_utc(repo, history, task) -> None:
    when = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    first = repo.update(task.id, TaskPatch(scheduled_at=when))
    second = repo.update(task.id, TaskPatch(scheduled_at=when))
    third = repo.update(
        task.id, TaskPatch(scheduled_at=datetime(2026, 3, 1, 10, 0, tzinfo=timezone(timedelta(hours=1))))
    )

    assert first.scheduled_at == datetime(2026, 3, 1, 9, 0)
    assert second == first
    assert third == first
    assert history.count_for_task(task.id) == 1
    assert json.loads(history.last_change(task.id, "scheduled_at").new_value) == "2026-03-01T09:00:00"


def test_create_normalizes_aware_deadline(repo, inbox) -> None:
    created = repo.create(
        TaskCreate(
            list_id=inbox.id,
            name="Call bank",
            deadline_at=datetime(2026, 3, 1, 17, 30, tzinfo=timezone(timedelta(hours=-5))),
        )
    )

    assert created.deadline_at == datetime(2026, 3, 1, 22, 30)


def test_non_datetime_schedule_is_rejected(repo, task) -> None:
    with pytest.raises(ValidationError) as excinfo:
        repo.update(task.id, TaskPatch(scheduled_at="tomorrow"))

    assert excinfo.value.field == "scheduled_at"


def test_apply_to_a_vanished_task_writes_nothing(repo, history, task, db) -> None:
    change = StagedChange("name", task.name, "Renamed")
    with db.transaction() as session:
        session.delete(session.get(TaskModel, task.id))

    assert repo._apply(task.id, [change], datetime(2026, 1, 1)) is False
    assert history.count_for_task(task.id) == 0
