from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from planner.infra.db import Database, create_db_engine, init_db
from planner.infra.history import ChangeAuditLog
from planner.infra.lists import ListRepository
from planner.infra.models import LabelModel, task_labels
from planner.infra.repository import TaskRepository


class TickingClock:
    """Deterministic clock: every reading is one second after the previous one."""

    def __init__(self, start: datetime = datetime(2026, 1, 5, 9, 0, 0)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current

    def advance(self, **delta: float) -> None:
        self.current += timedelta(**delta)


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Database:
    return Database(engine)


@pytest.fixture
def lists(db, clock) -> ListRepository:
    return ListRepository(db, clock)


@pytest.fixture
def history(db, clock) -> ChangeAuditLog:
    return ChangeAuditLog(db, clock)


@pytest.fixture
def repo(db, history, clock) -> TaskRepository:
    return TaskRepository(db, history, clock)


@pytest.fixture
def inbox(lists):
    return lists.ensure_default()


@pytest.fixture
def add_label(db, clock):
    def _add(task_id: str, name: str) -> str:
        with db.transaction() as session:
            label = session.query(LabelModel).filter_by(name=name).one_or_none()
            if label is None:
                label = LabelModel(id=f"label-{name}", name=name, created_at=clock())
                session.add(label)
                session.flush()
            session.execute(task_labels.insert().values(task_id=task_id, label_id=label.id))
            return label.id

    return _add
