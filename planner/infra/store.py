from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Generic, Iterator, Optional, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from planner.domain.errors import ValidationError

from .db import Clock, Database, utcnow

EntityT = TypeVar("EntityT")


class EntityStore(Generic[EntityT]):
    """Identity-keyed CRUD primitives shared by every table-backed store.

    Subclasses set ``model`` and implement ``_to_entity``. Column names passed
    to ``find_by``/``count_by`` are checked against the model's table so
    caller-supplied field names never reach SQL unvetted.
    """

    model: Any = None
    id_column = "id"

    def __init__(self, db: Database, clock: Clock = utcnow) -> None:
        self._db = db
        self._clock = clock

    def _to_entity(self, model: Any) -> EntityT:
        raise NotImplementedError

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        with self._db.transaction() as session:
            yield session

    def now(self) -> datetime:
        return self._clock()

    @staticmethod
    def generate_id() -> str:
        return str(uuid.uuid4())

    def _column(self, field: str):
        table = self.model.__table__
        if field not in table.columns:
            raise ValidationError(field, f"is not a column of {table.name}")
        return getattr(self.model, field)

    def _get(self, session: Session, entity_id: str) -> Any:
        return session.scalar(
            select(self.model).where(self._column(self.id_column) == entity_id)
        )

    def find_by_id(self, entity_id: str) -> Optional[EntityT]:
        with self.transaction() as session:
            row = self._get(session, entity_id)
            return self._to_entity(row) if row is not None else None

    def find_all(self) -> list[EntityT]:
        with self.transaction() as session:
            return [self._to_entity(row) for row in session.scalars(select(self.model))]

    def find_by(self, field: str, value: Any) -> list[EntityT]:
        column = self._column(field)
        with self.transaction() as session:
            stmt = select(self.model).where(column == value)
            return [self._to_entity(row) for row in session.scalars(stmt)]

    def find_one_by(self, field: str, value: Any) -> Optional[EntityT]:
        column = self._column(field)
        with self.transaction() as session:
            row = session.scalar(select(self.model).where(column == value).limit(1))
            return self._to_entity(row) if row is not None else None

    def exists(self, entity_id: str) -> bool:
        id_column = self._column(self.id_column)
        with self.transaction() as session:
            found = session.scalar(select(id_column).where(id_column == entity_id).limit(1))
            return found is not None

    def count(self) -> int:
        with self.transaction() as session:
            return session.scalar(select(func.count()).select_from(self.model)) or 0

    def count_by(self, field: str, value: Any) -> int:
        column = self._column(field)
        with self.transaction() as session:
            return session.scalar(
                select(func.count()).select_from(self.model).where(column == value)
            ) or 0

    def delete(self, entity_id: str) -> bool:
        id_column = self._column(self.id_column)
        with self.transaction() as session:
            result = session.execute(delete(self.model).where(id_column == entity_id))
            return result.rowcount > 0
