from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select, update

from planner.domain.entities import ListEntity
from planner.domain.errors import ValidationError

from .models import ListModel
from .store import EntityStore

logger = logging.getLogger(__name__)

DEFAULT_LIST_NAME = "Inbox"
DEFAULT_LIST_COLOR = "#6366f1"


def list_to_entity(model: ListModel) -> ListEntity:
    return ListEntity(
        id=model.id,
        name=model.name,
        color=model.color,
        emoji=model.emoji,
        is_default=bool(model.is_default),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


class ListRepository(EntityStore[ListEntity]):
    model = ListModel

    def _to_entity(self, model: ListModel) -> ListEntity:
        return list_to_entity(model)

    def create(
        self,
        name: str,
        color: str = DEFAULT_LIST_COLOR,
        emoji: str | None = None,
        is_default: bool = False,
    ) -> ListEntity:
        if not name or not name.strip():
            raise ValidationError("name", "must be a non-empty string")
        list_id = self.generate_id()
        timestamp = self.now()
        with self.transaction() as session:
            if is_default:
                session.execute(
                    update(ListModel)
                    .where(ListModel.is_default.is_(True))
                    .values(is_default=False)
                    .execution_options(synchronize_session=False)
                )
            session.add(
                ListModel(
                    id=list_id,
                    name=name,
                    color=color,
                    emoji=emoji,
                    is_default=is_default,
                    created_at=timestamp,
                    updated_at=timestamp,
                )
            )
            session.flush()
        return self.find_by_id(list_id)

    def find_default(self) -> Optional[ListEntity]:
        with self.transaction() as session:
            row = session.scalar(select(ListModel).where(ListModel.is_default.is_(True)).limit(1))
            return list_to_entity(row) if row is not None else None

    def ensure_default(self) -> ListEntity:
        existing = self.find_default()
        if existing is not None:
            return existing
        inbox = self.create(DEFAULT_LIST_NAME, emoji="📥", is_default=True)
        logger.info("Created default %s list %s", DEFAULT_LIST_NAME, inbox.id)
        return inbox
