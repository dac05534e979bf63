from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from planner.domain.errors import StorageUnavailableError

logger = logging.getLogger(__name__)

Base = declarative_base()

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def create_db_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, pool_pre_ping=True)

    if url.database in (None, "", ":memory:"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(database_url)

    # child rows (history, subtasks, ...) rely on ON DELETE CASCADE
    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_db(engine: Engine) -> None:
    from . import models  # noqa: F401  register tables

    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        Base.metadata.create_all(engine)
    except SQLAlchemyError as exc:
        raise StorageUnavailableError(f"cannot initialize database: {exc}") from exc


class Database:
    """Session owner for one engine.

    ``transaction()`` yields the session of the outermost open transaction on
    the current thread, so nested calls share one unit of work and only the
    outermost exit commits. Any exception rolls the whole unit back; driver
    errors are re-raised as :class:`StorageUnavailableError`.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = sessionmaker(
            bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
        )
        self._local = threading.local()

    @property
    def in_transaction(self) -> bool:
        return getattr(self._local, "session", None) is not None

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        active = getattr(self._local, "session", None)
        if active is not None:
            yield active
            return

        session = self._session_factory()
        self._local.session = session
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Transaction rolled back: %s", exc)
            raise StorageUnavailableError(f"storage unavailable: {exc}") from exc
        except BaseException:
            session.rollback()
            raise
        finally:
            self._local.session = None
            session.close()
