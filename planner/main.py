from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass

from planner.config import Settings, load_settings
from planner.domain.errors import PlannerError
from planner.infra.db import Database, create_db_engine, init_db
from planner.infra.history import ChangeAuditLog
from planner.infra.lists import ListRepository
from planner.infra.logging import setup_logging
from planner.infra.repository import TaskRepository
from planner.services.task_service import TaskService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    db: Database
    lists: ListRepository
    history: ChangeAuditLog
    tasks: TaskRepository
    service: TaskService


def build_container(settings: Settings) -> Container:
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    db = Database(engine)
    lists = ListRepository(db)
    history = ChangeAuditLog(db)
    tasks = TaskRepository(db, history)
    lists.ensure_default()
    service = TaskService(tasks, lists, default_page_size=settings.default_page_size)
    return Container(db=db, lists=lists, history=history, tasks=tasks, service=service)


def _build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="planner", description="Task store maintenance")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="create tables and the default Inbox list")

    purge = commands.add_parser("purge-trash", help="permanently remove soft-deleted tasks")
    purge.add_argument(
        "--older-than-days",
        type=int,
        default=settings.trash_retention_days,
        help="only purge tasks deleted at least this many days ago",
    )
    purge.add_argument("--all", action="store_true", help="purge every deleted task")

    prune = commands.add_parser("prune-history", help="drop old change history entries")
    prune.add_argument(
        "--days",
        type=int,
        default=settings.history_retention_days,
        help="keep entries newer than this many days",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    settings = load_settings()
    setup_logging(settings)
    args = _build_parser(settings).parse_args(argv)

    try:
        container = build_container(settings)
        if args.command == "init-db":
            logger.info("Database ready at %s", settings.database_url)
        elif args.command == "purge-trash":
            older_than = None if args.all else args.older_than_days
            count = container.service.empty_trash(older_than)
            print(f"Purged {count} task(s)")
        elif args.command == "prune-history":
            count = container.service.prune_history(args.days)
            print(f"Pruned {count} history entr{'y' if count == 1 else 'ies'}")
    except PlannerError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
