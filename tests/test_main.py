from __future__ import annotations

import pytest

from planner.config import Settings
from planner.domain.filters import TaskFilters
from planner.domain.inputs import TaskCreate
from planner.main import _build_parser, build_container, main


@pytest.fixture
def database_url(tmp_path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'planner.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    return url


def test_build_container_wires_one_database(tmp_path) -> None:
    settings = Settings(database_url=f"sqlite:///{tmp_path / 'planner.db'}", default_page_size=7)

    container = build_container(settings)
    inbox = container.lists.find_default()
    task = container.service.create_task(TaskCreate(list_id=inbox.id, name="Water plants"))
    container.service.complete_task(task.id)

    assert container.tasks.history is container.history
    assert container.history.count_for_task(task.id) == 2
    assert container.service.list_tasks_page(TaskFilters()).limit == 7


def test_parser_defaults_come_from_settings() -> None:
    parser = _build_parser(Settings(trash_retention_days=14, history_retention_days=90))

    assert parser.parse_args(["purge-trash"]).older_than_days == 14
    assert parser.parse_args(["purge-trash", "--all"]).all is True
    assert parser.parse_args(["prune-history"]).days == 90


def test_main_runs_maintenance_commands(database_url, capsys) -> None:
    assert main(["init-db"]) == 0

    container = build_container(Settings(database_url=database_url))
    inbox = container.lists.find_default()
    kept = container.service.create_task(TaskCreate(list_id=inbox.id, name="Keep"))
    trashed = container.service.create_task(TaskCreate(list_id=inbox.id, name="Trash"))
    container.service.delete_task(trashed.id)

    assert main(["purge-trash", "--all"]) == 0
    assert main(["prune-history", "--days", "1"]) == 0

    out = capsys.readouterr().out
    assert "Purged 1 task(s)" in out
    assert "Pruned 0 history entries" in out
    assert container.tasks.find_by_id(trashed.id) is None
    assert container.tasks.find_by_id(kept.id) is not None


def test_main_reports_failures_with_exit_code(database_url, capsys) -> None:
    assert main(["prune-history", "--days", "-1"]) == 1
    assert "Pruned" not in capsys.readouterr().out
