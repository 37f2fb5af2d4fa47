"""CLI-интерфейс для запуска синхронизации."""
from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict
from pathlib import Path
from typing import Iterable, Optional, Tuple

import typer

from taskmaster_jira_sync.clients import JiraClient
from taskmaster_jira_sync.config import AppConfig
from taskmaster_jira_sync.services import JsonTaskStore, SyncEngine, TagClassifier
from taskmaster_jira_sync.services.signals import TAG_SYNC_ERROR, TAG_SYNCED, TASK_SYNC_ERROR

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="Синхронизация задач TaskMaster ↔ Jira")


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT)


def load_config(config_path: Path, *, dry_run_override: Optional[bool] = None) -> AppConfig:
    config = AppConfig.load(config_path)
    if dry_run_override is not None:
        config.sync.dry_run = dry_run_override
    return config


def build_engine(config: AppConfig) -> tuple[SyncEngine, JiraClient, JsonTaskStore]:
    store = JsonTaskStore(config.tasks_path, poll_interval=config.sync.poll_interval)
    jira = JiraClient(config)
    engine = SyncEngine(config, jira, store)
    engine.signals.subscribe(
        TAG_SYNCED, lambda data: LOGGER.info("Тег %s: %s задач", data["tag_name"], data["task_count"])
    )
    engine.signals.subscribe(
        TAG_SYNC_ERROR, lambda data: LOGGER.error("Тег %s: %s", data["tag_name"], data["error"])
    )
    engine.signals.subscribe(
        TASK_SYNC_ERROR, lambda data: LOGGER.error("Задача %s: %s", data["task_id"], data["error"])
    )
    return engine, jira, store


def _format_table(title: str, rows: Iterable[Tuple[str, str]]) -> str:
    rows = list(rows)
    if not rows:
        return f"{title}: нет данных"
    id_width = max(len(r[0]) for r in rows)
    name_width = max(len(r[1]) for r in rows)
    header = (
        f"{title}:\n"
        f"  {'ID'.ljust(id_width)}  |  {'Name'.ljust(name_width)}\n"
        f"  {'-' * id_width}--+-{'-' * name_width}"
    )
    body = "\n".join(f"  {row_id.ljust(id_width)}  |  {name}" for row_id, name in rows)
    return f"{header}\n{body}"


@app.command("start")
def start(
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c", help="Путь к YAML конфигурации"),
    verbosity: int = typer.Option(0, "--verbose", "-v", count=True, help="Уровень логирования"),
    dry_run: Optional[bool] = typer.Option(
        None,
        "--dry-run/--no-dry-run",
        help="Не изменять данные в Jira (по умолчанию берётся из конфигурации)",
    ),
) -> None:
    """Начальная синхронизация и наблюдение за файлом задач TaskMaster."""
    configure_logging(verbosity)
    config = load_config(config_path, dry_run_override=dry_run)
    engine, _, store = build_engine(config)
    store.start_watching()
    engine.start()
    typer.echo(f"Наблюдение за {store.path}, Ctrl+C для остановки")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        typer.echo("Остановка")
    finally:
        engine.stop()
        store.stop_watching()


@app.command("sync-once")
def sync_once(
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
    verbosity: int = typer.Option(0, "--verbose", "-v", count=True),
    dry_run: Optional[bool] = typer.Option(
        None,
        "--dry-run/--no-dry-run",
        help="Не изменять данные в Jira (по умолчанию берётся из конфигурации)",
    ),
) -> None:
    """Один проход синхронизации всех тегов TaskMaster."""
    configure_logging(verbosity)
    config = load_config(config_path, dry_run_override=dry_run)
    engine, _, _ = build_engine(config)
    stats = engine.process_store_updates()
    typer.echo(json.dumps({k: asdict(v) for k, v in stats.items()}, indent=2, ensure_ascii=False))


@app.command("sync-issue")
def sync_issue(
    issue_key: str = typer.Argument(..., help="Ключ задачи Jira, например PROJ-9"),
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
    verbosity: int = typer.Option(0, "--verbose", "-v", count=True),
) -> None:
    """Переносит состояние задачи Jira в TaskMaster."""
    configure_logging(verbosity)
    config = load_config(config_path)
    engine, jira, _ = build_engine(config)
    issue = jira.get_issue(issue_key)
    changes = engine.on_tracker_issue_changed(issue)
    if changes is None:
        typer.echo(f"Задача {issue_key} не синхронизирована")
        raise typer.Exit(code=1)
    typer.echo(json.dumps(changes, indent=2, ensure_ascii=False))


@app.command("verify")
def verify(
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
    verbosity: int = typer.Option(0, "--verbose", "-v", count=True),
) -> None:
    """Проверяет соединение с Jira и доступность файла задач."""
    configure_logging(verbosity)
    config = load_config(config_path)
    _, jira, store = build_engine(config)
    user = jira.test_connection()
    groups = store.read_all_grouped_by_tag()
    typer.echo(f"Соединение успешно: {user.get('displayName') or user.get('emailAddress')}")
    typer.echo(f"Тегов TaskMaster: {len(groups)}")


@app.command("list-projects")
def list_projects(
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
    page_size: int = typer.Option(50, help="Размер страницы при запросе проектов Jira"),
    verbosity: int = typer.Option(0, "--verbose", "-v", count=True),
) -> None:
    """Выводит проекты Jira и теги TaskMaster с числом синхронизируемых задач."""
    configure_logging(verbosity)
    config = load_config(config_path)
    _, jira, store = build_engine(config)
    classifier = TagClassifier(config.sync.tag_prefixes, default_project_key=config.sync.default_project_key)

    projects = [
        (str(item.get("key") or item.get("id") or ""), str(item.get("name") or ""))
        for item in jira.iter_projects(page_size=page_size)
    ]
    tags = [
        (tag_name, f"{len(classifier.filter_syncable(tasks))}/{len(tasks)}")
        for tag_name, tasks in store.read_all_grouped_by_tag().items()
    ]
    typer.echo(_format_table("Jira projects", projects))
    typer.echo()
    typer.echo(_format_table("TaskMaster tags (syncable/total)", tags))


if __name__ == "__main__":
    app()
