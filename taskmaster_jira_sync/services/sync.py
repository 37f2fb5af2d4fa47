"""Бизнес-логика двусторонней синхронизации задач."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from tqdm import tqdm

from taskmaster_jira_sync.config import AppConfig
from taskmaster_jira_sync.errors import NotFoundError
from taskmaster_jira_sync.models import Issue, SyncStats, Task
from taskmaster_jira_sync.ports import METADATA_TAG, TaskStore, TrackerGateway
from taskmaster_jira_sync.services.debounce import Debouncer, TimerFactory
from taskmaster_jira_sync.services.field_mapper import FieldMapper
from taskmaster_jira_sync.services.rate_limiter import RateLimiter
from taskmaster_jira_sync.services.signals import (
    ISSUE_SYNC_ERROR,
    ISSUE_SYNCED,
    TAG_SYNC_ERROR,
    TAG_SYNCED,
    TASK_SYNC_ERROR,
    TASK_SYNCED,
    SignalBus,
)
from taskmaster_jira_sync.services.sync_locks import SyncLockTable
from taskmaster_jira_sync.services.tag_classifier import TagClassifier, project_tag

LOGGER = logging.getLogger(__name__)

JIRA_SERVICE = "jira"

CREATED = "created"
UPDATED = "updated"
FAILED = "failed"


class SyncEngine:
    """Оркестратор синхронизации TaskMaster ↔ Jira.

    Три точки входа (тег, задача, задача Jira) защищены от повторного входа
    таблицей блокировок: если синхронизация того же ключа уже идёт, вызов
    пропускается. Ошибки логируются и публикуются сигналами, наружу не
    пробрасываются.
    """

    def __init__(
        self,
        config: AppConfig,
        tracker: TrackerGateway,
        store: TaskStore,
        *,
        mapper: Optional[FieldMapper] = None,
        classifier: Optional[TagClassifier] = None,
        locks: Optional[SyncLockTable] = None,
        signals: Optional[SignalBus] = None,
        limiter: Optional[RateLimiter] = None,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        self._config = config
        self._tracker = tracker
        self._store = store
        self._mapper = mapper or FieldMapper(
            config.field_mapping, attribution_fields=config.attribution_fields
        )
        self._classifier = classifier or TagClassifier(
            config.sync.tag_prefixes, default_project_key=config.sync.default_project_key
        )
        self._locks = locks or SyncLockTable()
        self.signals = signals or SignalBus()
        self._limiter = limiter or RateLimiter(config.rate_limits)
        self._debouncer = Debouncer(
            config.sync.debounce_seconds, self.process_store_updates, timer_factory=timer_factory
        )
        self._subscribed = False

    # region lifecycle
    def start(self) -> Dict[str, SyncStats]:
        """Подписывается на изменения хранилища и выполняет начальную синхронизацию."""
        if not self._subscribed:
            self._store.on_change(self.handle_store_change)
            self._subscribed = True
        LOGGER.info("Начальная синхронизация TaskMaster")
        results = self.process_store_updates()
        LOGGER.info("Начальная синхронизация завершена: тегов %s", len(results))
        return results

    def stop(self) -> None:
        self._debouncer.cancel()

    # endregion

    # region change detection
    def handle_store_change(self) -> None:
        """Уведомление хранилища: реакция откладывается до окончания серии изменений."""
        self._debouncer.trigger()

    def process_store_updates(self) -> Dict[str, SyncStats]:
        """Перечитывает все задачи и синхронизирует каждый тег заново."""
        results: Dict[str, SyncStats] = {}
        try:
            groups = self._store.read_all_grouped_by_tag()
        except Exception:  # noqa: BLE001 - цикл наблюдения не должен останавливаться
            LOGGER.exception("Не удалось прочитать задачи TaskMaster")
            return results
        for tag_name, tasks in groups.items():
            if tag_name == METADATA_TAG:
                continue
            stats = self.on_tag_changed(tag_name, tasks)
            if stats is not None:
                results[tag_name] = stats
        return results

    # endregion

    # region public API
    def on_tag_changed(self, tag_name: str, tasks: Iterable[Task]) -> Optional[SyncStats]:
        """Синхронизирует задачи тега. None, если синхронизация выключена или уже идёт."""
        if not self._pushes_to_tracker():
            return None
        lock_key = f"tag:{tag_name}"
        if not self._locks.try_acquire(lock_key):
            LOGGER.debug("Синхронизация тега %s уже выполняется", tag_name)
            return None
        stats = SyncStats()
        try:
            tasks = list(tasks)
            syncable = self._classifier.filter_syncable(tasks)
            stats.skipped = len(tasks) - len(syncable)
            if not syncable:
                LOGGER.info("В теге %s нет задач для синхронизации", tag_name)
                return stats
            for project_key, project_tasks in self._classifier.group_by_project(syncable).items():
                stats.merge(self._sync_project(tag_name, project_key, project_tasks))
            LOGGER.info("Тег %s синхронизирован (%s задач)", tag_name, len(syncable))
            self.signals.publish(TAG_SYNCED, tag_name=tag_name, task_count=len(syncable))
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Ошибка синхронизации тега %s", tag_name)
            self.signals.publish(TAG_SYNC_ERROR, tag_name=tag_name, error=exc)
        finally:
            self._locks.release(lock_key)
        return stats

    def on_task_changed(
        self,
        task: Union[Task, Dict[str, Any]],
        tag_name: str = "master",
        *,
        project_key: Optional[str] = None,
    ) -> Optional[str]:
        """Создаёт или обновляет задачу Jira для задачи TaskMaster.

        Возвращает "created", "updated", "failed" или None, если задача пропущена.
        """
        if isinstance(task, dict):
            task = Task.from_dict(task, tag=tag_name)
        if not self._pushes_to_tracker():
            return None
        lock_key = f"task:{task.key}"
        if not self._locks.try_acquire(lock_key):
            LOGGER.debug("Синхронизация задачи %s уже выполняется", task.key)
            return None
        try:
            if not self._classifier.is_syncable(task):
                LOGGER.debug("Задача %s не подлежит синхронизации", task.key)
                return None
            outcome = self._push_task(task, project_key)
            self.signals.publish(TASK_SYNCED, task_id=task.id, tag_name=tag_name)
            return outcome
        except Exception as exc:  # noqa: BLE001 - ошибка одной задачи не прерывает тег
            LOGGER.exception("Ошибка синхронизации задачи %s", task.key)
            self.signals.publish(TASK_SYNC_ERROR, task_id=task.id, error=exc)
            return FAILED
        finally:
            self._locks.release(lock_key)

    def on_tracker_issue_changed(self, issue: Issue) -> Optional[Dict[str, Any]]:
        """Переносит изменения задачи Jira в задачу TaskMaster.

        Возвращает словарь изменённых полей или None, если синхронизация не выполнялась.
        """
        if not self._pulls_from_tracker():
            return None
        task_id = self._tracker.extract_cross_reference(issue)
        if task_id is None or task_id == "":
            return None
        issue_key = issue.get("key")
        lock_key = f"issue:{issue_key}"
        if not self._locks.try_acquire(lock_key):
            LOGGER.debug("Синхронизация задачи Jira %s уже выполняется", issue_key)
            return None
        try:
            task = self._store.find_task_by_id(task_id)
            if task is None:
                LOGGER.warning("Задача TaskMaster %s не найдена (задача Jira %s)", task_id, issue_key)
                return None
            changes = self._mapper.apply_issue(task, issue)
            if changes:
                self._store.write_task(task)
                LOGGER.info(
                    "Задача TaskMaster %s обновлена из %s: %s", task_id, issue_key, ", ".join(changes)
                )
            else:
                LOGGER.debug("Задача TaskMaster %s уже совпадает с %s", task_id, issue_key)
            self.signals.publish(ISSUE_SYNCED, issue_key=issue_key, task_id=task_id)
            return changes
        except NotFoundError as exc:
            LOGGER.warning("Задача TaskMaster %s недоступна: %s", task_id, exc)
            return None
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Ошибка синхронизации задачи Jira %s", issue_key)
            self.signals.publish(ISSUE_SYNC_ERROR, issue_key=issue_key, error=exc)
            return None
        finally:
            self._locks.release(lock_key)

    # endregion

    # region sync helpers
    def _sync_project(self, tag_name: str, project_key: str, tasks: List[Task]) -> SyncStats:
        stats = SyncStats()
        LOGGER.info("Синхронизация %s задач проекта %s", len(tasks), project_key)
        for task in tqdm(tasks, desc=f"Проект {project_key}", disable=not self._config.sync.show_progress):
            outcome = self.on_task_changed(task, tag_name, project_key=project_key)
            if outcome == CREATED:
                stats.created += 1
            elif outcome == UPDATED:
                stats.updated += 1
            elif outcome == FAILED:
                stats.failed += 1
            else:
                stats.skipped += 1
        return stats

    def _push_task(self, task: Task, project_key: Optional[str]) -> str:
        existing = self._call_tracker(self._tracker.find_issue_by_task_id, task.id)
        if existing:
            issue_key = existing["key"]
            self._call_tracker(self._tracker.update_issue, issue_key, self._mapper.to_update_payload(task))
            if task.status:
                self._call_tracker(
                    self._tracker.transition_issue_status, issue_key, self._mapper.jira_status(task.status)
                )
            LOGGER.info("Обновлена задача Jira %s из задачи %s", issue_key, task.key)
            return UPDATED

        project_key = (project_key or self._classifier.project_key_of(task)).upper()
        tag = project_tag(project_key)
        if task.tags is None:
            task.tags = []
        if not any(isinstance(item, str) and item.lower() == tag for item in task.tags):
            task.tags.append(tag)
        payload = self._mapper.to_create_payload(task, project_key=project_key)
        issue = self._call_tracker(self._tracker.create_issue, payload)
        LOGGER.info("Создана задача Jira %s из задачи %s", issue.get("key"), task.key)
        return CREATED

    def _call_tracker(self, method: Callable[..., Any], *args: Any) -> Any:
        self._limiter.acquire(JIRA_SERVICE)
        return method(*args)

    def _pushes_to_tracker(self) -> bool:
        return self._config.sync.enabled and self._config.sync.direction != "jira-to-taskmaster"

    def _pulls_from_tracker(self) -> bool:
        return self._config.sync.enabled and self._config.sync.direction != "taskmaster-to-jira"

    # endregion


__all__ = ["SyncEngine", "CREATED", "UPDATED", "FAILED"]
