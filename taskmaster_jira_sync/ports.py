"""Абстрактные интерфейсы внешних систем, с которыми работает движок синхронизации."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from taskmaster_jira_sync.models import Issue, Task, TaskId

ChangeCallback = Callable[[], None]

# служебная запись файла задач, не являющаяся тегом
METADATA_TAG = "metadata"


class TrackerGateway(ABC):
    """Операции трекера задач (Jira), нужные движку."""

    @abstractmethod
    def find_issue_by_task_id(self, task_id: TaskId) -> Optional[Issue]:
        """Ищет задачу трекера по значению поля перекрёстной ссылки."""

    @abstractmethod
    def create_issue(self, payload: Dict) -> Issue:
        """Создаёт задачу. ValidationError, если нет обязательных полей."""

    @abstractmethod
    def update_issue(self, key: str, payload: Dict) -> None:
        """Частичное обновление полей задачи."""

    @abstractmethod
    def transition_issue_status(self, key: str, status_name: str) -> None:
        """Переводит задачу в статус с указанным именем."""

    @abstractmethod
    def extract_cross_reference(self, issue: Issue) -> Optional[TaskId]:
        """Возвращает идентификатор задачи TaskMaster из задачи трекера."""


class TaskStore(ABC):
    """Хранилище задач TaskMaster."""

    @abstractmethod
    def read_all_grouped_by_tag(self) -> Dict[str, List[Task]]:
        """Все задачи, сгруппированные по тегам, в порядке хранения."""

    @abstractmethod
    def find_task_by_id(self, task_id: TaskId, *, tag: Optional[str] = None) -> Optional[Task]:
        """Ищет задачу по идентификатору."""

    @abstractmethod
    def write_task(self, task: Task) -> None:
        """Сохраняет задачу, не затрагивая соседние задачи и теги."""

    @abstractmethod
    def on_change(self, callback: ChangeCallback) -> None:
        """Подписывает callback на уведомления об изменении хранилища."""


__all__ = ["TrackerGateway", "TaskStore", "ChangeCallback", "METADATA_TAG"]
