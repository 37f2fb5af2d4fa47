"""Маппинг полей между TaskMaster и Jira."""
from __future__ import annotations

from typing import Any, Dict, Optional

from taskmaster_jira_sync.config import FieldMappingTables
from taskmaster_jira_sync.models import Task


class FieldMapper:
    """Конвертация значений и полей задач TaskMaster ↔ Jira.

    Все функции тотальны: неизвестное или пустое значение отображается в значение
    по умолчанию из таблиц. Статус cancelled отображается в Done и обратно
    возвращается как completed, это ожидаемая потеря информации.
    """

    def __init__(
        self,
        tables: Optional[FieldMappingTables] = None,
        *,
        attribution_fields: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._tables = tables or FieldMappingTables()
        self._attribution = dict(attribution_fields or {})
        self._issue_types = {key.lower(): value for key, value in self._tables.issue_types.items()}
        self._priorities = {key.lower(): value for key, value in self._tables.priorities.items()}
        self._task_statuses = {key.lower(): value for key, value in self._tables.task_statuses.items()}

    # region value mapping
    def issue_type(self, task_type: Optional[str]) -> str:
        if not task_type:
            return self._tables.default_issue_type
        return self._issue_types.get(task_type.lower(), self._tables.default_issue_type)

    def jira_priority(self, priority: Optional[str]) -> str:
        if not priority:
            return self._tables.default_priority
        return self._priorities.get(priority.lower(), self._tables.default_priority)

    def jira_status(self, status: Optional[str]) -> str:
        if not status:
            return self._tables.default_jira_status
        return self._task_statuses.get(status.lower(), self._tables.default_jira_status)

    def task_status(self, jira_status: Optional[str]) -> str:
        return self._tables.jira_statuses.get(jira_status or "", self._tables.default_task_status)

    def task_priority(self, jira_priority: Optional[str]) -> str:
        return self._tables.jira_priorities.get(jira_priority or "", self._tables.default_task_priority)

    # endregion

    # region payloads
    @staticmethod
    def _summary(task: Task) -> Optional[str]:
        return task.title or task.extra.get("summary") or None

    @staticmethod
    def _description(task: Task) -> Optional[str]:
        return task.description or task.details or None

    def to_create_payload(self, task: Task, *, project_key: str) -> Dict[str, Any]:
        """Данные для создания задачи Jira из задачи TaskMaster."""
        payload: Dict[str, Any] = {
            "project_key": project_key,
            "summary": self._summary(task),
            "description": self._description(task) or "",
            "issue_type": self.issue_type(task.type),
            "priority": self.jira_priority(task.priority),
            "task_id": task.key,
        }
        if self._attribution:
            payload["attribution"] = dict(self._attribution)
        return payload

    def to_update_payload(self, task: Task) -> Dict[str, Any]:
        """Частичное обновление: только заполненные summary, description и priority.

        Статус сюда не попадает, он меняется отдельным переходом.
        """
        payload: Dict[str, Any] = {}
        summary = self._summary(task)
        if summary:
            payload["summary"] = summary
        description = self._description(task)
        if description:
            payload["description"] = description
        if task.priority:
            payload["priority"] = self.jira_priority(task.priority)
        return payload

    def apply_issue(self, task: Task, issue: Dict[str, Any]) -> Dict[str, Any]:
        """Переносит поля задачи Jira в задачу TaskMaster.

        Поле перезаписывается, только если значение в Jira задано и отличается.
        Возвращает словарь изменённых полей {имя: новое значение}.
        """
        fields = issue.get("fields") or {}
        incoming: Dict[str, Any] = {}
        if fields.get("summary"):
            incoming["title"] = fields["summary"]
        if fields.get("description"):
            incoming["description"] = fields["description"]
        status_name = (fields.get("status") or {}).get("name")
        if status_name:
            incoming["status"] = self.task_status(status_name)
        priority_name = (fields.get("priority") or {}).get("name")
        if priority_name:
            incoming["priority"] = self.task_priority(priority_name)

        changes: Dict[str, Any] = {}
        for name, value in incoming.items():
            if getattr(task, name) != value:
                setattr(task, name, value)
                changes[name] = value
        return changes

    # endregion


__all__ = ["FieldMapper"]
