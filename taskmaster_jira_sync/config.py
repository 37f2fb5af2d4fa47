"""Загрузка и валидация конфигурации приложения."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

ENV_CREDENTIALS = {
    "base_url": "ATLASSIAN_URL",
    "username": "ATLASSIAN_USERNAME",
    "api_token": "ATLASSIAN_API_TOKEN",
}


class JiraCredentials(BaseModel):
    """Настройки подключения к Jira."""

    base_url: str = Field(..., description="Базовый URL Jira, например https://company.atlassian.net")
    username: str = Field(..., description="Логин (email) пользователя Atlassian")
    api_token: str = Field(..., description="API token, используемый в Basic Auth")
    api_version: str = Field("2", description="Версия REST API Jira")
    timeout: float = Field(30.0, description="Таймаут HTTP-запроса в секундах")


class RateLimitRule(BaseModel):
    """Параметры token bucket для одного сервиса."""

    requests_per_second: float = Field(..., gt=0)
    burst: int = Field(..., ge=1)
    retry_after: float = Field(5.0, ge=0, description="Пауза в секундах при исчерпании токенов")


def _default_rate_limits() -> Dict[str, RateLimitRule]:
    return {
        "jira": RateLimitRule(requests_per_second=10, burst=20, retry_after=5.0),
        "confluence": RateLimitRule(requests_per_second=8, burst=15, retry_after=5.0),
        "jsm": RateLimitRule(requests_per_second=5, burst=10, retry_after=7.0),
    }


class CustomFields(BaseModel):
    """Идентификаторы пользовательских полей Jira."""

    task_id: str = Field("customfield_10032", description="Поле с идентификатором задачи TaskMaster")
    metadata: str = Field("customfield_10038", description="Поле со служебными метаданными")

    @property
    def task_id_jql(self) -> str:
        """Ссылка на поле идентификатора в синтаксисе JQL (cf[10032])."""
        return f"cf[{self.task_id.rsplit('_', 1)[-1]}]"


class FieldMappingTables(BaseModel):
    """Таблицы соответствия значений TaskMaster и Jira."""

    issue_types: Dict[str, str] = Field(
        default_factory=lambda: {
            "epic": "Epic",
            "story": "Story",
            "task": "Task",
            "bug": "Bug",
            "research": "Research",
        }
    )
    priorities: Dict[str, str] = Field(
        default_factory=lambda: {
            "highest": "Highest",
            "high": "High",
            "medium": "Medium",
            "low": "Low",
            "lowest": "Lowest",
        }
    )
    task_statuses: Dict[str, str] = Field(
        default_factory=lambda: {
            "pending": "To Do",
            "in_progress": "In Progress",
            "in-progress": "In Progress",
            "review": "Review",
            "done": "Done",
            "completed": "Done",
            "cancelled": "Done",
        }
    )
    jira_statuses: Dict[str, str] = Field(
        default_factory=lambda: {
            "To Do": "pending",
            "In Progress": "in_progress",
            "Review": "review",
            "Done": "completed",
            "Closed": "completed",
        }
    )
    jira_priorities: Dict[str, str] = Field(
        default_factory=lambda: {
            "Highest": "highest",
            "High": "high",
            "Medium": "medium",
            "Low": "low",
            "Lowest": "lowest",
        }
    )
    default_issue_type: str = "Task"
    default_priority: str = "Medium"
    default_jira_status: str = "To Do"
    default_task_status: str = "pending"
    default_task_priority: str = "medium"


class SyncOptions(BaseModel):
    """Параметры синхронизации."""

    enabled: bool = Field(True, description="Глобальный выключатель синхронизации")
    direction: Literal["bidirectional", "taskmaster-to-jira", "jira-to-taskmaster"] = "bidirectional"
    conflict_resolution: Literal["last-write-wins"] = Field(
        "last-write-wins",
        description="Побеждает сторона, вызвавшая синхронизацию последней",
    )
    tag_prefixes: List[str] = Field(
        default_factory=lambda: ["cc-dev:", "atlassian:", "jira:"],
        description="Префиксы тегов, делающие задачу синхронизируемой",
    )
    default_project_key: str = Field("ADAPT", description="Проект Jira для задач без тега cc-dev:")
    debounce_seconds: float = Field(1.0, ge=0, description="Окно объединения уведомлений об изменениях")
    poll_interval: float = Field(1.0, gt=0, description="Период опроса файла задач")
    taskmaster_path: Path = Field(Path("."), description="Корень проекта TaskMaster")
    tasks_file: Path = Field(Path(".taskmaster/tasks/tasks.json"), description="Путь к файлу задач от корня")
    show_progress: bool = Field(False, description="Показывать прогресс синхронизации проектов")
    dry_run: bool = Field(False, description="Если True, изменения в Jira не выполняются")

    @field_validator("taskmaster_path", "tasks_file", mode="before")
    @classmethod
    def _ensure_path(cls, value: Path | str) -> Path:
        return Path(value)

    @field_validator("default_project_key")
    @classmethod
    def _upper_project_key(cls, value: str) -> str:
        return value.upper()


class AppConfig(BaseModel):
    """Корневая конфигурация приложения."""

    jira: JiraCredentials
    rate_limits: Dict[str, RateLimitRule] = Field(default_factory=_default_rate_limits)
    custom_fields: CustomFields = Field(default_factory=CustomFields)
    attribution_fields: Dict[str, Any] = Field(
        default_factory=dict,
        description="Постоянные значения полей, добавляемые к каждой новой задаче Jira",
    )
    field_mapping: FieldMappingTables = Field(default_factory=FieldMappingTables)
    sync: SyncOptions = Field(default_factory=SyncOptions)

    @classmethod
    def load(cls, path: Path | str) -> "AppConfig":
        """Загружает конфигурацию из YAML-файла."""
        path = Path(path)
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        return cls.from_mapping(raw, source=str(path))

    @classmethod
    def from_mapping(cls, raw: Dict[str, Any], *, source: str = "<mapping>") -> "AppConfig":
        """Валидирует словарь настроек, подставляя учётные данные из окружения."""
        raw = dict(raw)
        jira = dict(raw.get("jira") or {})
        for key, env_name in ENV_CREDENTIALS.items():
            if not jira.get(key) and os.environ.get(env_name):
                jira[key] = os.environ[env_name]
        raw["jira"] = jira
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ValueError(f"Конфигурация {source} некорректна: {exc}") from exc

    @property
    def tasks_path(self) -> Path:
        """Полный путь к файлу задач TaskMaster."""
        return self.sync.taskmaster_path / self.sync.tasks_file


__all__ = [
    "AppConfig",
    "CustomFields",
    "FieldMappingTables",
    "JiraCredentials",
    "RateLimitRule",
    "SyncOptions",
]
