"""Правила синхронизации по тегам TaskMaster."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from taskmaster_jira_sync.models import Task

PROJECT_TAG_PREFIX = "cc-dev:"
DEFAULT_PREFIXES = (PROJECT_TAG_PREFIX, "atlassian:", "jira:")
DEFAULT_PROJECT_KEY = "ADAPT"


class TagClassifier:
    """Определяет, синхронизируется ли задача и к какому проекту Jira она относится."""

    def __init__(
        self,
        prefixes: Optional[Sequence[str]] = None,
        *,
        default_project_key: str = DEFAULT_PROJECT_KEY,
    ) -> None:
        self._prefixes = tuple(prefixes) if prefixes else DEFAULT_PREFIXES
        self._default_project_key = default_project_key.upper()

    @property
    def default_project_key(self) -> str:
        return self._default_project_key

    def is_syncable(self, task: Task) -> bool:
        tags = task.tags
        if not tags or not isinstance(tags, (list, tuple, set)):
            return False
        return any(isinstance(tag, str) and tag.startswith(self._prefixes) for tag in tags)

    def project_key_of(self, task: Task) -> str:
        for tag in task.tags or ():
            if isinstance(tag, str) and tag.startswith(PROJECT_TAG_PREFIX):
                parts = tag.split(":")
                if len(parts) > 1 and parts[1]:
                    return parts[1].upper()
        return self._default_project_key

    def filter_syncable(self, tasks: Iterable[Task]) -> List[Task]:
        return [task for task in tasks if self.is_syncable(task)]

    def group_by_project(self, tasks: Iterable[Task]) -> Dict[str, List[Task]]:
        """Группирует задачи по ключу проекта, сохраняя порядок первого появления."""
        groups: Dict[str, List[Task]] = {}
        for task in tasks:
            groups.setdefault(self.project_key_of(task), []).append(task)
        return groups


def project_tag(project_key: str) -> str:
    """Тег TaskMaster, связывающий задачу с проектом Jira."""
    return f"{PROJECT_TAG_PREFIX}{project_key.lower()}"


__all__ = ["TagClassifier", "project_tag", "DEFAULT_PREFIXES", "DEFAULT_PROJECT_KEY"]
