"""Доменные модели синхронизации."""

from .entities import Issue, SyncStats, Task, TaskId

__all__ = [
    "Task",
    "TaskId",
    "Issue",
    "SyncStats",
]
