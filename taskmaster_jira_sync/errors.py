"""Иерархия ошибок синхронизации."""
from __future__ import annotations


class SyncError(RuntimeError):
    """Базовая ошибка синхронизации TaskMaster ↔ Jira."""


class ValidationError(SyncError):
    """Некорректные данные для создания или обновления задачи Jira."""


class NotFoundError(SyncError):
    """Запрошенная задача TaskMaster или задача Jira не существует."""


class TransientServiceError(SyncError):
    """Сбой внешнего сервиса (Jira, хранилище задач)."""


__all__ = ["SyncError", "ValidationError", "NotFoundError", "TransientServiceError"]
