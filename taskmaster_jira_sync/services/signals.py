"""Сигналы о результатах синхронизации."""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List

LOGGER = logging.getLogger(__name__)

TAG_SYNCED = "tag:synced"
TAG_SYNC_ERROR = "tag:sync:error"
TASK_SYNCED = "task:synced"
TASK_SYNC_ERROR = "task:sync:error"
ISSUE_SYNCED = "issue:synced"
ISSUE_SYNC_ERROR = "issue:sync:error"

SIGNALS = (TAG_SYNCED, TAG_SYNC_ERROR, TASK_SYNCED, TASK_SYNC_ERROR, ISSUE_SYNCED, ISSUE_SYNC_ERROR)

Handler = Callable[[Dict[str, Any]], None]


class SignalBus:
    """Публикация и подписка по имени сигнала.

    Доставка без подтверждения: исключение обработчика логируется и не
    влияет ни на публикующего, ни на других подписчиков.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}
        self._guard = threading.Lock()

    def subscribe(self, name: str, handler: Handler) -> None:
        with self._guard:
            self._handlers.setdefault(name, []).append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        with self._guard:
            handlers = self._handlers.get(name, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, name: str, **payload: Any) -> None:
        with self._guard:
            handlers = list(self._handlers.get(name, ()))
        for handler in handlers:
            try:
                handler(payload)
            except Exception:  # noqa: BLE001 - подписчики не влияют на синхронизацию
                LOGGER.exception("Обработчик сигнала %s завершился с ошибкой", name)


__all__ = [
    "SignalBus",
    "SIGNALS",
    "TAG_SYNCED",
    "TAG_SYNC_ERROR",
    "TASK_SYNCED",
    "TASK_SYNC_ERROR",
    "ISSUE_SYNCED",
    "ISSUE_SYNC_ERROR",
]
