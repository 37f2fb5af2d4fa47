"""Таблица блокировок синхронизации."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Set


class SyncLockTable:
    """Набор ключей активных синхронизаций (tag:<имя>, task:<id>, issue:<ключ>).

    Захват не ждёт: если ключ уже занят, операция пропускается.
    """

    def __init__(self) -> None:
        self._keys: Set[str] = set()
        self._guard = threading.Lock()

    def try_acquire(self, key: str) -> bool:
        with self._guard:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def release(self, key: str) -> None:
        with self._guard:
            self._keys.discard(key)

    def is_held(self, key: str) -> bool:
        with self._guard:
            return key in self._keys

    @contextmanager
    def hold(self, key: str) -> Iterator[bool]:
        """Контекст захвата: отдаёт True, если ключ захвачен, и всегда освобождает его."""
        acquired = self.try_acquire(key)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(key)

    def __len__(self) -> int:
        with self._guard:
            return len(self._keys)


__all__ = ["SyncLockTable"]
