"""Хранилище задач TaskMaster в файле tasks.json."""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from taskmaster_jira_sync.errors import NotFoundError, TransientServiceError
from taskmaster_jira_sync.models import Task, TaskId
from taskmaster_jira_sync.ports import METADATA_TAG, ChangeCallback, TaskStore

LOGGER = logging.getLogger(__name__)

MASTER_TAG = "master"
METADATA_KEY = METADATA_TAG


class JsonTaskStore(TaskStore):
    """Чтение и точечная запись задач в tasks.json.

    Поддерживаются два формата файла: с тегами
    ``{"master": {"tasks": [...]}, "feature": {"tasks": [...]}, "metadata": {...}}``
    и старый ``{"tasks": [...]}``, который читается как тег master.
    Запись меняет только запись нужной задачи и metadata.updated.
    """

    def __init__(self, path: Path | str, *, poll_interval: float = 1.0) -> None:
        self._path = Path(path)
        self._poll_interval = poll_interval
        self._callbacks: List[ChangeCallback] = []
        self._io_lock = threading.RLock()
        self._stop = threading.Event()
        self._watcher: Optional[threading.Thread] = None

    @property
    def path(self) -> Path:
        return self._path

    # region low-level helpers
    def _load(self) -> Dict[str, Any]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise NotFoundError(f"Файл задач {self._path} не найден") from exc
        except OSError as exc:
            raise TransientServiceError(f"Не удалось прочитать {self._path}: {exc}") from exc
        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as exc:
            raise TransientServiceError(f"Файл задач {self._path} повреждён: {exc}") from exc
        if not isinstance(data, dict):
            raise TransientServiceError(f"Файл задач {self._path} должен содержать JSON-объект")
        return data

    def _dump(self, data: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, ensure_ascii=False)
                handle.write("\n")
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise TransientServiceError(f"Не удалось записать {self._path}: {exc}") from exc

    @staticmethod
    def _tag_collections(data: Dict[str, Any]) -> List[Tuple[str, List[Dict[str, Any]]]]:
        if isinstance(data.get("tasks"), list):
            return [(MASTER_TAG, data["tasks"])]
        collections: List[Tuple[str, List[Dict[str, Any]]]] = []
        for tag_name, tag_data in data.items():
            if tag_name == METADATA_KEY or not isinstance(tag_data, dict):
                continue
            tasks = tag_data.get("tasks")
            if isinstance(tasks, list):
                collections.append((tag_name, tasks))
        # master всегда обрабатывается первым
        collections.sort(key=lambda item: item[0] != MASTER_TAG)
        return collections

    # endregion

    # region TaskStore
    def read_all_grouped_by_tag(self) -> Dict[str, List[Task]]:
        with self._io_lock:
            data = self._load()
        return {
            tag_name: [Task.from_dict(item, tag=tag_name) for item in tasks if isinstance(item, dict)]
            for tag_name, tasks in self._tag_collections(data)
        }

    def find_task_by_id(self, task_id: TaskId, *, tag: Optional[str] = None) -> Optional[Task]:
        with self._io_lock:
            data = self._load()
        for tag_name, tasks in self._tag_collections(data):
            if tag is not None and tag_name != tag:
                continue
            for item in tasks:
                if isinstance(item, dict) and str(item.get("id")) == str(task_id):
                    return Task.from_dict(item, tag=tag_name)
        return None

    def write_task(self, task: Task) -> None:
        with self._io_lock:
            data = self._load()
            entry = None
            for tag_name, tasks in self._tag_collections(data):
                if task.tag is not None and tag_name != task.tag:
                    continue
                entry = next(
                    (item for item in tasks if isinstance(item, dict) and str(item.get("id")) == task.key),
                    None,
                )
                if entry is not None:
                    break
            if entry is None:
                raise NotFoundError(f"Задача TaskMaster {task.key} не найдена в {self._path}")
            entry.update(task.to_dict())
            metadata = data.get(METADATA_KEY)
            if not isinstance(metadata, dict):
                metadata = data[METADATA_KEY] = {}
            metadata["updated"] = datetime.now(timezone.utc).isoformat()
            self._dump(data)
        LOGGER.debug("Задача %s сохранена в %s", task.key, self._path)

    def on_change(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    # endregion

    # region watcher
    def _signature(self) -> Optional[Tuple[int, int]]:
        try:
            stat = self._path.stat()
        except OSError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def notify(self) -> None:
        """Оповещает подписчиков об изменении файла."""
        for callback in list(self._callbacks):
            try:
                callback()
            except Exception:  # noqa: BLE001 - сбой подписчика не останавливает наблюдение
                LOGGER.exception("Ошибка обработчика изменения файла задач")

    def _watch(self, last: Optional[Tuple[int, int]]) -> None:
        while not self._stop.wait(self._poll_interval):
            current = self._signature()
            if current != last:
                last = current
                LOGGER.debug("Файл задач %s изменён", self._path)
                self.notify()

    def start_watching(self) -> None:
        if self._watcher is not None and self._watcher.is_alive():
            return
        self._stop.clear()
        self._watcher = threading.Thread(
            target=self._watch, args=(self._signature(),), name="taskmaster-watcher", daemon=True
        )
        self._watcher.start()
        LOGGER.info("Наблюдение за %s запущено", self._path)

    def stop_watching(self) -> None:
        self._stop.set()
        if self._watcher is not None:
            self._watcher.join(timeout=self._poll_interval * 2)
            self._watcher = None

    # endregion


__all__ = ["JsonTaskStore", "MASTER_TAG", "METADATA_KEY"]
