"""Определения доменных сущностей."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

TaskId = Union[str, int]
Issue = Dict[str, Any]

KNOWN_FIELDS = ("id", "title", "description", "details", "status", "priority", "type", "tags")


@dataclass(slots=True)
class Task:
    """Задача TaskMaster."""

    id: TaskId
    title: Optional[str] = None
    description: Optional[str] = None
    details: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    type: Optional[str] = None
    tags: Optional[List[str]] = None
    # остальные поля записи TaskMaster (dependencies, subtasks, ...) без изменений
    extra: Dict[str, Any] = field(default_factory=dict)
    # тег TaskMaster, из которого прочитана задача; в файл не пишется
    tag: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any], *, tag: Optional[str] = None) -> "Task":
        tags = payload.get("tags")
        return cls(
            id=payload.get("id"),
            title=payload.get("title"),
            description=payload.get("description"),
            details=payload.get("details"),
            status=payload.get("status"),
            priority=payload.get("priority"),
            type=payload.get("type"),
            tags=list(tags) if isinstance(tags, (list, tuple)) else None,
            extra={key: value for key, value in payload.items() if key not in KNOWN_FIELDS},
            tag=tag,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(self.extra)
        for name in KNOWN_FIELDS:
            value = getattr(self, name)
            if value is not None:
                payload[name] = list(value) if name == "tags" else value
        return payload

    @property
    def key(self) -> str:
        """Строковое представление идентификатора для сравнения и ключей блокировок."""
        return str(self.id)


@dataclass
class SyncStats:
    created: int = 0
    updated: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.failed

    def merge(self, other: "SyncStats") -> None:
        self.created += other.created
        self.updated += other.updated
        self.failed += other.failed
        self.skipped += other.skipped


__all__ = ["Task", "TaskId", "Issue", "SyncStats"]
