"""Сервисный слой приложения."""

from .debounce import Debouncer
from .field_mapper import FieldMapper
from .rate_limiter import RateLimiter
from .signals import SignalBus
from .sync import SyncEngine
from .sync_locks import SyncLockTable
from .tag_classifier import TagClassifier
from .task_store import JsonTaskStore

__all__ = [
    "SyncEngine",
    "FieldMapper",
    "TagClassifier",
    "SyncLockTable",
    "SignalBus",
    "RateLimiter",
    "Debouncer",
    "JsonTaskStore",
]
