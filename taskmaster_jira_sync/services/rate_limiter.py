"""Ограничение частоты запросов к сервисам Atlassian."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional

from taskmaster_jira_sync.config import RateLimitRule

LOGGER = logging.getLogger(__name__)


@dataclass
class _Bucket:
    rule: RateLimitRule
    tokens: float
    last_refill: float
    lock: threading.Lock = field(default_factory=threading.Lock)


class RateLimiter:
    """Token bucket на каждый сервис.

    Токены пополняются по прошедшему времени до burst. Если токенов нет,
    вызывающий ждёт retry_after секунд и получает один токен.
    """

    def __init__(
        self,
        rules: Mapping[str, RateLimitRule],
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        now = clock()
        self._buckets: Dict[str, _Bucket] = {
            service: _Bucket(rule=rule, tokens=float(rule.burst), last_refill=now)
            for service, rule in rules.items()
        }

    def acquire(self, service: str) -> float:
        """Разрешает один вызов сервиса. Возвращает время ожидания в секундах."""
        bucket = self._buckets.get(service)
        if bucket is None:
            return 0.0
        with bucket.lock:
            now = self._clock()
            interval = 1.0 / bucket.rule.requests_per_second
            earned = int((now - bucket.last_refill) / interval)
            if earned > 0:
                bucket.tokens = min(float(bucket.rule.burst), bucket.tokens + earned)
                bucket.last_refill = now
            if bucket.tokens >= 1:
                bucket.tokens -= 1
                return 0.0
            delay = bucket.rule.retry_after
            LOGGER.debug("Лимит запросов %s исчерпан, ожидание %.1f с", service, delay)
            self._sleep(delay)
            bucket.tokens = 0.0
            bucket.last_refill = self._clock()
            return delay

    def tokens(self, service: str) -> Optional[float]:
        bucket = self._buckets.get(service)
        return bucket.tokens if bucket else None


__all__ = ["RateLimiter"]
