"""Объединение серий уведомлений об изменениях."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

LOGGER = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


class Debouncer:
    """Откладывает action на delay секунд; каждый новый trigger перезапускает таймер.

    Из серии уведомлений срабатывает только последнее.
    """

    def __init__(
        self,
        delay: float,
        action: Callable[[], None],
        *,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        self._delay = delay
        self._action = action
        self._timer_factory = timer_factory or threading.Timer
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._guard = threading.Lock()

    def trigger(self) -> None:
        with self._guard:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            timer = self._timer_factory(self._delay, lambda: self._fire(generation))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> None:
        with self._guard:
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def pending(self) -> bool:
        with self._guard:
            return self._timer is not None

    def _fire(self, generation: int) -> None:
        with self._guard:
            # таймер уже заменён более поздним уведомлением
            if generation != self._generation:
                return
            self._timer = None
        try:
            self._action()
        except Exception:  # noqa: BLE001 - поток таймера не должен падать
            LOGGER.exception("Ошибка обработки отложенного изменения")


__all__ = ["Debouncer"]
