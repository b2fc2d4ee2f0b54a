"""A thread-safe publish/subscribe feed."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class EventFeed(Generic[T]):
    """Delivers published events to every subscriber in subscription order."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._subscribers: list[Callable[[T], object]] = []

    def subscribe(self, callback: Callable[[T], object]) -> Callable[[T], object]:
        """Register ``callback``; returns it so this can serve as a decorator."""
        with self._lock:
            self._subscribers.append(callback)
        return callback

    def publish(self, event: T) -> None:
        """Send ``event`` to all subscribers; a failing subscriber does not stop the rest."""
        with self._lock:
            for callback in self._subscribers:
                try:
                    callback(event)
                except Exception:
                    logger.exception("subscriber failed while handling event")

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)