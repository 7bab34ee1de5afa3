"""Progress observers notified while a crawl session runs."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable

from .types import ProgressUpdate


LOGGER = logging.getLogger(__name__)

ProgressObserver = Callable[[ProgressUpdate], None]


class ProgressReporter:
    """Fan a `ProgressUpdate` out to registered observers.

    An observer that raises is logged and skipped; it never aborts the crawl.
    """

    def __init__(self, observers: Iterable[ProgressObserver] = ()) -> None:
        self._lock = threading.Lock()
        self._observers: list[ProgressObserver] = list(observers)
        self._last: ProgressUpdate | None = None

    def add_observer(self, observer: ProgressObserver) -> None:
        with self._lock:
            self._observers.append(observer)

    def remove_observer(self, observer: ProgressObserver) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    @property
    def last(self) -> ProgressUpdate | None:
        with self._lock:
            return self._last

    def emit(self, update: ProgressUpdate) -> None:
        with self._lock:
            self._last = update
            observers = list(self._observers)

        for observer in observers:
            try:
                observer(update)
            except Exception:
                LOGGER.exception("Progress observer %r failed", observer)


class LoggingProgressObserver:
    """Log a line every `every` pages visited."""

    def __init__(self, every: int = 25, *, logger: logging.Logger | None = None) -> None:
        self.every = max(1, every)
        self.logger = logger or LOGGER
        self._last_logged = 0

    def __call__(self, update: ProgressUpdate) -> None:
        if update.pages_visited - self._last_logged < self.every:
            return
        self._last_logged = update.pages_visited
        self.logger.info(
            "Progress: pages_visited=%d documents_found=%d embedded=%d",
            update.pages_visited,
            update.documents_found,
            update.embedded,
        )


__all__ = [
    "LoggingProgressObserver",
    "ProgressObserver",
    "ProgressReporter",
]
