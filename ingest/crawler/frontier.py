"""Thread-safe FIFO frontier with visited bookkeeping and crawl budgets."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .config import CrawlOptions
from .types import FrontierEntry, StopReason
from .url import normalize_url


LOGGER = logging.getLogger(__name__)


class EnqueueStatus(str, Enum):
    """Result status for frontier enqueue attempts."""

    ENQUEUED = "enqueued"
    SKIPPED_INVALID_URL = "skipped_invalid_url"
    SKIPPED_VISITED = "skipped_visited"
    SKIPPED_QUEUED = "skipped_queued"


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    """Outcome of one enqueue attempt."""

    status: EnqueueStatus
    normalized_url: str | None = None
    entry: FrontierEntry | None = None

    @property
    def accepted(self) -> bool:
        return self.status == EnqueueStatus.ENQUEUED


class Frontier:
    """Discovered-but-unfetched URLs in first-in first-out order.

    - A URL is rejected when it is already visited or already queued.
    - Depth limits are applied when an entry is dequeued, so callers can
      enqueue freely and over-deep entries simply drain away.
    - `mark_visited` is an atomic check-and-insert.
    """

    def __init__(self, *, max_depth: int | None = None) -> None:
        self.max_depth = max_depth

        self._queue: deque[FrontierEntry] = deque()
        self._lock = threading.Lock()

        self._queued_urls: set[str] = set()
        self._visited_urls: set[str] = set()

        self._enqueued_count = 0
        self._dequeued_count = 0
        self._skipped_visited_count = 0
        self._skipped_queued_count = 0
        self._skipped_invalid_count = 0
        self._dropped_depth_count = 0

    def enqueue(self, url: str, depth: int, parent_url: str | None = None) -> EnqueueResult:
        """Attempt to enqueue one URL."""

        normalized = normalize_url(url)
        if not normalized:
            with self._lock:
                self._skipped_invalid_count += 1
            return EnqueueResult(EnqueueStatus.SKIPPED_INVALID_URL)

        with self._lock:
            if normalized in self._visited_urls:
                self._skipped_visited_count += 1
                return EnqueueResult(EnqueueStatus.SKIPPED_VISITED, normalized_url=normalized)

            if normalized in self._queued_urls:
                self._skipped_queued_count += 1
                return EnqueueResult(EnqueueStatus.SKIPPED_QUEUED, normalized_url=normalized)

            entry = FrontierEntry(url=normalized, depth=depth, parent_url=parent_url)
            self._queued_urls.add(normalized)
            self._queue.append(entry)
            self._enqueued_count += 1

        return EnqueueResult(EnqueueStatus.ENQUEUED, normalized_url=normalized, entry=entry)

    def dequeue(self) -> FrontierEntry | None:
        """Pop the next in-range entry, or `None` when the frontier is empty."""

        with self._lock:
            while self._queue:
                entry = self._queue.popleft()
                self._queued_urls.discard(entry.url)
                if self.max_depth is not None and entry.depth > self.max_depth:
                    self._dropped_depth_count += 1
                    continue
                self._dequeued_count += 1
                return entry
        return None

    def mark_visited(self, url: str) -> bool:
        """Record `url` as visited. Returns False if it already was."""

        normalized = normalize_url(url) or url
        with self._lock:
            if normalized in self._visited_urls:
                return False
            self._visited_urls.add(normalized)
            return True

    def is_known(self, url: str) -> bool:
        """True when `url` is visited or currently queued."""

        normalized = normalize_url(url) or url
        with self._lock:
            return normalized in self._visited_urls or normalized in self._queued_urls

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    def visited_urls(self) -> set[str]:
        """Return snapshot of visited URLs."""

        with self._lock:
            return set(self._visited_urls)

    def snapshot(self) -> dict[str, int]:
        """Return frontier counters for logs/stats reporting."""

        with self._lock:
            return {
                "queue_size": len(self._queue),
                "visited_urls": len(self._visited_urls),
                "enqueued": self._enqueued_count,
                "dequeued": self._dequeued_count,
                "skipped_visited": self._skipped_visited_count,
                "skipped_queued": self._skipped_queued_count,
                "skipped_invalid": self._skipped_invalid_count,
                "dropped_depth": self._dropped_depth_count,
            }


class BudgetGovernor:
    """Page/time budgets and the politeness pause between fetches.

    Each budget check is skipped entirely when its option is `None`. The pause
    waits on the cancellation event, so `cancel_event.set()` cuts it short.
    """

    def __init__(
        self,
        options: CrawlOptions,
        *,
        cancel_event: threading.Event | None = None,
        clock: Callable[[], float] = time.monotonic,
        wait: Callable[[float], bool] | None = None,
    ) -> None:
        self.options = options
        self.cancel_event = cancel_event or threading.Event()
        self._clock = clock
        self._wait = wait or self.cancel_event.wait
        self._started_at = clock()

    def restart(self) -> None:
        self._started_at = self._clock()

    @property
    def elapsed_seconds(self) -> float:
        return max(0.0, self._clock() - self._started_at)

    @property
    def elapsed_ms(self) -> int:
        return int(self.elapsed_seconds * 1000)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def should_stop(self, pages_visited: int) -> StopReason | None:
        """Return why the crawl loop must stop, or `None` to keep going."""

        if self.cancel_event.is_set():
            return StopReason.CANCELLED

        max_time = self.options.max_time_seconds
        if max_time is not None and self.elapsed_seconds > max_time:
            LOGGER.info("Time budget reached after %.1fs", self.elapsed_seconds)
            return StopReason.TIME_BUDGET

        max_pages = self.options.max_pages
        if max_pages is not None and pages_visited >= max_pages:
            LOGGER.info("Page budget reached: %d pages", pages_visited)
            return StopReason.PAGE_BUDGET

        return None

    def pause(self) -> bool:
        """Sleep for the crawl delay. Returns True when cancelled meanwhile."""

        delay = self.options.crawl_delay_seconds
        if delay <= 0:
            return self.cancel_event.is_set()
        return bool(self._wait(delay))


__all__ = [
    "BudgetGovernor",
    "EnqueueResult",
    "EnqueueStatus",
    "Frontier",
]
