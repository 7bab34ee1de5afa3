"""Thread-safe crawl statistics aggregation."""

from __future__ import annotations

from collections import defaultdict
import threading
from typing import Any

from .dedup import HashLayer
from .types import CrawlStats, DocType, FetchResult, StopReason


class StatsCollector:
    """Collect runtime counters for one crawl session.

    `core()` produces the `CrawlStats` handed back to callers; `to_json()`
    adds the diagnostic breakdowns written to the stats manifest.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

        self._pages_visited = 0
        self._max_depth_reached = 0
        self._duplicates: dict[str, int] = defaultdict(int)

        self._fetched_ok = 0
        self._fetched_error = 0
        self._fetch_status_code_counts: dict[str, int] = defaultdict(int)
        self._fetch_bytes_total = 0

        self._route_counts: dict[str, int] = defaultdict(int)
        self._doc_type_counts: dict[str, int] = defaultdict(int)
        self._rejected_counts: dict[str, int] = defaultdict(int)
        self._parse_fallback_counts: dict[str, int] = defaultdict(int)
        self._links_enqueued = 0

    @property
    def pages_visited(self) -> int:
        with self._lock:
            return self._pages_visited

    def record_visit(self, depth: int) -> None:
        """Count one dequeued URL toward the page budget."""

        with self._lock:
            self._pages_visited += 1
            if depth > self._max_depth_reached:
                self._max_depth_reached = depth

    def record_fetch(self, result: FetchResult) -> None:
        with self._lock:
            if result.ok:
                self._fetched_ok += 1
            else:
                self._fetched_error += 1

            if result.status_code is not None:
                self._fetch_status_code_counts[str(result.status_code)] += 1
            if result.content_length is not None:
                self._fetch_bytes_total += int(result.content_length)

    def record_duplicate(self, layer: HashLayer) -> None:
        with self._lock:
            self._duplicates[layer.value] += 1

    def record_route(self, route: str) -> None:
        with self._lock:
            self._route_counts[route] += 1

    def record_document(self, doc_type: DocType) -> None:
        with self._lock:
            self._doc_type_counts[doc_type.value] += 1

    def record_rejected(self, reason: str) -> None:
        with self._lock:
            self._rejected_counts[reason] += 1

    def record_parse_fallback(self, kind: str) -> None:
        with self._lock:
            self._parse_fallback_counts[kind] += 1

    def record_links_enqueued(self, count: int) -> None:
        if count <= 0:
            return
        with self._lock:
            self._links_enqueued += count

    def core(self, *, time_elapsed_ms: int, stop_reason: StopReason | None) -> CrawlStats:
        """Return the caller-facing `CrawlStats` record."""

        with self._lock:
            return CrawlStats(
                pages_visited=self._pages_visited,
                duplicates_skipped=sum(self._duplicates.values()),
                time_elapsed_ms=time_elapsed_ms,
                max_depth_reached=self._max_depth_reached,
                stop_reason=stop_reason,
            )

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable diagnostic payload."""

        with self._lock:
            return {
                "pages_visited": self._pages_visited,
                "max_depth_reached": self._max_depth_reached,
                "duplicates": dict(self._duplicates),
                "fetch": {
                    "ok": self._fetched_ok,
                    "error": self._fetched_error,
                    "status_code_counts": dict(self._fetch_status_code_counts),
                    "bytes_total": self._fetch_bytes_total,
                },
                "routes": dict(self._route_counts),
                "documents_by_type": dict(self._doc_type_counts),
                "rejected": dict(self._rejected_counts),
                "parse_fallbacks": dict(self._parse_fallback_counts),
                "links_enqueued": self._links_enqueued,
            }


__all__ = ["StatsCollector"]
