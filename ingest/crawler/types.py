"""Core type definitions for the crawler.

Records shared across crawler modules. Nothing here imports other crawler
modules, so any of them can depend on it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class DocType(str, Enum):
    """Document categories attached to committed crawl results."""

    PDF = "pdf"
    HTML = "html"
    DOC = "doc"
    TXT = "txt"
    XML = "xml"
    JSON = "json"
    CSV = "csv"
    UNKNOWN = "unknown"


class CrawlStage(str, Enum):
    """Session stage names for error reporting."""

    FETCH = "fetch"
    PARSE = "parse"
    EMBED = "embed"
    PROCESS = "process"


class StopReason(str, Enum):
    """Why a crawl loop terminated."""

    FRONTIER_EXHAUSTED = "frontier_exhausted"
    PAGE_BUDGET = "page_budget"
    TIME_BUDGET = "time_budget"
    CANCELLED = "cancelled"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for manifests/JSONL."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True, slots=True)
class FrontierEntry:
    """A discovered-but-unfetched work item."""

    url: str
    depth: int
    parent_url: str | None = None


@dataclass(slots=True)
class FetchResult:
    """Result of attempting to download one URL."""

    requested_url: str
    final_url: str | None
    status_code: int | None
    content_type: str | None
    body: bytes | None
    last_modified: str | None = None
    fetched_at: str = field(default_factory=utc_now_iso)
    elapsed_ms: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and self.status_code is not None
            and 200 <= self.status_code < 300
            and self.body is not None
        )

    @property
    def base_url(self) -> str:
        return self.final_url or self.requested_url

    @property
    def content_length(self) -> int | None:
        return None if self.body is None else len(self.body)

    def failure_message(self) -> str:
        """Describe why the fetch is not usable."""

        if self.error:
            return self.error
        if self.status_code is not None and not (200 <= self.status_code < 300):
            return f"HTTP {self.status_code}"
        if self.body is None:
            return "Empty response body"
        return "Unknown fetch failure"


@dataclass(frozen=True, slots=True)
class ImageRef:
    """Embedded image reference found on an HTML page."""

    src: str
    alt: str = ""


@dataclass(frozen=True, slots=True)
class CrawlResultMetadata:
    """Per-result metadata. `content_hash` is the extracted-text digest prefix."""

    size: int | None = None
    last_modified: str | None = None
    content_type: str | None = None
    content_hash: str | None = None
    original_filename: str | None = None
    title_inferred: bool | None = None
    image_count: int | None = None

    def to_json(self) -> JSONDict:
        payload: JSONDict = {
            "size": self.size,
            "last_modified": self.last_modified,
            "content_type": self.content_type,
            "content_hash": self.content_hash,
            "original_filename": self.original_filename,
            "title_inferred": self.title_inferred,
            "image_count": self.image_count,
        }
        return {key: value for key, value in payload.items() if value is not None}


@dataclass(frozen=True, slots=True)
class CrawlResult:
    """One accepted document. Terminal once created."""

    url: str
    title: str
    content: str
    doc_type: DocType
    metadata: CrawlResultMetadata = field(default_factory=CrawlResultMetadata)

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "title": self.title,
            "content": self.content,
            "doc_type": self.doc_type.value,
            "metadata": self.metadata.to_json(),
        }


@dataclass(frozen=True, slots=True)
class ErrorRecord:
    """One entry of the session error list."""

    stage: CrawlStage
    url: str
    message: str
    error_type: str | None = None
    status_code: int | None = None
    created_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def from_exception(
        cls,
        *,
        stage: CrawlStage,
        url: str,
        exc: Exception,
        **kwargs: Any,
    ) -> "ErrorRecord":
        return cls(
            stage=stage,
            url=url,
            message=str(exc),
            error_type=exc.__class__.__name__,
            **kwargs,
        )

    def __str__(self) -> str:
        return f"[{self.stage.value}] {self.url}: {self.message}"

    def to_json(self) -> JSONDict:
        return {
            "stage": self.stage.value,
            "url": self.url,
            "message": self.message,
            "error_type": self.error_type,
            "status_code": self.status_code,
            "created_at": self.created_at,
        }


@dataclass(slots=True)
class CrawlStats:
    """Session summary counters returned to the caller."""

    pages_visited: int = 0
    duplicates_skipped: int = 0
    time_elapsed_ms: int = 0
    max_depth_reached: int = 0
    stop_reason: StopReason | None = None

    def to_json(self) -> JSONDict:
        return {
            "pages_visited": self.pages_visited,
            "duplicates_skipped": self.duplicates_skipped,
            "time_elapsed_ms": self.time_elapsed_ms,
            "max_depth_reached": self.max_depth_reached,
            "stop_reason": None if self.stop_reason is None else self.stop_reason.value,
        }


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    """Live counters pushed to progress observers."""

    documents_found: int
    pages_visited: int
    embedded: int

    def to_json(self) -> JSONDict:
        return {
            "documents_found": self.documents_found,
            "pages_visited": self.pages_visited,
            "embedded": self.embedded,
        }


@dataclass(slots=True)
class SessionResult:
    """Everything a finished session hands back to its caller."""

    documents: list[CrawlResult]
    embedded: int
    errors: list[ErrorRecord]
    stats: CrawlStats

    def to_json(self, *, include_content: bool = False) -> JSONDict:
        documents: list[JSONValue] = []
        for doc in self.documents:
            payload = doc.to_json()
            if not include_content:
                payload.pop("content", None)
            documents.append(payload)
        return {
            "documents": documents,
            "embedded": self.embedded,
            "errors": [error.to_json() for error in self.errors],
            "stats": self.stats.to_json(),
        }


__all__ = [
    "CrawlResult",
    "CrawlResultMetadata",
    "CrawlStage",
    "CrawlStats",
    "DocType",
    "ErrorRecord",
    "FetchResult",
    "FrontierEntry",
    "ImageRef",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "ProgressUpdate",
    "SessionResult",
    "StopReason",
    "utc_now_iso",
]
