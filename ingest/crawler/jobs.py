"""Crawl job records and the job store a session reports into."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Protocol

from .types import CrawlStats, JSONDict, ProgressUpdate, SessionResult, StopReason, utc_now_iso


class JobStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class CrawlJob:
    """Snapshot of one background crawl. Stores replace it on every update."""

    id: str
    start_url: str
    status: JobStatus = JobStatus.RUNNING
    documents_found: int = 0
    embedded: int = 0
    pages_visited: int = 0
    errors: tuple[str, ...] = ()
    stats: CrawlStats | None = None
    started_at: str = field(default_factory=utc_now_iso)
    completed_at: str | None = None

    @property
    def finished(self) -> bool:
        return self.status != JobStatus.RUNNING

    def with_progress(self, update: ProgressUpdate) -> "CrawlJob":
        return replace(
            self,
            documents_found=update.documents_found,
            pages_visited=update.pages_visited,
            embedded=update.embedded,
        )

    def with_result(self, result: SessionResult) -> "CrawlJob":
        cancelled = result.stats.stop_reason == StopReason.CANCELLED
        return replace(
            self,
            status=JobStatus.CANCELLED if cancelled else JobStatus.COMPLETED,
            documents_found=len(result.documents),
            embedded=result.embedded,
            pages_visited=result.stats.pages_visited,
            errors=tuple(str(error) for error in result.errors),
            stats=result.stats,
            completed_at=utc_now_iso(),
        )

    def with_failure(self, message: str) -> "CrawlJob":
        return replace(
            self,
            status=JobStatus.FAILED,
            errors=self.errors + (message,),
            completed_at=utc_now_iso(),
        )

    def to_json(self) -> JSONDict:
        return {
            "id": self.id,
            "start_url": self.start_url,
            "status": self.status.value,
            "documents_found": self.documents_found,
            "embedded": self.embedded,
            "pages_visited": self.pages_visited,
            "errors": list(self.errors),
            "stats": None if self.stats is None else self.stats.to_json(),
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }


class JobStore(Protocol):
    def get(self, job_id: str) -> CrawlJob | None:
        ...

    def put(self, job: CrawlJob) -> None:
        ...

    def list(self) -> list[CrawlJob]:
        ...


class InMemoryJobStore:
    """Lock-guarded dict of jobs, in insertion order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[str, CrawlJob] = {}

    def get(self, job_id: str) -> CrawlJob | None:
        with self._lock:
            return self._jobs.get(job_id)

    def put(self, job: CrawlJob) -> None:
        with self._lock:
            self._jobs[job.id] = job

    def list(self) -> list[CrawlJob]:
        with self._lock:
            return list(self._jobs.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)


def update_job(store: JobStore, job_id: str, **changes: Any) -> CrawlJob | None:
    """Apply field changes to a stored job. Missing jobs are ignored."""

    job = store.get(job_id)
    if job is None:
        return None
    updated = replace(job, **changes)
    store.put(updated)
    return updated


def summarize_jobs(jobs: list[CrawlJob]) -> dict[str, int]:
    """Totals by status plus the overall job count."""

    summary = {"total": len(jobs)}
    for status in JobStatus:
        summary[status.value] = sum(1 for job in jobs if job.status == status)
    return summary


__all__ = [
    "CrawlJob",
    "InMemoryJobStore",
    "JobStatus",
    "JobStore",
    "summarize_jobs",
    "update_job",
]
