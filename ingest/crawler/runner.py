"""Run crawl sessions as background jobs tracked in a job store."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

from .config import CrawlOptions
from .constants import (
    JOB_DEFAULT_MAX_DEPTH,
    JOB_DEFAULT_MAX_PAGES,
    JOB_DEFAULT_MAX_TIME_MINUTES,
)
from .errors import ConfigError
from .jobs import CrawlJob, InMemoryJobStore, JobStore, summarize_jobs
from .session import CrawlSession
from .url import coerce_start_url, host_from_url, validate_seed_url


LOGGER = logging.getLogger(__name__)

JOB_DEFAULTS: dict[str, Any] = {
    "max_pages": JOB_DEFAULT_MAX_PAGES,
    "max_depth": JOB_DEFAULT_MAX_DEPTH,
    "max_time_minutes": JOB_DEFAULT_MAX_TIME_MINUTES,
}

SessionFactory = Callable[..., CrawlSession]


class CrawlJobRunner:
    """Start, track, and cancel crawl jobs.

    Each job runs one `CrawlSession` on its own daemon thread and reports into
    the shared job store. Options left unset get the job defaults (500 pages,
    depth 8, 60 minutes).
    """

    def __init__(
        self,
        job_store: JobStore | None = None,
        *,
        session_factory: SessionFactory = CrawlSession,
        session_kwargs: dict[str, Any] | None = None,
    ) -> None:
        self.job_store: JobStore = job_store if job_store is not None else InMemoryJobStore()
        self._session_factory = session_factory
        self._session_kwargs = dict(session_kwargs or {})

        self._lock = threading.Lock()
        self._cancel_events: dict[str, threading.Event] = {}
        self._threads: dict[str, threading.Thread] = {}

    @staticmethod
    def job_options(options: CrawlOptions | None = None) -> CrawlOptions:
        """Fill unbounded limits with the background-job defaults."""

        if options is None:
            return CrawlOptions.from_dict(JOB_DEFAULTS)
        overrides = {
            key: value
            for key, value in JOB_DEFAULTS.items()
            if getattr(options, key) is None
        }
        return options.merged(overrides) if overrides else options

    def _new_job_id(self) -> str:
        with self._lock:
            base = f"crawl-{int(time.time() * 1000)}"
            job_id = base
            suffix = 1
            while self.job_store.get(job_id) is not None:
                job_id = f"{base}-{suffix}"
                suffix += 1
            self.job_store.put(CrawlJob(id=job_id, start_url=""))
            return job_id

    def start(
        self,
        url: str,
        options: CrawlOptions | None = None,
        *,
        keywords: list[str] | None = None,
    ) -> CrawlJob:
        """Register a job and start crawling `url` in the background.

        Without `keywords` or configured `allowed_domains` the job stays on the
        seed's host; a keyword search may follow links anywhere. Raises
        `ConfigError` immediately when the URL cannot be crawled.
        """

        start_url = validate_seed_url(coerce_start_url(url))
        session_options = self.job_options(options)
        if not session_options.allowed_domains and not keywords:
            session_options = session_options.merged({"allowed_domains": [host_from_url(start_url)]})

        job_id = self._new_job_id()
        job = CrawlJob(id=job_id, start_url=start_url)
        self.job_store.put(job)

        cancel_event = threading.Event()
        try:
            session = self._session_factory(
                session_options,
                cancel_event=cancel_event,
                job_store=self.job_store,
                job_id=job_id,
                **self._session_kwargs,
            )
        except ConfigError as exc:
            self.job_store.put(job.with_failure(str(exc)))
            raise

        thread = threading.Thread(
            target=self._run_job,
            args=(session, job_id, start_url),
            name=f"crawl-job-{job_id}",
            daemon=True,
        )
        with self._lock:
            self._cancel_events[job_id] = cancel_event
            self._threads[job_id] = thread
        thread.start()

        LOGGER.info("Started crawl job %s for %s", job_id, start_url)
        return job

    def _run_job(self, session: CrawlSession, job_id: str, start_url: str) -> None:
        try:
            session.run(start_url)
        except Exception as exc:
            LOGGER.exception("Crawl job %s failed", job_id)
            job = self.job_store.get(job_id)
            if job is not None:
                self.job_store.put(job.with_failure(f"{exc.__class__.__name__}: {exc}"))
        finally:
            with self._lock:
                self._cancel_events.pop(job_id, None)
                self._threads.pop(job_id, None)

    def get(self, job_id: str) -> CrawlJob | None:
        return self.job_store.get(job_id)

    def list(self) -> list[CrawlJob]:
        return self.job_store.list()

    def cancel(self, job_id: str) -> bool:
        """Signal a running job to stop. Returns False for unknown/finished jobs."""

        with self._lock:
            event = self._cancel_events.get(job_id)
        if event is None:
            return False
        event.set()
        LOGGER.info("Cancellation requested for crawl job %s", job_id)
        return True

    def wait(self, job_id: str, timeout: float | None = None) -> CrawlJob | None:
        """Block until the job thread exits (or `timeout` elapses)."""

        with self._lock:
            thread = self._threads.get(job_id)
        if thread is not None:
            thread.join(timeout)
        return self.job_store.get(job_id)

    def running_jobs(self) -> list[str]:
        """Ids of jobs whose worker thread has not finished yet."""

        with self._lock:
            return sorted(self._threads)

    def summary(self) -> dict[str, int]:
        return summarize_jobs(self.job_store.list())


__all__ = [
    "CrawlJobRunner",
    "JOB_DEFAULTS",
]
