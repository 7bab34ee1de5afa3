"""HTTP fetching with `requests`, retries, and linear backoff."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

import requests

from .config import CrawlOptions
from .types import FetchResult
from .url import normalize_url


LOGGER = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 429})


def _failed(url: str, error: str, elapsed_ms: int | None = None) -> FetchResult:
    return FetchResult(
        requested_url=url,
        final_url=None,
        status_code=None,
        content_type=None,
        body=None,
        elapsed_ms=elapsed_ms,
        error=error,
    )


def should_retry(result: FetchResult) -> bool:
    """Network errors, throttling and server errors are worth another try."""

    code = result.status_code
    return result.error is not None or code is None or code in RETRYABLE_STATUS_CODES or code >= 500


class Fetcher:
    """Fetch URLs with a per-thread `requests.Session`.

    HTTP failures are never raised: they come back as a `FetchResult` whose
    `status_code` or `error` explains what went wrong. Retryable failures
    (see `should_retry`) are attempted `options.retries` more times, sleeping
    `retry_backoff_seconds * attempt` in between.
    """

    def __init__(
        self,
        options: CrawlOptions,
        *,
        session_factory: Callable[[], requests.Session] = requests.Session,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.options = options
        self._session_factory = session_factory
        self._sleep = sleep
        self._local = threading.local()
        self._open_sessions: list[requests.Session] = []
        self._lock = threading.Lock()
        self._closed = False

    def fetch(self, url: str) -> FetchResult:
        target = normalize_url(url)
        if target is None:
            return _failed(url, "Invalid or unsupported URL")

        attempts = max(1, self.options.retries + 1)
        backoff = max(0.0, self.options.retry_backoff_seconds)
        result = _failed(target, "Unknown fetch failure")

        for attempt in range(1, attempts + 1):
            with self._lock:
                if self._closed:
                    return _failed(target, "Fetcher is closed")

            result = self._get(target)
            if not should_retry(result):
                break

            LOGGER.debug("Fetch of %s failed (attempt %d/%d): %s", target, attempt, attempts, result.failure_message())
            if attempt < attempts and backoff > 0:
                self._sleep(backoff * attempt)

        return result

    __call__ = fetch

    def close(self) -> None:
        """Close every session opened by this fetcher; later fetches fail fast."""

        with self._lock:
            self._closed = True
            sessions, self._open_sessions = self._open_sessions, []
        for session in sessions:
            session.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _get(self, url: str) -> FetchResult:
        started = time.perf_counter()
        try:
            response = self._session().get(
                url,
                headers=self.options.headers(),
                timeout=self.options.timeout_seconds,
                allow_redirects=self.options.follow_redirects,
                verify=self.options.verify_tls,
            )
        except requests.RequestException as exc:
            return _failed(url, f"{type(exc).__name__}: {exc}", _elapsed_ms(started))

        headers = response.headers
        return FetchResult(
            requested_url=url,
            final_url=response.url or url,
            status_code=response.status_code,
            content_type=headers.get("Content-Type"),
            body=response.content or b"",
            last_modified=headers.get("Last-Modified"),
            elapsed_ms=_elapsed_ms(started),
        )

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = self._session_factory()
            with self._lock:
                self._open_sessions.append(session)
        return session


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


__all__ = ["Fetcher", "RETRYABLE_STATUS_CODES", "should_retry"]
