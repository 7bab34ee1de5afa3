from __future__ import annotations

from typing import Callable

import pytest

from ingest.crawler import CrawlOptions, CrawlResult, EmbedError, FetchResult, normalize_url


DOC_TEXT = (
    "Remove the four mounting bolts and lift the pump assembly clear of the bracket. "
    "Torque the replacement bolts to 25 Nm and check the installation for leaks."
)


def html_page(body: str, *, title: str = "Service Page") -> bytes:
    return (
        f"<html><head><title>{title}</title></head>"
        f"<body>{body}</body></html>"
    ).encode("utf-8")


def doc_page(text: str = DOC_TEXT, *, title: str = "Service Page", links: str = "") -> bytes:
    """HTML page whose <main> holds documentation-like text."""

    return html_page(f"<nav>{links}</nav><main><p>{text}</p></main>", title=title)


class FakeClock:
    """Monotonic clock advanced only by `wait` calls (and explicit `advance`)."""

    def __init__(self) -> None:
        self.now = 0.0
        self.waits: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def wait(self, seconds: float) -> bool:
        self.waits.append(seconds)
        self.now += seconds
        return False


class FakeFetcher:
    """In-memory fetcher keyed by normalized URL. Unknown URLs return 404."""

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self.responses: dict[str, FetchResult | Exception] = {}
        self.calls: list[str] = []
        self.call_times: list[float] = []
        self.clock = clock

    def add(
        self,
        url: str,
        body: bytes | str,
        *,
        content_type: str = "text/html; charset=utf-8",
        status_code: int = 200,
        final_url: str | None = None,
        last_modified: str | None = None,
    ) -> str:
        key = normalize_url(url) or url
        payload = body.encode("utf-8") if isinstance(body, str) else body
        self.responses[key] = FetchResult(
            requested_url=key,
            final_url=final_url or key,
            status_code=status_code,
            content_type=content_type,
            body=payload,
            last_modified=last_modified,
        )
        return key

    def fail(self, url: str, exc: Exception) -> str:
        key = normalize_url(url) or url
        self.responses[key] = exc
        return key

    def fetch(self, url: str) -> FetchResult:
        self.calls.append(url)
        if self.clock is not None:
            self.call_times.append(self.clock())

        response = self.responses.get(url)
        if isinstance(response, Exception):
            raise response
        if response is None:
            return FetchResult(
                requested_url=url,
                final_url=url,
                status_code=404,
                content_type="text/html",
                body=b"not found",
            )
        return response


class RecordingSink:
    def __init__(self, fail_urls: set[str] | None = None) -> None:
        self.embedded: list[CrawlResult] = []
        self.fail_urls = fail_urls or set()

    def embed(self, result: CrawlResult) -> None:
        if result.url in self.fail_urls:
            raise EmbedError("vector store unavailable")
        self.embedded.append(result)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fetcher(clock) -> FakeFetcher:
    return FakeFetcher(clock)


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def options() -> CrawlOptions:
    """Fast options: no politeness delay, no retries."""

    return CrawlOptions(crawl_delay_ms=0, retries=0)
