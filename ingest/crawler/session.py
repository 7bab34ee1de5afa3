"""Crawl session orchestration.

One `CrawlSession` drains a frontier seeded with a single start URL:

- each dequeued URL is fetched, deduplicated on its raw payload, and routed
  to the document, HTML, or plain-text path;
- HTML pages feed prioritized links back into the frontier;
- accepted documents are deduplicated again on their extracted text;
- after the loop every document is handed to the embedding sink.

Per-URL failures become `ErrorRecord` rows. Only `ConfigError` escapes `run`.
"""

from __future__ import annotations

from dataclasses import replace
import logging
import threading
import time
from typing import Callable, Iterable, Protocol

from .acceptance import AcceptanceConfig, looks_like_documentation, with_images
from .classifier import PageRoute, classify, doc_type_for
from .config import CrawlOptions
from .dedup import ContentHashRegistry, HashLayer
from .errors import CrawlerError, FetchError, ParseError
from .frontier import BudgetGovernor, Frontier
from .fetcher import Fetcher
from .jobs import JobStore
from .links import SCORE_HIGH, LinkCandidate, LinkPrioritizer, LinkPrioritizerConfig
from .parsers import HTMLParser, PDFParser
from .parsers.html_parser import UNTITLED
from .progress import ProgressObserver, ProgressReporter
from .sink import EmbeddingSink
from .stats import StatsCollector
from .titles import HeuristicTitleInferrer, TitleInferrer, resolve_title
from .types import (
    CrawlResult,
    CrawlResultMetadata,
    CrawlStage,
    DocType,
    ErrorRecord,
    FetchResult,
    FrontierEntry,
    ProgressUpdate,
    SessionResult,
    StopReason,
)
from .url import DomainFilter, filename_from_url, title_from_filename, validate_seed_url


LOGGER = logging.getLogger(__name__)

MANUAL_SEARCH_FILE_TYPES = (".pdf", ".doc", ".docx")


class FetcherLike(Protocol):
    def fetch(self, url: str) -> FetchResult:
        ...


def _decode(body: bytes) -> str:
    return body.decode("utf-8", errors="replace")


def pdf_placeholder(url: str) -> str:
    return (
        f"[PDF Document: {filename_from_url(url)}]\n"
        f"Source: {url}\n"
        "Direct PDF content extraction failed, but file is available for manual processing."
    )


def word_placeholder(url: str) -> str:
    return (
        f"[Word Document: {filename_from_url(url)}]\n"
        f"Source: {url}\n"
        "Binary document content is not extracted, but file is available for manual processing."
    )


class CrawlSession:
    """Single-use crawl of one site. Create a new session per crawl."""

    def __init__(
        self,
        options: CrawlOptions | None = None,
        *,
        fetcher: FetcherLike | None = None,
        sink: EmbeddingSink | None = None,
        html_parser: HTMLParser | None = None,
        pdf_parser: PDFParser | None = None,
        title_inferrer: TitleInferrer | None = None,
        link_config: LinkPrioritizerConfig | None = None,
        observers: Iterable[ProgressObserver] = (),
        cancel_event: threading.Event | None = None,
        job_store: JobStore | None = None,
        job_id: str | None = None,
        clock: Callable[[], float] = time.monotonic,
        wait: Callable[[float], bool] | None = None,
    ) -> None:
        self.options = options or CrawlOptions()

        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher if fetcher is not None else Fetcher(self.options)

        self.sink = sink
        self.html_parser = html_parser or HTMLParser()
        self.pdf_parser = pdf_parser or PDFParser()
        self.title_inferrer = title_inferrer if title_inferrer is not None else HeuristicTitleInferrer()

        self.domain_filter = DomainFilter(
            self.options.allowed_domains,
            strict=self.options.strict_domain_match,
        )
        self.prioritizer = LinkPrioritizer(self.options.document_file_types, link_config)
        self.acceptance = AcceptanceConfig(
            min_content_chars=self.options.min_content_chars,
            min_accept_chars=self.options.min_accept_chars,
        )

        self.cancel_event = cancel_event or threading.Event()
        self.frontier = Frontier(max_depth=self.options.max_depth)
        self.hashes = ContentHashRegistry()
        self.stats = StatsCollector()
        self.progress = ProgressReporter(observers)
        self.governor = BudgetGovernor(
            self.options,
            cancel_event=self.cancel_event,
            clock=clock,
            wait=wait,
        )

        self.job_store = job_store
        self.job_id = job_id

        self._documents: list[CrawlResult] = []
        self._errors: list[ErrorRecord] = []
        self._embedded = 0
        self._started = False

    def add_observer(self, observer: ProgressObserver) -> None:
        self.progress.add_observer(observer)

    def cancel(self) -> None:
        """Ask the crawl loop to stop; collected documents are still returned."""

        self.cancel_event.set()

    @property
    def documents(self) -> list[CrawlResult]:
        return list(self._documents)

    @property
    def errors(self) -> list[ErrorRecord]:
        return list(self._errors)

    def run(self, start_url: str) -> SessionResult:
        """Crawl from `start_url` until the frontier drains or a budget trips."""

        if self._started:
            raise CrawlerError("CrawlSession is single-use; create a new session per crawl")
        seed = validate_seed_url(start_url)
        self._started = True

        LOGGER.info(
            "Starting crawl: seed=%s max_depth=%s max_pages=%s max_time_minutes=%s",
            seed,
            self.options.max_depth,
            self.options.max_pages,
            self.options.max_time_minutes,
        )

        self.governor.restart()
        self.frontier.enqueue(seed, 0, None)

        try:
            stop_reason = self._crawl_loop()
            self._embed_all()
        finally:
            if self._owns_fetcher:
                close = getattr(self.fetcher, "close", None)
                if close is not None:
                    close()

        stats = self.stats.core(
            time_elapsed_ms=self.governor.elapsed_ms,
            stop_reason=stop_reason,
        )
        result = SessionResult(
            documents=list(self._documents),
            embedded=self._embedded,
            errors=list(self._errors),
            stats=stats,
        )

        LOGGER.info(
            "Crawl finished (%s): pages_visited=%d documents=%d embedded=%d errors=%d duplicates=%d",
            stop_reason.value,
            stats.pages_visited,
            len(result.documents),
            result.embedded,
            len(result.errors),
            stats.duplicates_skipped,
        )
        self._record_job_result(result)
        return result

    def _crawl_loop(self) -> StopReason:
        first = True
        while True:
            stop_reason = self.governor.should_stop(self.stats.pages_visited)
            if stop_reason is not None:
                return stop_reason

            entry = self.frontier.dequeue()
            if entry is None:
                return StopReason.FRONTIER_EXHAUSTED

            if not first:
                if self.governor.pause():
                    LOGGER.info("Crawl cancelled during politeness pause")
                    return StopReason.CANCELLED
                # The time budget can run out while pausing.
                stop_reason = self.governor.should_stop(self.stats.pages_visited)
                if stop_reason is not None:
                    return stop_reason
            first = False

            self._process_entry(entry)
            self._emit_progress()

    def _process_entry(self, entry: FrontierEntry) -> None:
        if not self.frontier.mark_visited(entry.url):
            return
        self.stats.record_visit(entry.depth)

        try:
            fetch_result = self.fetcher.fetch(entry.url)
        except Exception as exc:
            LOGGER.warning("Fetch raised for %s: %s", entry.url, exc)
            self._errors.append(
                ErrorRecord.from_exception(stage=CrawlStage.FETCH, url=entry.url, exc=exc)
            )
            return

        self.stats.record_fetch(fetch_result)
        if not fetch_result.ok:
            self._record_fetch_error(entry, fetch_result)
            return

        if fetch_result.final_url and fetch_result.final_url != entry.url:
            self.frontier.mark_visited(fetch_result.final_url)

        body = fetch_result.body or b""
        if not self.hashes.check_and_add_raw(body):
            LOGGER.debug("Duplicate payload at %s, skipping", entry.url)
            self.stats.record_duplicate(HashLayer.RAW)
            return

        route = classify(
            fetch_result.base_url,
            fetch_result.content_type,
            self.options.document_file_types,
        )
        self.stats.record_route(route.value)

        try:
            if route == PageRoute.DOCUMENT:
                self._process_document(entry, fetch_result, body)
            elif route == PageRoute.HTML:
                self._process_html(entry, fetch_result, body)
            else:
                self._process_plain(entry, fetch_result, body, DocType.UNKNOWN)
        except Exception as exc:
            LOGGER.exception("Processing failed for %s", entry.url)
            self._errors.append(
                ErrorRecord.from_exception(stage=CrawlStage.PROCESS, url=entry.url, exc=exc)
            )

    def _record_fetch_error(self, entry: FrontierEntry, fetch_result: FetchResult) -> None:
        exc = FetchError(
            entry.url,
            fetch_result.failure_message(),
            status_code=fetch_result.status_code,
        )
        LOGGER.warning("Fetch failed for %s: %s", entry.url, exc)
        self._errors.append(
            ErrorRecord.from_exception(
                stage=CrawlStage.FETCH,
                url=entry.url,
                exc=exc,
                status_code=exc.status_code,
            )
        )

    def _process_html(self, entry: FrontierEntry, fetch_result: FetchResult, body: bytes) -> None:
        base_url = fetch_result.base_url
        try:
            extraction = self.html_parser.parse(body, base_url=base_url)
        except ParseError as exc:
            LOGGER.warning("HTML parse failed for %s, keeping raw text: %s", entry.url, exc)
            self.stats.record_parse_fallback("html")
            text = _decode(body).strip()
            if looks_like_documentation(text, config=self.acceptance):
                self._commit(
                    url=entry.url,
                    title=UNTITLED,
                    content=text,
                    doc_type=DocType.HTML,
                    metadata=CrawlResultMetadata(
                        size=len(text),
                        last_modified=fetch_result.last_modified,
                        content_type="text/html",
                    ),
                )
            else:
                self.stats.record_rejected("not_documentation")
            return

        self._enqueue_links(entry, extraction.links)

        content = with_images(extraction.text, extraction.images)
        if not looks_like_documentation(
            content,
            has_images=bool(extraction.images),
            config=self.acceptance,
        ):
            self.stats.record_rejected("not_documentation")
            return

        if extraction.images:
            LOGGER.debug("Found %d images in %s", len(extraction.images), extraction.title)

        self._commit(
            url=entry.url,
            title=extraction.title,
            content=content,
            doc_type=DocType.HTML,
            metadata=CrawlResultMetadata(
                size=len(content),
                last_modified=fetch_result.last_modified,
                content_type="text/html",
                image_count=len(extraction.images) or None,
            ),
        )

    def _enqueue_links(self, entry: FrontierEntry, links: list[LinkCandidate]) -> None:
        scored = self.prioritizer.prioritize(
            links,
            allowed=self.domain_filter.allowed,
            known=self.frontier.is_known,
        )

        enqueued = 0
        for link in scored:
            result = self.frontier.enqueue(link.url, entry.depth + 1, entry.url)
            if not result.accepted:
                continue
            enqueued += 1
            if link.score >= SCORE_HIGH:
                LOGGER.debug("Found high-priority link: %s -> %s", link.text[:100], link.url)
        self.stats.record_links_enqueued(enqueued)

    def _process_document(
        self,
        entry: FrontierEntry,
        fetch_result: FetchResult,
        body: bytes,
    ) -> None:
        url = entry.url
        doc_type = doc_type_for(fetch_result.base_url, fetch_result.content_type)

        if doc_type == DocType.PDF:
            content, title, inferred = self._pdf_content(url, body)
        elif doc_type == DocType.DOC:
            content, title, inferred = word_placeholder(url), title_from_filename(url), False
        elif doc_type in (DocType.JSON, DocType.CSV):
            content, title, inferred = _decode(body), title_from_filename(url), False
        else:
            self._process_plain(entry, fetch_result, body, doc_type)
            return

        self._commit(
            url=url,
            title=title,
            content=content,
            doc_type=doc_type,
            metadata=self._document_metadata(url, fetch_result, body, inferred),
        )

    def _pdf_content(self, url: str, body: bytes) -> tuple[str, str, bool]:
        try:
            extraction = self.pdf_parser.parse(body)
        except ParseError as exc:
            LOGGER.warning("PDF parse failed for %s, storing as reference: %s", url, exc)
            self.stats.record_parse_fallback("pdf")
            return pdf_placeholder(url), title_from_filename(url), False

        title, inferred = resolve_title(self.title_inferrer, extraction.text, url)
        text = extraction.text.strip() or f"[PDF Document: {filename_from_url(url)}]\nSource: {url}"
        lines = extraction.info_lines(skip_title=title)
        content = "\n".join(lines) + "\n\n" + text if lines else text
        return content, title, inferred

    def _process_plain(
        self,
        entry: FrontierEntry,
        fetch_result: FetchResult,
        body: bytes,
        doc_type: DocType,
    ) -> None:
        content = _decode(body)
        title, inferred = resolve_title(self.title_inferrer, content, entry.url)
        self._commit(
            url=entry.url,
            title=title,
            content=content,
            doc_type=doc_type,
            metadata=self._document_metadata(entry.url, fetch_result, body, inferred),
        )

    @staticmethod
    def _document_metadata(
        url: str,
        fetch_result: FetchResult,
        body: bytes,
        title_inferred: bool,
    ) -> CrawlResultMetadata:
        return CrawlResultMetadata(
            size=len(body),
            last_modified=fetch_result.last_modified,
            content_type=fetch_result.content_type,
            original_filename=filename_from_url(url),
            title_inferred=title_inferred,
        )

    def _commit(
        self,
        *,
        url: str,
        title: str,
        content: str,
        doc_type: DocType,
        metadata: CrawlResultMetadata,
    ) -> CrawlResult | None:
        if not content.strip():
            self.stats.record_rejected("empty_content")
            return None

        is_new, digest = self.hashes.check_and_add_text(content)
        if not is_new:
            LOGGER.debug("Duplicate text at %s, skipping", url)
            self.stats.record_duplicate(HashLayer.TEXT)
            return None

        result = CrawlResult(
            url=url,
            title=title,
            content=content,
            doc_type=doc_type,
            metadata=replace(metadata, content_hash=digest),
        )
        self._documents.append(result)
        self.stats.record_document(doc_type)
        LOGGER.info("Added %s document: %s (%s)", doc_type.value, title, url)
        return result

    def _embed_all(self) -> None:
        if self.sink is None:
            return

        for document in list(self._documents):
            try:
                self.sink.embed(document)
            except Exception as exc:
                LOGGER.warning("Failed to embed %s: %s", document.url, exc)
                self._errors.append(
                    ErrorRecord(
                        stage=CrawlStage.EMBED,
                        url=document.url,
                        message=f"Failed to embed {document.url}: {exc}",
                        error_type=exc.__class__.__name__,
                    )
                )
            else:
                self._embedded += 1
            self._emit_progress()

    def _emit_progress(self) -> None:
        update = ProgressUpdate(
            documents_found=len(self._documents),
            pages_visited=self.stats.pages_visited,
            embedded=self._embedded,
        )
        self.progress.emit(update)
        if self.job_store is not None and self.job_id is not None:
            job = self.job_store.get(self.job_id)
            if job is not None:
                self.job_store.put(job.with_progress(update))

    def _record_job_result(self, result: SessionResult) -> None:
        if self.job_store is None or self.job_id is None:
            return
        job = self.job_store.get(self.job_id)
        if job is None:
            return
        self.job_store.put(job.with_result(result))


def search_manuals(
    domain: str,
    keywords: Iterable[str] | None = None,
    *,
    options: CrawlOptions | None = None,
    **session_kwargs,
) -> list[CrawlResult]:
    """Crawl `https://<domain>` restricted to that domain.

    With keywords, only PDF/Word files count as documents and results are
    filtered to those whose title or content mentions any keyword.
    """

    terms = [term.lower() for term in (keywords or ()) if term and term.strip()]

    overrides: dict[str, object] = {"allowed_domains": [domain]}
    if terms:
        overrides["file_types"] = list(MANUAL_SEARCH_FILE_TYPES)
    session_options = (options or CrawlOptions()).merged(overrides)

    session = CrawlSession(session_options, **session_kwargs)
    result = session.run(f"https://{domain.strip()}")

    if not terms:
        return result.documents
    return [
        doc
        for doc in result.documents
        if any(term in doc.title.lower() or term in doc.content.lower() for term in terms)
    ]


__all__ = [
    "CrawlSession",
    "FetcherLike",
    "MANUAL_SEARCH_FILE_TYPES",
    "pdf_placeholder",
    "search_manuals",
    "word_placeholder",
]
