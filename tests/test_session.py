from __future__ import annotations

import pytest

from conftest import DOC_TEXT, RecordingSink, doc_page, html_page
from ingest.crawler import (
    ConfigError,
    CrawlerError,
    CrawlJob,
    CrawlOptions,
    CrawlSession,
    CrawlStage,
    DocType,
    InMemoryJobStore,
    JobStatus,
    ParseError,
    PDFExtraction,
    StopReason,
    search_manuals,
)


SEED = "https://example.com/"

VALVE_TEXT = (
    "Install the relief valve with the arrow facing downstream. Replace the gasket "
    "whenever the valve is removed and adjust the spring preload per the chart."
)
FILTER_TEXT = (
    "Inspect the filter element every 500 hours of operation. Remove the housing cap, "
    "replace the element, and check the seal for cracks before reassembly."
)


def _session(options, fetcher, clock, **kwargs) -> CrawlSession:
    return CrawlSession(options, fetcher=fetcher, clock=clock, wait=clock.wait, **kwargs)


def _links(*pairs: tuple[str, str]) -> str:
    return "".join(f'<a href="{href}">{text}</a>' for href, text in pairs)


class _FailingPDFParser:
    def parse(self, pdf_bytes: bytes) -> PDFExtraction:
        raise ParseError("EOF marker not found")


class _StaticPDFParser:
    def __init__(self, extraction: PDFExtraction) -> None:
        self.extraction = extraction

    def parse(self, pdf_bytes: bytes) -> PDFExtraction:
        return self.extraction


def test_single_page_crawl(options, fetcher, clock, sink) -> None:
    fetcher.add(SEED, doc_page(title="Pump Service"), last_modified="Mon, 01 Jan 2024 00:00:00 GMT")

    result = _session(options, fetcher, clock, sink=sink).run(SEED)

    assert result.stats.stop_reason == StopReason.FRONTIER_EXHAUSTED
    assert result.stats.pages_visited == 1
    assert result.errors == []
    assert result.embedded == 1
    assert sink.embedded == result.documents

    (doc,) = result.documents
    assert doc.url == SEED
    assert doc.title == "Pump Service"
    assert doc.doc_type == DocType.HTML
    assert DOC_TEXT in doc.content
    assert doc.metadata.content_type == "text/html"
    assert doc.metadata.last_modified == "Mon, 01 Jan 2024 00:00:00 GMT"
    assert doc.metadata.size == len(doc.content)
    assert doc.metadata.content_hash is not None


def test_pdf_link_is_fetched_before_contact_link(options, fetcher, clock) -> None:
    fetcher.add(
        SEED,
        doc_page(links=_links(("/contact", "Contact Us"), ("/docs/service.pdf", "Service Manual (PDF)"))),
    )

    _session(options, fetcher, clock, pdf_parser=_FailingPDFParser()).run(SEED)

    assert fetcher.calls == [
        SEED,
        "https://example.com/docs/service.pdf",
        "https://example.com/contact",
    ]


def test_identical_pages_yield_one_result(options, fetcher, clock) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/manual-a", "Manual A"), ("/manual-b", "Manual B"))))
    same = doc_page(VALVE_TEXT, title="Relief Valve")
    fetcher.add("https://example.com/manual-a", same)
    fetcher.add("https://example.com/manual-b", same)

    result = _session(options, fetcher, clock).run(SEED)

    assert [doc.url for doc in result.documents] == [SEED, "https://example.com/manual-a"]
    assert result.stats.duplicates_skipped == 1
    assert result.errors == []


def test_identical_extracted_text_yields_one_result(options, fetcher, clock) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/manual-a", "Manual A"), ("/manual-b", "Manual B"))))
    fetcher.add("https://example.com/manual-a", doc_page(VALVE_TEXT, title="Relief Valve"))
    # Different markup, same main text.
    fetcher.add("https://example.com/manual-b", doc_page(VALVE_TEXT, title="Relief Valve (print)"))

    result = _session(options, fetcher, clock).run(SEED)

    assert [doc.url for doc in result.documents] == [SEED, "https://example.com/manual-a"]
    assert result.stats.duplicates_skipped == 1


def test_page_budget_stops_normally(fetcher, clock) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/manual-a", "Manual A"), ("/manual-b", "Manual B"))))
    options = CrawlOptions(max_pages=1, crawl_delay_ms=0, retries=0)

    session = _session(options, fetcher, clock)
    result = session.run(SEED)

    assert fetcher.calls == [SEED]
    assert result.stats.stop_reason == StopReason.PAGE_BUDGET
    assert result.stats.pages_visited == 1
    assert result.errors == []
    assert len(session.frontier) == 2


def test_server_error_is_recorded_and_crawl_continues(options, fetcher, clock) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/manual-broken", "Manual 1"), ("/manual-ok", "Manual 2"))))
    fetcher.add("https://example.com/manual-broken", "oops", status_code=500)
    fetcher.add("https://example.com/manual-ok", doc_page(VALVE_TEXT))

    result = _session(options, fetcher, clock).run(SEED)

    assert len(result.errors) == 1
    error = result.errors[0]
    assert error.url == "https://example.com/manual-broken"
    assert error.stage == CrawlStage.FETCH
    assert error.status_code == 500
    assert error.message == "HTTP 500"
    assert [doc.url for doc in result.documents] == [SEED, "https://example.com/manual-ok"]
    assert result.stats.stop_reason == StopReason.FRONTIER_EXHAUSTED


def test_fetch_exceptions_are_recorded(options, fetcher, clock) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/manual-a", "Manual A"))))
    fetcher.fail("https://example.com/manual-a", RuntimeError("socket closed"))

    result = _session(options, fetcher, clock).run(SEED)

    (error,) = result.errors
    assert error.stage == CrawlStage.FETCH
    assert error.error_type == "RuntimeError"
    assert str(error) == "[fetch] https://example.com/manual-a: socket closed"


def test_other_domains_are_never_enqueued(fetcher, clock) -> None:
    fetcher.add(
        SEED,
        doc_page(links=_links(("https://other.com/manual", "Manual"), ("/manual-a", "Manual A"))),
    )
    fetcher.add("https://example.com/manual-a", doc_page(VALVE_TEXT))
    options = CrawlOptions(allowed_domains=["example.com"], crawl_delay_ms=0, retries=0)

    session = _session(options, fetcher, clock)
    session.run(SEED)

    assert "https://other.com/manual" not in fetcher.calls
    assert not session.frontier.is_known("https://other.com/manual")
    assert fetcher.calls == [SEED, "https://example.com/manual-a"]


def test_max_depth_bounds_the_crawl(fetcher, clock) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/manual-1", "Manual 1"))))
    fetcher.add("https://example.com/manual-1", doc_page(VALVE_TEXT, links=_links(("/manual-2", "Manual 2"))))
    fetcher.add("https://example.com/manual-2", doc_page(FILTER_TEXT))
    options = CrawlOptions(max_depth=1, crawl_delay_ms=0, retries=0)

    result = _session(options, fetcher, clock).run(SEED)

    assert fetcher.calls == [SEED, "https://example.com/manual-1"]
    assert result.stats.max_depth_reached == 1


def test_each_url_is_fetched_once(options, fetcher, clock) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/manual-a", "Manual A"), ("/manual-a#part-2", "Manual A part 2"))))
    fetcher.add("https://example.com/manual-a", doc_page(VALVE_TEXT, links=_links(("/", "Home manual"))))

    result = _session(options, fetcher, clock).run(SEED)

    assert fetcher.calls == [SEED, "https://example.com/manual-a"]
    assert result.stats.pages_visited == 2


def test_redirect_target_counts_as_visited(options, fetcher, clock) -> None:
    fetcher.add(
        SEED,
        doc_page(links=_links(("/old-manual", "Old Manual"), ("/new-manual", "New Manual"))),
    )
    fetcher.add(
        "https://example.com/old-manual",
        doc_page(VALVE_TEXT),
        final_url="https://example.com/new-manual",
    )

    _session(options, fetcher, clock).run(SEED)

    assert "https://example.com/new-manual" not in fetcher.calls


def test_politeness_delay_between_fetches(fetcher, clock) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/manual-a", "Manual A"), ("/manual-b", "Manual B"))))
    fetcher.add("https://example.com/manual-a", doc_page(VALVE_TEXT))
    fetcher.add("https://example.com/manual-b", doc_page(FILTER_TEXT))
    options = CrawlOptions(crawl_delay_ms=300, retries=0)

    _session(options, fetcher, clock).run(SEED)

    assert len(fetcher.call_times) == 3
    gaps = [later - earlier for earlier, later in zip(fetcher.call_times, fetcher.call_times[1:])]
    assert all(gap >= 0.3 for gap in gaps)
    assert clock.waits == [0.3, 0.3]


def test_time_budget_stops_the_crawl(fetcher, clock) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/manual-a", "Manual A"))))
    options = CrawlOptions(max_time_minutes=0.01, crawl_delay_ms=0, retries=0)

    session = _session(options, fetcher, clock)
    session.add_observer(lambda update: clock.advance(1.0))
    result = session.run(SEED)

    assert fetcher.calls == [SEED]
    assert result.stats.stop_reason == StopReason.TIME_BUDGET
    assert result.stats.time_elapsed_ms == 1000


def test_time_budget_spent_in_politeness_pause(fetcher, clock) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/manual-a", "Manual A"))))
    fetcher.add("https://example.com/manual-a", doc_page(VALVE_TEXT))
    options = CrawlOptions(max_time_minutes=0.01, crawl_delay_ms=1000, retries=0)

    result = _session(options, fetcher, clock).run(SEED)

    assert fetcher.calls == [SEED]
    assert clock.waits == [1.0]
    assert result.stats.stop_reason == StopReason.TIME_BUDGET
    assert result.stats.time_elapsed_ms == 1000


def test_cancel_returns_collected_documents(options, fetcher, clock, sink) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/manual-a", "Manual A"))))
    fetcher.add("https://example.com/manual-a", doc_page(VALVE_TEXT))

    session = _session(options, fetcher, clock, sink=sink)
    session.add_observer(lambda update: session.cancel())
    result = session.run(SEED)

    assert result.stats.stop_reason == StopReason.CANCELLED
    assert fetcher.calls == [SEED]
    assert [doc.url for doc in result.documents] == [SEED]
    assert result.embedded == 1


def test_embed_failures_are_recorded(options, fetcher, clock) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/manual-a", "Manual A"))))
    fetcher.add("https://example.com/manual-a", doc_page(VALVE_TEXT))
    sink = RecordingSink(fail_urls={SEED})

    result = _session(options, fetcher, clock, sink=sink).run(SEED)

    assert len(result.documents) == 2
    assert result.embedded == 1
    (error,) = result.errors
    assert error.stage == CrawlStage.EMBED
    assert error.url == SEED
    assert error.message == f"Failed to embed {SEED}: vector store unavailable"


def test_progress_updates(options, fetcher, clock, sink) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/manual-a", "Manual A"))))
    fetcher.add("https://example.com/manual-a", doc_page(VALVE_TEXT))
    updates = []

    def broken_observer(update) -> None:
        raise RuntimeError("observer bug")

    _session(options, fetcher, clock, sink=sink, observers=[broken_observer, updates.append]).run(SEED)

    # One update per visited page, then one per embedded document.
    assert [(u.pages_visited, u.documents_found, u.embedded) for u in updates] == [
        (1, 1, 0),
        (2, 2, 0),
        (2, 2, 1),
        (2, 2, 2),
    ]


def test_job_store_tracks_session(options, fetcher, clock) -> None:
    fetcher.add(SEED, doc_page())
    store = InMemoryJobStore()
    store.put(CrawlJob(id="crawl-1", start_url=SEED))

    _session(options, fetcher, clock, job_store=store, job_id="crawl-1").run(SEED)

    job = store.get("crawl-1")
    assert job is not None
    assert job.status == JobStatus.COMPLETED
    assert job.documents_found == 1
    assert job.pages_visited == 1


def test_invalid_seed_raises_before_fetching(options, fetcher, clock) -> None:
    session = _session(options, fetcher, clock)

    with pytest.raises(ConfigError):
        session.run("not a url")
    assert fetcher.calls == []


def test_session_is_single_use(options, fetcher, clock) -> None:
    fetcher.add(SEED, doc_page())
    session = _session(options, fetcher, clock)
    session.run(SEED)

    with pytest.raises(CrawlerError):
        session.run(SEED)


def test_thin_pages_are_crawled_but_not_kept(options, fetcher, clock) -> None:
    fetcher.add(SEED, html_page("<main><p>Welcome!</p></main>" + _links(("/manual-a", "Manual A"))))
    fetcher.add("https://example.com/manual-a", doc_page(VALVE_TEXT))

    result = _session(options, fetcher, clock).run(SEED)

    assert [doc.url for doc in result.documents] == ["https://example.com/manual-a"]
    assert fetcher.calls == [SEED, "https://example.com/manual-a"]


def test_images_keep_short_pages(options, fetcher, clock) -> None:
    text = "Lorem ipsum dolor sit amet consectetur " * 4
    fetcher.add(
        SEED,
        html_page(f'<main><p>{text}</p><img src="/img/pump.png" alt="Pump cutaway"></main>'),
    )

    result = _session(options, fetcher, clock).run(SEED)

    (doc,) = result.documents
    assert doc.content.endswith("Image 1: Pump cutaway (https://example.com/img/pump.png)")
    assert doc.metadata.image_count == 1


def test_pdf_parse_failure_stores_placeholder(options, fetcher, clock) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/files/pump.pdf", "Pump manual"))))
    fetcher.add("https://example.com/files/pump.pdf", b"%PDF-1.4 truncated", content_type="application/pdf")

    result = _session(options, fetcher, clock, pdf_parser=_FailingPDFParser()).run(SEED)

    pdf = result.documents[-1]
    assert pdf.doc_type == DocType.PDF
    assert pdf.title == "pump"
    assert pdf.content.startswith("[PDF Document: pump.pdf]\n")
    assert pdf.metadata.original_filename == "pump.pdf"
    assert pdf.metadata.size == len(b"%PDF-1.4 truncated")
    assert pdf.metadata.title_inferred is False
    assert result.errors == []


@pytest.mark.parametrize(
    "pdf_parser",
    [_FailingPDFParser(), _StaticPDFParser(PDFExtraction(text=""))],
    ids=["parse-error", "no-text"],
)
def test_same_named_pdfs_without_text_are_both_kept(options, fetcher, clock, pdf_parser) -> None:
    fetcher.add(
        SEED,
        doc_page(links=_links(("/a/manual.pdf", "Manual A"), ("/b/manual.pdf", "Manual B"))),
    )
    fetcher.add("https://example.com/a/manual.pdf", b"%PDF-1.4 first", content_type="application/pdf")
    fetcher.add("https://example.com/b/manual.pdf", b"%PDF-1.4 second", content_type="application/pdf")

    result = _session(options, fetcher, clock, pdf_parser=pdf_parser).run(SEED)

    pdfs = [doc for doc in result.documents if doc.doc_type == DocType.PDF]
    assert [doc.url for doc in pdfs] == [
        "https://example.com/a/manual.pdf",
        "https://example.com/b/manual.pdf",
    ]
    assert all(doc.content.startswith("[PDF Document: manual.pdf]\n") for doc in pdfs)
    assert result.stats.duplicates_skipped == 0


def test_pdf_text_gets_info_prefix_and_inferred_title(options, fetcher, clock) -> None:
    fetcher.add(SEED, doc_page(links=_links(("/files/pump.pdf", "Pump manual"))))
    fetcher.add("https://example.com/files/pump.pdf", b"%PDF-1.4 ...", content_type="application/pdf")
    body = "Hydraulic Pump Service Manual\n" + FILTER_TEXT
    extraction = PDFExtraction(text=body, info={"Title": "Hydraulic Pump Service Manual", "Author": "ACME"})

    result = _session(options, fetcher, clock, pdf_parser=_StaticPDFParser(extraction)).run(SEED)

    pdf = result.documents[-1]
    assert pdf.title == "Hydraulic Pump Service Manual"
    assert pdf.content == "Author: ACME\n\n" + body
    assert pdf.metadata.title_inferred is True


def test_word_and_json_documents(options, fetcher, clock) -> None:
    fetcher.add(
        SEED,
        doc_page(links=_links(("/files/pump.docx", "Pump manual"), ("/files/parts.json", "Parts list"))),
    )
    fetcher.add("https://example.com/files/pump.docx", b"PK\x03\x04 binary", content_type="application/octet-stream")
    fetcher.add("https://example.com/files/parts.json", b'{"part": "gasket"}', content_type="application/json")

    result = _session(options, fetcher, clock).run(SEED)

    by_url = {doc.url: doc for doc in result.documents}
    word = by_url["https://example.com/files/pump.docx"]
    assert word.doc_type == DocType.DOC
    assert word.content.startswith("[Word Document: pump.docx]")

    parts = by_url["https://example.com/files/parts.json"]
    assert parts.doc_type == DocType.JSON
    assert parts.title == "parts"
    assert parts.content == '{"part": "gasket"}'


def test_search_manuals_filters_by_keyword(fetcher, clock) -> None:
    fetcher.add(
        "https://example.com/",
        doc_page(
            VALVE_TEXT,
            links=_links(("/files/pump.pdf", "Pump manual"), ("/files/valve.pdf", "Valve manual")),
        ),
    )
    fetcher.add("https://example.com/files/pump.pdf", b"%PDF pump", content_type="application/pdf")
    fetcher.add("https://example.com/files/valve.pdf", b"%PDF valve", content_type="application/pdf")

    results = search_manuals(
        "example.com",
        ["pump"],
        options=CrawlOptions(crawl_delay_ms=0, retries=0),
        fetcher=fetcher,
        pdf_parser=_FailingPDFParser(),
        clock=clock,
        wait=clock.wait,
    )

    assert [doc.url for doc in results] == ["https://example.com/files/pump.pdf"]
