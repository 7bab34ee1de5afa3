from __future__ import annotations

import threading

from ingest.crawler import BudgetGovernor, CrawlOptions, EnqueueStatus, Frontier, StopReason


def test_frontier_is_fifo_and_normalizes() -> None:
    frontier = Frontier()

    first = frontier.enqueue("https://Example.com/a#frag", 0)
    frontier.enqueue("https://example.com/b", 1, "https://example.com/a")

    assert first.accepted
    assert first.normalized_url == "https://example.com/a"

    entry = frontier.dequeue()
    assert entry is not None
    assert entry.url == "https://example.com/a"
    assert entry.depth == 0

    entry = frontier.dequeue()
    assert entry is not None
    assert entry.parent_url == "https://example.com/a"
    assert frontier.dequeue() is None


def test_frontier_rejects_queued_visited_and_invalid() -> None:
    frontier = Frontier()

    assert frontier.enqueue("https://example.com/a", 0).accepted
    assert frontier.enqueue("https://example.com/a", 1).status == EnqueueStatus.SKIPPED_QUEUED
    assert frontier.enqueue("nonsense", 1).status == EnqueueStatus.SKIPPED_INVALID_URL

    entry = frontier.dequeue()
    assert entry is not None
    assert frontier.mark_visited(entry.url) is True
    assert frontier.mark_visited(entry.url) is False

    assert frontier.enqueue("https://example.com/a", 2).status == EnqueueStatus.SKIPPED_VISITED
    assert frontier.is_known("https://example.com/a")
    assert frontier.visited_urls() == {"https://example.com/a"}


def test_frontier_drops_entries_beyond_max_depth() -> None:
    frontier = Frontier(max_depth=1)

    frontier.enqueue("https://example.com/deep", 2)
    frontier.enqueue("https://example.com/ok", 1)

    entry = frontier.dequeue()
    assert entry is not None
    assert entry.url == "https://example.com/ok"
    assert frontier.dequeue() is None
    assert frontier.snapshot()["dropped_depth"] == 1


def test_governor_page_budget() -> None:
    governor = BudgetGovernor(CrawlOptions(max_pages=2, crawl_delay_ms=0))

    assert governor.should_stop(1) is None
    assert governor.should_stop(2) == StopReason.PAGE_BUDGET


def test_governor_time_budget_uses_clock(clock) -> None:
    governor = BudgetGovernor(CrawlOptions(max_time_minutes=1, crawl_delay_ms=0), clock=clock)

    clock.advance(30)
    assert governor.should_stop(0) is None
    clock.advance(31)
    assert governor.should_stop(0) == StopReason.TIME_BUDGET
    assert governor.elapsed_ms == 61_000


def test_governor_unbounded_limits_never_stop(clock) -> None:
    governor = BudgetGovernor(CrawlOptions(crawl_delay_ms=0), clock=clock)

    clock.advance(10_000_000)
    assert governor.should_stop(10_000_000) is None


def test_governor_cancel_wins_and_interrupts_pause() -> None:
    event = threading.Event()
    governor = BudgetGovernor(CrawlOptions(crawl_delay_ms=5_000), cancel_event=event)

    event.set()
    assert governor.should_stop(0) == StopReason.CANCELLED
    # The pause waits on the already-set event and returns immediately.
    assert governor.pause() is True


def test_governor_pause_waits_for_crawl_delay(clock) -> None:
    governor = BudgetGovernor(CrawlOptions(crawl_delay_ms=250), clock=clock, wait=clock.wait)

    assert governor.pause() is False
    assert clock.waits == [0.25]
