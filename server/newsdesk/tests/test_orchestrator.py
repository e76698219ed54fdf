"""
Tests for newsdesk.ingest.orchestrator

Feeds are faked at the fetch layer; enrichment runs on the keyword fallback
unless a test swaps in a mock.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import rss
from newsdesk.core.types import PublisherError
from newsdesk.enricher import NewsEnricher
from newsdesk.feeds.client import FeedClient
from newsdesk.ingest import IngestionOrchestrator, IngestState
from newsdesk.models.news import EnrichmentResult
from newsdesk.store import ArticleStore


def _feed_client(*per_feed):
    client = MagicMock()
    client.fetch_all = AsyncMock(return_value=[list(items) for items in per_feed])
    return client


def _orchestrator(feed_client, store, *, enricher=None, **kwargs):
    kwargs.setdefault("sleep", AsyncMock())
    return IngestionOrchestrator(feed_client, enricher or NewsEnricher(None), store, **kwargs)


@pytest.fixture
def store():
    return ArticleStore()


@pytest.fixture
def items(make_item):
    """n items, newest first, on distinct URLs."""

    def _items(n, prefix="https://example.com/"):
        return [make_item(url=f"{prefix}{i}", title=f"Story {i}", minutes_ago=i) for i in range(n)]

    return _items


# ── End to end over FeedClient ───────────────────────────────────────────────

async def test_partial_feed_failure_and_cross_feed_duplicate(store):
    a, b, c = "https://a.example.com/rss", "https://b.example.com/rss", "https://c.example.com/rss"
    pages = {
        a: rss(
            ("Infosys results", "https://a.example.com/1"),
            ("TCS deal", "https://a.example.com/2"),
            ("RBI policy", "https://shared.example.com/story"),
        ),
        b: None,
        c: rss(
            ("RBI holds rates", "https://shared.example.com/story/?utm_source=rss"),
            ("Wipro slips", "https://c.example.com/2"),
        ),
    }
    feed_client = FeedClient([a, b, c], timeout_seconds=0.05)

    async def fake_fetch_text(url):
        if pages[url] is None:
            await asyncio.sleep(5)
        return pages[url]

    feed_client._fetch_text = fake_fetch_text
    orchestrator = _orchestrator(feed_client, store)

    stats = await orchestrator.run()
    await orchestrator.wait_idle()

    assert stats.fetched == 4
    assert store.count() == 4
    assert orchestrator.last_run.failed == 4
    assert feed_client.stats.timeouts == 1
    stored_urls = {article.source_url for article in store.list_articles()}
    assert "https://shared.example.com/story" in stored_urls
    assert not any("utm_source" in url for url in stored_urls)


# ── Priority and background batches ──────────────────────────────────────────

async def test_priority_batch_committed_before_return(store, items):
    orchestrator = _orchestrator(_feed_client(items(5)), store, priority_batch_size=3)

    stats = await orchestrator.run()

    assert stats.fetched == 5
    assert stats.queued == 2
    assert stats.processed + stats.failed == 3
    assert store.count() >= 3
    assert orchestrator.state == IngestState.BACKGROUND_PROCESSING

    await orchestrator.wait_idle()

    assert store.count() == 5
    assert orchestrator.state == IngestState.IDLE
    assert orchestrator.background_pending == 0
    assert orchestrator.last_run.failed == 5


async def test_priority_batch_takes_newest(store, make_item):
    old = make_item(url="https://example.com/old", minutes_ago=60)
    new = make_item(url="https://example.com/new", minutes_ago=1)
    orchestrator = _orchestrator(_feed_client([old], [new]), store, priority_batch_size=1)

    await orchestrator.run()

    assert [a.source_url for a in store.list_articles()] == ["https://example.com/new"]
    await orchestrator.close()


async def test_background_batches_pause_between(store, items):
    sleep = AsyncMock()
    orchestrator = _orchestrator(
        _feed_client(items(8)),
        store,
        priority_batch_size=0,
        background_batch_size=3,
        background_batch_delay_seconds=1.5,
        sleep=sleep,
    )

    await orchestrator.run()
    await orchestrator.wait_idle()

    assert store.count() == 8
    assert sleep.await_count == 2
    sleep.assert_awaited_with(1.5)


async def test_no_remainder_returns_idle(store, items):
    orchestrator = _orchestrator(_feed_client(items(2)), store, priority_batch_size=3)

    stats = await orchestrator.run()

    assert stats.queued == 0
    assert orchestrator.state == IngestState.IDLE
    assert orchestrator.background_pending == 0


async def test_empty_feeds(store):
    orchestrator = _orchestrator(_feed_client([], []), store)

    stats = await orchestrator.run()

    assert stats.to_dict() == {"fetched": 0, "processed": 0, "failed": 0}
    assert orchestrator.state == IngestState.IDLE


async def test_close_cancels_background(store, items):
    blocked = asyncio.Event()

    async def never(_):
        await blocked.wait()

    orchestrator = _orchestrator(
        _feed_client(items(3)),
        store,
        priority_batch_size=0,
        background_batch_size=1,
        sleep=never,
    )

    await orchestrator.run()
    await asyncio.sleep(0)
    await orchestrator.close()

    assert store.count() == 1
    assert orchestrator.background_pending == 0
    assert orchestrator.state == IngestState.IDLE


def test_background_batch_size_must_be_positive(store):
    with pytest.raises(ValueError):
        _orchestrator(_feed_client(), store, background_batch_size=0)


# ── Per-item handling ────────────────────────────────────────────────────────

async def test_already_stored_is_skipped(store, items):
    candidates = items(2)
    store.create_article(
        headline="Existing", summary="s", source_url=candidates[0].url, source="ET"
    )
    enricher = NewsEnricher(None)
    orchestrator = _orchestrator(_feed_client(candidates), store, enricher=enricher)

    stats = await orchestrator.run()

    assert stats.skipped == 1
    assert stats.failed == 1
    assert store.count() == 2
    assert enricher.stats.fallbacks == 1


async def test_rerun_skips_everything(store, items):
    orchestrator = _orchestrator(_feed_client(items(3)), store)

    await orchestrator.run()
    stats = await orchestrator.run()

    assert stats.skipped == 3
    assert store.count() == 3
    assert orchestrator.stats.runs == 2
    assert orchestrator.stats.articles_stored == 3


async def test_article_stored_during_enrichment_counts_as_skipped(store, make_item):
    item = make_item(url="https://example.com/race")

    async def enrich_and_race(title, description):
        store.create_article(headline="Other run", summary="s", source_url=item.url, source="ET")
        return EnrichmentResult(headline=title, summary=description)

    enricher = MagicMock()
    enricher.enrich = AsyncMock(side_effect=enrich_and_race)
    orchestrator = _orchestrator(_feed_client([item]), store, enricher=enricher)

    stats = await orchestrator.run()

    assert stats.skipped == 1
    assert store.count() == 1
    assert store.list_articles()[0].headline == "Other run"


async def test_ai_results_count_as_processed(store, make_item):
    enricher = MagicMock()
    enricher.enrich = AsyncMock(
        return_value=EnrichmentResult(
            headline="AI headline", summary="AI summary", tickers=("TCS",), is_ai=True
        )
    )
    item = make_item(url="https://example.com/ai", image_url="https://img.example.com/1.jpg")
    orchestrator = _orchestrator(_feed_client([item]), store, enricher=enricher)

    stats = await orchestrator.run()

    assert stats.processed == 1
    assert stats.failed == 0
    article = store.list_articles()[0]
    assert article.headline == "AI headline"
    assert article.is_processed is True
    assert article.tickers == ("TCS",)
    assert article.timestamp == item.published_at
    assert article.source == item.source_name
    assert article.image_url == "https://img.example.com/1.jpg"


async def test_item_error_does_not_abort_run(store, items):
    enricher = MagicMock()
    enricher.enrich = AsyncMock(
        side_effect=[RuntimeError("boom"), EnrichmentResult(headline="h", summary="s")]
    )
    orchestrator = _orchestrator(_feed_client(items(2)), store, enricher=enricher)

    stats = await orchestrator.run()

    assert store.count() == 1
    assert stats.failed == 1
    assert orchestrator.stats.item_errors == 1


async def test_state_during_priority_processing(store, make_item):
    seen = []
    orchestrator = None

    async def enrich(title, description):
        seen.append(orchestrator.state)
        return EnrichmentResult(headline=title, summary=description)

    enricher = MagicMock()
    enricher.enrich = AsyncMock(side_effect=enrich)
    orchestrator = _orchestrator(_feed_client([make_item()]), store, enricher=enricher)

    await orchestrator.run()

    assert seen == [IngestState.PRIORITY_PROCESSING]


async def test_background_finishing_does_not_reset_a_running_fetch(store, items):
    gate = asyncio.Event()
    pages = [items(4)]

    async def fetch_all():
        if pages:
            return [pages.pop()]
        await gate.wait()
        return []

    feed_client = MagicMock()
    feed_client.fetch_all = AsyncMock(side_effect=fetch_all)
    orchestrator = _orchestrator(feed_client, store, priority_batch_size=1)

    await orchestrator.run()
    second = asyncio.create_task(orchestrator.run())
    await asyncio.sleep(0)
    await orchestrator.wait_idle()

    assert orchestrator.background_pending == 0
    assert store.count() == 4
    assert orchestrator.state == IngestState.FETCHING

    gate.set()
    await second

    assert orchestrator.state == IngestState.IDLE


async def test_failed_run_settles_to_idle(store):
    feed_client = MagicMock()
    feed_client.fetch_all = AsyncMock(side_effect=RuntimeError("boom"))
    orchestrator = _orchestrator(feed_client, store)

    with pytest.raises(RuntimeError):
        await orchestrator.run()

    assert orchestrator.state == IngestState.IDLE


# ── Publishing ───────────────────────────────────────────────────────────────

def _publisher(connected=True):
    publisher = MagicMock()
    publisher.connected = connected
    publisher.publish_article = AsyncMock(return_value=1)
    return publisher


async def test_stored_articles_are_published(store, items):
    publisher = _publisher()
    orchestrator = _orchestrator(_feed_client(items(2)), store, publisher=publisher)

    await orchestrator.run()

    assert publisher.publish_article.await_count == 2


async def test_disconnected_publisher_is_skipped(store, items):
    publisher = _publisher(connected=False)
    orchestrator = _orchestrator(_feed_client(items(1)), store, publisher=publisher)

    await orchestrator.run()

    publisher.publish_article.assert_not_called()
    assert store.count() == 1


async def test_publish_failure_keeps_article(store, items):
    publisher = _publisher()
    publisher.publish_article.side_effect = PublisherError("Redis publish failed")
    orchestrator = _orchestrator(_feed_client(items(1)), store, publisher=publisher)

    stats = await orchestrator.run()

    assert stats.failed == 1
    assert store.count() == 1
    assert orchestrator.stats.publish_errors == 1
