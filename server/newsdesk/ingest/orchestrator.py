"""
Ingestion Orchestrator

One ingestion run:

  FETCHING               all feeds in parallel, each with its own timeout
  MERGING                concatenate, dedupe by normalized URL, newest first
  PRIORITY_PROCESSING    first N candidates enriched and stored before run() returns
  BACKGROUND_PROCESSING  the rest in small batches with a pause between them,
                         in a tracked task that outlives the call
  IDLE

Per item: skip if the source URL is already stored, enrich, insert. The
store rejects duplicates atomically, so overlapping runs are safe.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, Optional

from newsdesk.config import IngestConfig
from newsdesk.core.types import DuplicateArticleError, PublisherError
from newsdesk.enricher.enricher import NewsEnricher
from newsdesk.feeds.client import FeedClient
from newsdesk.feeds.dedupe import dedupe
from newsdesk.models.news import NewsArticle, RawNewsItem
from newsdesk.pubsub.publisher import EventPublisher
from newsdesk.store.memory import ArticleStore

logger = logging.getLogger(__name__)


class IngestState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    MERGING = "merging"
    PRIORITY_PROCESSING = "priority_processing"
    BACKGROUND_PROCESSING = "background_processing"


@dataclass
class IngestStats:
    """
    Counters for one ingestion run.

    fetched counts deduplicated candidates. processed counts items the
    model enriched, failed counts items stored with fallback enrichment,
    skipped counts items already stored. queued is the size of the
    background remainder.
    """

    fetched: int = 0
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    queued: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"fetched": self.fetched, "processed": self.processed, "failed": self.failed}


@dataclass
class OrchestratorStats:
    """Cumulative statistics across runs."""

    runs: int = 0
    articles_stored: int = 0
    items_skipped: int = 0
    item_errors: int = 0
    publish_errors: int = 0
    last_run_ms: float = 0.0


class IngestionOrchestrator:
    """
    Runs fetch → merge → enrich → store.

    Use as an async context manager, or call close() at shutdown to cancel
    background batches still in flight.
    """

    def __init__(
        self,
        feed_client: FeedClient,
        enricher: NewsEnricher,
        store: ArticleStore,
        *,
        publisher: Optional[EventPublisher] = None,
        priority_batch_size: int = 3,
        background_batch_size: int = 5,
        background_batch_delay_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if background_batch_size < 1:
            raise ValueError("background_batch_size must be at least 1")
        self._feed_client = feed_client
        self._enricher = enricher
        self._store = store
        self._publisher = publisher
        self._priority_batch_size = max(priority_batch_size, 0)
        self._background_batch_size = background_batch_size
        self._background_batch_delay = background_batch_delay_seconds
        self._sleep = sleep
        self._state = IngestState.IDLE
        self._background: set[asyncio.Task[None]] = set()
        self._active_runs = 0
        self._stats = OrchestratorStats()
        self._last_run: Optional[IngestStats] = None

    @classmethod
    def from_config(
        cls,
        config: IngestConfig,
        feed_client: FeedClient,
        enricher: NewsEnricher,
        store: ArticleStore,
        *,
        publisher: Optional[EventPublisher] = None,
    ) -> IngestionOrchestrator:
        return cls(
            feed_client,
            enricher,
            store,
            publisher=publisher,
            priority_batch_size=config.priority_batch_size,
            background_batch_size=config.background_batch_size,
            background_batch_delay_seconds=config.background_batch_delay_seconds,
        )

    @property
    def state(self) -> IngestState:
        """
        Phase of the most recently started run. Overlapping runs share it, so
        it only drops back to IDLE once no run is in flight and no background
        batch is pending.
        """
        return self._state

    @property
    def stats(self) -> OrchestratorStats:
        return self._stats

    @property
    def last_run(self) -> Optional[IngestStats]:
        """Live counters of the latest run, including background progress."""
        return self._last_run

    @property
    def background_pending(self) -> int:
        return len(self._background)

    async def __aenter__(self) -> IngestionOrchestrator:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def run(self) -> IngestStats:
        """
        Execute one ingestion run.

        Returns a copy of the counters taken when the priority batch is
        committed; background items are counted in last_run as they finish.
        """
        self._active_runs += 1
        try:
            return await self._run_once()
        finally:
            self._active_runs -= 1
            self._settle_state()

    async def _run_once(self) -> IngestStats:
        t0 = time.monotonic()
        stats = IngestStats()
        self._last_run = stats
        self._stats.runs += 1

        self._state = IngestState.FETCHING
        per_feed = await self._feed_client.fetch_all()

        self._state = IngestState.MERGING
        candidates = self._merge(per_feed)
        stats.fetched = len(candidates)

        priority = candidates[: self._priority_batch_size]
        remainder = candidates[self._priority_batch_size :]

        self._state = IngestState.PRIORITY_PROCESSING
        for item in priority:
            await self._process(item, stats)

        if remainder:
            stats.queued = len(remainder)
            self._state = IngestState.BACKGROUND_PROCESSING
            task = asyncio.create_task(self._process_background(remainder, stats))
            self._background.add(task)
            task.add_done_callback(self._on_background_done)

        self._stats.last_run_ms = round((time.monotonic() - t0) * 1000, 1)
        logger.info(
            "Ingestion priority batch committed",
            extra={
                "feeds": len(per_feed),
                "fetched": stats.fetched,
                "processed": stats.processed,
                "failed": stats.failed,
                "skipped": stats.skipped,
                "queued": stats.queued,
                "elapsed_ms": self._stats.last_run_ms,
            },
        )
        return replace(stats)

    @staticmethod
    def _merge(per_feed: list[list[RawNewsItem]]) -> list[RawNewsItem]:
        merged = [item for items in per_feed for item in items]
        return sorted(dedupe(merged), key=lambda item: item.published_at, reverse=True)

    async def _process(self, item: RawNewsItem, stats: IngestStats) -> None:
        """Enrich and store one item. Never raises."""
        try:
            if self._store.has_source_url(item.url):
                stats.skipped += 1
                self._stats.items_skipped += 1
                return

            result = await self._enricher.enrich(item.title, item.description)

            try:
                article = self._store.create_article(
                    headline=result.headline,
                    summary=result.summary,
                    source_url=item.url,
                    source=item.source_name,
                    timestamp=item.published_at,
                    image_url=item.image_url,
                    tags=result.tags,
                    tickers=result.tickers,
                    sectors=result.sectors,
                    is_processed=result.is_ai,
                )
            except DuplicateArticleError:
                # Stored by an overlapping run while this one was enriching
                stats.skipped += 1
                self._stats.items_skipped += 1
                return

            if result.is_ai:
                stats.processed += 1
            else:
                stats.failed += 1
            self._stats.articles_stored += 1

            await self._publish(article)

        except Exception as e:
            self._stats.item_errors += 1
            logger.error(
                "Failed to ingest item",
                extra={"url": item.url, "error": str(e)},
                exc_info=True,
            )

    async def _publish(self, article: NewsArticle) -> None:
        if self._publisher is None or not self._publisher.connected:
            return
        try:
            await self._publisher.publish_article(article)
        except PublisherError as e:
            self._stats.publish_errors += 1
            logger.warning("Article publish failed", extra={"article_id": article.id, "error": str(e)})

    async def _process_background(self, items: list[RawNewsItem], stats: IngestStats) -> None:
        size = self._background_batch_size
        batches = [items[i : i + size] for i in range(0, len(items), size)]
        for index, batch in enumerate(batches):
            if index > 0:
                await self._sleep(self._background_batch_delay)
            for item in batch:
                await self._process(item, stats)
            logger.debug(
                "Background batch done",
                extra={"batch": index + 1, "batches": len(batches), "items": len(batch)},
            )

        logger.info(
            "Ingestion run complete",
            extra={
                "fetched": stats.fetched,
                "processed": stats.processed,
                "failed": stats.failed,
                "skipped": stats.skipped,
            },
        )

    def _settle_state(self) -> None:
        if self._active_runs:
            return
        self._state = IngestState.BACKGROUND_PROCESSING if self._background else IngestState.IDLE

    def _on_background_done(self, task: asyncio.Task[None]) -> None:
        self._background.discard(task)
        self._settle_state()
        if task.cancelled():
            logger.info("Background ingestion cancelled")
        elif task.exception() is not None:
            logger.error("Background ingestion crashed", exc_info=task.exception())

    async def wait_idle(self) -> None:
        """Wait until every background batch has finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def close(self) -> None:
        """Cancel background batches still in flight."""
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._background.clear()
        self._state = IngestState.IDLE
