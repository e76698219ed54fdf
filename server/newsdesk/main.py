"""
newsdesk service entry point

Runs every component in one asyncio event loop, owned by uvicorn:
  - REST API (FastAPI)
  - market WebSocket server + periodic snapshot broadcaster
  - an initial ingestion run at startup; later runs via POST /api/news/refresh
  - optional Redis fan-out when REDIS_URL is set

Usage:
    newsdesk                 # Groq enrichment when GROQ_API_KEY is set
    newsdesk --no-ai         # keyword fallback only
    newsdesk --no-seed       # start with an empty store
    python -m newsdesk.main
"""
from __future__ import annotations

import argparse
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from newsdesk.api.app import ServiceContainer, create_app
from newsdesk.config import ConfigurationError, Settings, load_settings
from newsdesk.core.types import PublisherError
from newsdesk.enricher.enricher import NewsEnricher
from newsdesk.feeds.client import FeedClient
from newsdesk.ingest.orchestrator import IngestionOrchestrator
from newsdesk.market.broadcaster import MarketBroadcaster
from newsdesk.market.cache import MarketDataCache
from newsdesk.market.quotes import YahooQuoteClient
from newsdesk.pubsub.publisher import EventPublisher
from newsdesk.store.memory import ArticleStore
from newsdesk.store.seed import seed_articles
from newsdesk.ws_server.server import MarketWebSocketServer

logger = logging.getLogger("newsdesk")


@dataclass
class Components:
    """Every long-lived object, built once at startup."""

    settings: Settings
    store: ArticleStore
    feed_client: FeedClient
    enricher: NewsEnricher
    orchestrator: IngestionOrchestrator
    quote_client: YahooQuoteClient
    market_cache: MarketDataCache
    ws_server: MarketWebSocketServer
    broadcaster: MarketBroadcaster
    publisher: Optional[EventPublisher] = None
    seed: bool = True


def build_components(settings: Settings, *, ai_enabled: bool = True, seed: bool = True) -> Components:
    """Wire the components together. Nothing is started or connected here."""
    store = ArticleStore()
    publisher = EventPublisher(settings.redis.url) if settings.redis.enabled else None

    feed_client = FeedClient(
        settings.feeds.all_urls,
        timeout_seconds=settings.feeds.timeout_seconds,
    )
    enricher = NewsEnricher.from_config(settings.enrichment, ai_enabled=ai_enabled)
    orchestrator = IngestionOrchestrator.from_config(
        settings.ingest,
        feed_client,
        enricher,
        store,
        publisher=publisher,
    )

    quote_client = YahooQuoteClient(timeout_seconds=settings.market.quote_timeout_seconds)
    market_cache = MarketDataCache.from_config(settings.market, quote_client)
    ws_server = MarketWebSocketServer.from_config(
        settings.websocket_server,
        snapshot_provider=market_cache.peek,
    )
    broadcaster = MarketBroadcaster(
        market_cache,
        ws_server,
        publisher=publisher,
        interval_seconds=settings.market.broadcast_interval_seconds,
    )

    return Components(
        settings=settings,
        store=store,
        feed_client=feed_client,
        enricher=enricher,
        orchestrator=orchestrator,
        quote_client=quote_client,
        market_cache=market_cache,
        ws_server=ws_server,
        broadcaster=broadcaster,
        publisher=publisher,
        seed=seed,
    )


async def _initial_ingest(orchestrator: IngestionOrchestrator) -> None:
    try:
        await orchestrator.run()
    except Exception as e:
        logger.error("Initial ingestion failed", extra={"error": str(e)}, exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start background services with the API and tear them down after it."""
    c: Components = app.state.components
    logger.info(
        "Starting newsdesk",
        extra={
            "feeds": len(c.settings.feeds.all_urls),
            "ai_enrichment": c.enricher.ai_enabled,
            "redis": c.publisher is not None,
        },
    )

    if c.seed:
        seed_articles(c.store)

    if c.publisher is not None:
        try:
            await c.publisher.connect()
        except PublisherError as e:
            logger.warning("Redis unavailable, continuing without fan-out", extra={"error": str(e)})

    await c.ws_server.start()
    c.broadcaster.start()
    ingest_task = asyncio.create_task(_initial_ingest(c.orchestrator), name="initial-ingest")

    try:
        yield
    finally:
        logger.info("Shutting down...")

        ingest_task.cancel()
        await asyncio.gather(ingest_task, return_exceptions=True)
        await c.orchestrator.close()
        await c.broadcaster.stop()
        await c.ws_server.stop()
        await c.feed_client.close()
        await c.quote_client.close()
        await c.enricher.close()
        if c.publisher is not None:
            await c.publisher.close()

        ws_stats = c.ws_server.get_stats()
        enricher_stats = c.enricher.stats
        logger.info(
            "Final stats",
            extra={
                "articles": c.store.count(),
                "ingest_runs": c.orchestrator.stats.runs,
                "articles_stored": c.orchestrator.stats.articles_stored,
                "ai_successes": enricher_stats.ai_successes,
                "fallbacks": enricher_stats.fallbacks,
                "clients_served": ws_stats.total_connections,
                "broadcasts": ws_stats.messages_broadcast,
                "quote_failures": c.market_cache.fetch_failures,
            },
        )


def create_service_app(components: Components) -> FastAPI:
    services = ServiceContainer(
        store=components.store,
        orchestrator=components.orchestrator,
        market_cache=components.market_cache,
        ws_server=components.ws_server,
    )
    app = create_app(services, lifespan=lifespan)
    app.state.components = components
    return app


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="newsdesk server")
    parser.add_argument("--no-ai", action="store_true", help="Use keyword fallback enrichment only")
    parser.add_argument("--no-seed", action="store_true", help="Do not load demonstration articles")
    return parser.parse_args(argv)


def cli(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)

    load_dotenv(".env")
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s - %(message)s",
    )

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise SystemExit(1)

    components = build_components(
        settings,
        ai_enabled=not args.no_ai,
        seed=settings.seed_on_start and not args.no_seed,
    )
    app = create_service_app(components)
    uvicorn.run(app, host=settings.http_server.host, port=settings.http_server.port)


if __name__ == "__main__":
    cli()
