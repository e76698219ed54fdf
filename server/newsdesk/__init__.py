"""
newsdesk

Financial news aggregation service behind the card-swipe news app.
Ingests Indian market news from RSS feeds and the News API, enriches it with
an LLM (falling back to keyword rules), serves it over REST, and pushes live
index quotes to connected clients over WebSocket.

Architecture:
    feeds (RSS / News API) -> feeds.parser -> feeds.dedupe -> ingest -> enricher -> store -> api
    Yahoo Finance -> market.cache -> market.broadcaster -> ws_server (+ optional Redis)

Components:
    - feeds: fetching, parsing, cleaning and deduplicating raw items
    - enricher: Groq-backed summarizer/entity extractor with rule-based fallback
    - ingest: orchestrates one refresh run (priority + background batches)
    - store: in-memory article/user/watchlist store
    - market: quote client, TTL cache and periodic broadcaster
    - ws_server: WebSocket server for market-update subscribers
    - api: REST endpoints (FastAPI)
    - pubsub: optional Redis fan-out of new articles and market updates
"""

__version__ = "0.1.0"
