"""
Data Models

Frozen dataclasses for news items, stored entities and market snapshots.
"""
from newsdesk.models.market import IndexQuote, MarketSnapshot
from newsdesk.models.news import (
    EnrichmentResult,
    NewsArticle,
    RawNewsItem,
    User,
    WatchlistItem,
)

__all__ = [
    "EnrichmentResult",
    "IndexQuote",
    "MarketSnapshot",
    "NewsArticle",
    "RawNewsItem",
    "User",
    "WatchlistItem",
]
