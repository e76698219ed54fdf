"""
News Data Models

Core data structures for news items at different pipeline stages.
All models use frozen dataclasses with __post_init__ validation.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class RawNewsItem:
    """
    News item as parsed from a feed, before enrichment.

    Transient: never persisted, identified only by its URL.
    """

    title: str
    description: str
    url: str
    published_at: datetime
    source_name: str
    image_url: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate required fields."""
        if not self.url:
            raise ValueError("url must be non-empty string")
        if not self.title:
            raise ValueError("title must be non-empty string")
        if self.published_at.tzinfo is None:
            raise ValueError("published_at must be timezone-aware")


@dataclass(frozen=True)
class EnrichmentResult:
    """
    Output of the enricher for one item.

    is_ai records whether the external service produced the result; the
    rule-based fallback always sets it to False.
    """

    headline: str
    summary: str
    tickers: tuple[str, ...] = ()
    sectors: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    is_ai: bool = False

    def __post_init__(self) -> None:
        if not self.headline:
            raise ValueError("headline must be non-empty string")
        if not self.summary:
            raise ValueError("summary must be non-empty string")


@dataclass(frozen=True)
class NewsArticle:
    """
    Stored, enriched article served to the UI.

    source_url is the natural key: the store holds at most one article per
    source_url.
    """

    id: str
    headline: str
    summary: str
    source_url: str
    source: str
    timestamp: datetime
    image_url: Optional[str] = None
    tags: tuple[str, ...] = ()
    tickers: tuple[str, ...] = ()
    sectors: tuple[str, ...] = ()
    is_processed: bool = False

    def __post_init__(self) -> None:
        """Validate fields."""
        if not self.id:
            raise ValueError("id must be non-empty string")
        if not self.source_url:
            raise ValueError("source_url must be non-empty string")
        if self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")


@dataclass(frozen=True)
class WatchlistItem:
    """A ticker a user follows."""

    id: str
    ticker: str
    added_at: datetime
    user_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.ticker:
            raise ValueError("ticker must be non-empty string")


@dataclass(frozen=True)
class User:
    """Stored user. The password is opaque to this service."""

    id: str
    username: str
    password: str

    def __post_init__(self) -> None:
        if not self.username:
            raise ValueError("username must be non-empty string")
