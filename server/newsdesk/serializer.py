"""
Wire Serializer

Converts stored models into the camelCase JSON dicts served by the REST
API, pushed over WebSocket and published to Redis. Every transport uses the
same field names.

Redis envelope:
  {
    "channel": "news:articles",
    "data": { ...article fields... }
  }
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from newsdesk.feeds.sanitizer import clean
from newsdesk.models.market import MarketSnapshot
from newsdesk.models.news import NewsArticle, WatchlistItem

MARKET_UPDATE = "market-update"


class SerializationError(Exception):
    """Raised when serialization or deserialization fails."""


def isoformat(value: datetime) -> str:
    """UTC timestamp with millisecond precision and a Z suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def article_to_dict(article: NewsArticle) -> dict[str, Any]:
    """
    Serialize a stored article for the UI.

    Headline and summary are cleaned again on the way out; text stored
    before a sanitizer change still renders without markup.
    """
    return {
        "id": article.id,
        "headline": clean(article.headline),
        "summary": clean(article.summary),
        "sourceUrl": article.source_url,
        "imageUrl": article.image_url,
        "source": article.source,
        "timestamp": isoformat(article.timestamp),
        "tags": list(article.tags),
        "tickers": list(article.tickers),
        "sectors": list(article.sectors),
        "isProcessed": article.is_processed,
    }


def snapshot_to_dict(snapshot: MarketSnapshot) -> dict[str, Any]:
    """Serialize a market snapshot. Each index becomes a top-level key."""
    data: dict[str, Any] = {
        name: {
            "value": quote.value,
            "change": quote.change,
            "changePercent": quote.change_percent,
            "isPositive": quote.is_positive,
        }
        for name, quote in snapshot.indices.items()
    }
    data["marketStatus"] = snapshot.market_status
    data["marketTime"] = snapshot.market_time
    data["lastUpdated"] = isoformat(snapshot.last_updated)
    return data


def watchlist_item_to_dict(item: WatchlistItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "userId": item.user_id,
        "ticker": item.ticker,
        "addedAt": isoformat(item.added_at),
    }


def market_update_message(snapshot: MarketSnapshot) -> dict[str, Any]:
    """WebSocket message carrying a snapshot."""
    return {"type": MARKET_UPDATE, "data": snapshot_to_dict(snapshot)}


def serialize(channel: str, data: dict[str, Any]) -> str:
    """
    Encode a channel name and data dict into a JSON string for Redis.

    Raises SerializationError if encoding fails.
    """
    try:
        return json.dumps({"channel": channel, "data": data}, default=str)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Failed to serialize message: {exc}") from exc


def deserialize(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    """
    Decode a JSON string from Redis into (channel, data).

    Raises SerializationError if decoding fails or the envelope is malformed.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        envelope = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SerializationError(f"Failed to deserialize message: {exc}") from exc

    if not isinstance(envelope, dict) or "channel" not in envelope or "data" not in envelope:
        raise SerializationError("Malformed envelope, expected {channel, data}")

    return envelope["channel"], envelope["data"]
