"""
Market Data

Index quotes from Yahoo Finance behind a short TTL cache, and the periodic
broadcaster that pushes snapshots to WebSocket subscribers.
"""
from newsdesk.market.broadcaster import BroadcasterStats, MarketBroadcaster
from newsdesk.market.cache import (
    FALLBACK_INDICES,
    TRACKED_INDICES,
    MarketDataCache,
    format_indian,
    market_status,
)
from newsdesk.market.quotes import Quote, YahooQuoteClient

__all__ = [
    "BroadcasterStats",
    "FALLBACK_INDICES",
    "MarketBroadcaster",
    "MarketDataCache",
    "Quote",
    "TRACKED_INDICES",
    "YahooQuoteClient",
    "format_indian",
    "market_status",
]
