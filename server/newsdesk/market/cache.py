"""
Market Data Cache

A single cache slot holding the latest MarketSnapshot and when it was
fetched.

get_snapshot():
- younger than the TTL: return the cached values with last_updated set to now
- otherwise: fetch every tracked index concurrently and replace the slot
- fetch failed: the last good snapshot if there is one, else the static
  fallback snapshot, which is cached so the fallback is logged only once
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from datetime import datetime, time as dtime, timedelta, timezone
from typing import Callable, Optional, Protocol

from newsdesk.config import MarketConfig
from newsdesk.market.quotes import Quote
from newsdesk.models.market import IndexQuote, MarketSnapshot

logger = logging.getLogger(__name__)

# Display name -> Yahoo symbol
TRACKED_INDICES: tuple[tuple[str, str], ...] = (
    ("nifty50", "^NSEI"),
    ("sensex", "^BSESN"),
)

IST = timezone(timedelta(hours=5, minutes=30), "IST")
MARKET_OPEN = dtime(9, 15)
MARKET_CLOSE = dtime(15, 30)
MARKET_TIME = "9:15 AM - 3:30 PM"

FALLBACK_INDICES: dict[str, IndexQuote] = {
    "nifty50": IndexQuote(value="25,330.25", change="+91.25", change_percent="+0.36%", is_positive=True),
    "sensex": IndexQuote(value="82,876.00", change="+180.45", change_percent="+0.22%", is_positive=True),
}


class QuoteSource(Protocol):
    async def fetch_quote(self, symbol: str) -> Quote: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_indian(value: float) -> str:
    """
    Format a number with Indian digit grouping and two decimals.

    >>> format_indian(1234567.891)
    '12,34,567.89'
    """
    text = f"{abs(value):.2f}"
    whole, fraction = text.split(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups) + "," + tail
    sign = "-" if value < 0 and float(text) != 0 else ""
    return f"{sign}{whole}.{fraction}"


def format_change(value: float, positive: Optional[bool] = None) -> str:
    """Signed change, "+" forced on zero and positive values."""
    rounded = round(value, 2) + 0.0
    if positive is None:
        positive = rounded >= 0
    return f"{'+' if positive else '-'}{format_indian(abs(rounded))}"


def format_change_percent(value: float, positive: Optional[bool] = None) -> str:
    """
    Signed percent change. Pass `positive` to take the sign from the
    absolute change, so a tiny loss that rounds to zero still reads "-0.00%".
    """
    rounded = round(value, 2) + 0.0
    if positive is None:
        positive = rounded >= 0
    return f"{'+' if positive else '-'}{abs(rounded):.2f}%"


def index_quote(quote: Quote) -> IndexQuote:
    change = round(quote.change, 2) + 0.0
    positive = change >= 0
    return IndexQuote(
        value=format_indian(quote.price),
        change=format_change(change, positive),
        change_percent=format_change_percent(quote.change_percent, positive),
        is_positive=positive,
    )


def market_status(now: datetime) -> str:
    """OPEN on weekdays between 09:15 and 15:30 IST, otherwise CLOSED."""
    local = now.astimezone(IST)
    if local.weekday() < 5 and MARKET_OPEN <= local.time() <= MARKET_CLOSE:
        return "OPEN"
    return "CLOSED"


def fallback_snapshot(now: datetime) -> MarketSnapshot:
    return MarketSnapshot(
        indices=FALLBACK_INDICES,
        market_status=market_status(now),
        market_time=MARKET_TIME,
        last_updated=now,
        is_fallback=True,
    )


class MarketDataCache:
    """
    TTL cache in front of the quote source.

    clock measures cache age, now stamps snapshots; both are injectable so
    tests control time.
    """

    def __init__(
        self,
        quote_source: QuoteSource,
        *,
        ttl_seconds: float = 10.0,
        indices: tuple[tuple[str, str], ...] = TRACKED_INDICES,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._quote_source = quote_source
        self._ttl_seconds = ttl_seconds
        self._indices = indices
        self._clock = clock
        self._now = now
        self._cached: Optional[MarketSnapshot] = None
        self._fetched_at: Optional[float] = None
        self._refresh_lock = asyncio.Lock()
        self._fetch_failures = 0

    @classmethod
    def from_config(cls, config: MarketConfig, quote_source: QuoteSource) -> MarketDataCache:
        return cls(quote_source, ttl_seconds=config.cache_ttl_seconds)

    @property
    def fetch_failures(self) -> int:
        return self._fetch_failures

    def peek(self) -> Optional[MarketSnapshot]:
        """The cached snapshot, without fetching. None before the first fetch."""
        return self._cached

    def _is_fresh(self) -> bool:
        return (
            self._cached is not None
            and self._fetched_at is not None
            and self._clock() - self._fetched_at < self._ttl_seconds
        )

    async def get_snapshot(self) -> MarketSnapshot:
        """Return the current snapshot. Never raises."""
        if self._is_fresh():
            return replace(self._cached, last_updated=self._now())

        async with self._refresh_lock:
            # Another caller may have refreshed while this one waited
            if self._is_fresh():
                return replace(self._cached, last_updated=self._now())
            return await self._refresh()

    async def _fetch_quotes(self) -> dict[str, IndexQuote]:
        quotes = await asyncio.gather(
            *(self._quote_source.fetch_quote(symbol) for _, symbol in self._indices)
        )
        return {name: index_quote(q) for (name, _), q in zip(self._indices, quotes)}

    async def _refresh(self) -> MarketSnapshot:
        now = self._now()
        try:
            indices = await self._fetch_quotes()
        except Exception as e:
            self._fetch_failures += 1
            if self._cached is not None:
                log = logger.debug if self._cached.is_fallback else logger.warning
                log("Market data fetch failed, serving cached snapshot", extra={"error": str(e)})
                return replace(self._cached, last_updated=now)

            logger.warning(
                "Market data fetch failed with no cached snapshot, using static fallback",
                extra={"error": str(e)},
            )
            self._cached = fallback_snapshot(now)
            self._fetched_at = self._clock()
            return self._cached

        snapshot = MarketSnapshot(
            indices=indices,
            market_status=market_status(now),
            market_time=MARKET_TIME,
            last_updated=now,
        )
        self._cached = snapshot
        self._fetched_at = self._clock()
        return snapshot
