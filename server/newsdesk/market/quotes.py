"""
Yahoo Finance Quote Client

Reads the latest price and previous close for an index from the public
Yahoo Finance chart endpoint.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

import aiohttp

from newsdesk.core.types import QuoteFetchError

logger = logging.getLogger(__name__)

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
USER_AGENT = "Mozilla/5.0 (compatible; newsdesk/0.1)"


@dataclass(frozen=True)
class Quote:
    """Raw quote for one symbol."""

    symbol: str
    price: float
    previous_close: float

    @property
    def change(self) -> float:
        return self.price - self.previous_close

    @property
    def change_percent(self) -> float:
        if not self.previous_close:
            return 0.0
        return self.change / self.previous_close * 100


def parse_chart(symbol: str, data: Any) -> Quote:
    """
    Extract a Quote from a chart API response.

    Raises:
        QuoteFetchError: the payload has no usable price or previous close
    """
    try:
        meta = data["chart"]["result"][0]["meta"]
    except (KeyError, IndexError, TypeError) as e:
        raise QuoteFetchError("Chart response has no meta block", symbol=symbol) from e

    price = meta.get("regularMarketPrice") if isinstance(meta, dict) else None
    previous = None
    if isinstance(meta, dict):
        previous = meta.get("previousClose") or meta.get("chartPreviousClose")
    if not isinstance(price, (int, float)) or not isinstance(previous, (int, float)):
        raise QuoteFetchError(
            "Chart response is missing price fields",
            symbol=symbol,
            context={"price": price, "previous_close": previous},
        )
    return Quote(symbol=symbol, price=float(price), previous_close=float(previous))


class YahooQuoteClient:
    """Async quote client. A session passed in by the caller is never closed."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 5.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> YahooQuoteClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"User-Agent": USER_AGENT})
            self._owns_session = True
        return self._session

    async def _get_json(self, url: str, symbol: str) -> Any:
        session = self._get_session()
        async with session.get(url, timeout=aiohttp.ClientTimeout(total=self._timeout_seconds)) as resp:
            if resp.status != 200:
                raise QuoteFetchError(f"HTTP {resp.status}", symbol=symbol, context={"status": resp.status})
            return await resp.json(content_type=None)

    async def fetch_quote(self, symbol: str) -> Quote:
        """
        Fetch the latest quote for a symbol such as ^NSEI.

        Raises:
            QuoteFetchError: on HTTP, network, timeout or payload errors
        """
        url = CHART_URL.format(symbol=quote(symbol, safe=""))
        try:
            data = await asyncio.wait_for(self._get_json(url, symbol), timeout=self._timeout_seconds)
        except asyncio.TimeoutError as e:
            raise QuoteFetchError("Quote request timed out", symbol=symbol) from e
        except aiohttp.ClientError as e:
            raise QuoteFetchError(f"Quote request failed: {e}", symbol=symbol) from e
        except ValueError as e:
            raise QuoteFetchError(f"Quote response is not JSON: {e}", symbol=symbol) from e

        result = parse_chart(symbol, data)
        logger.debug("Fetched quote", extra={"symbol": symbol, "price": result.price})
        return result
