"""
Feed Fetch Client

Fetches every configured feed in parallel over aiohttp. Each feed has its own
timeout; a feed that errors or times out contributes no items and never
aborts the others.
"""
from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Optional

import aiohttp

from newsdesk.core.types import FeedFetchError
from newsdesk.feeds.parser import parse_feed
from newsdesk.models.news import RawNewsItem

logger = logging.getLogger(__name__)

USER_AGENT = "newsdesk/0.1"
ACCEPT = (
    "application/rss+xml, application/atom+xml, application/json, "
    "application/xml;q=0.9, */*;q=0.8"
)

_API_KEY_PARAM = re.compile(r"(apiKey=)[^&\s'\"\],]+", re.IGNORECASE)


def _redact(url: str) -> str:
    """Mask credentials in a feed URL before it is logged."""
    return _API_KEY_PARAM.sub(r"\1***", url)


@dataclass
class FeedClientStats:
    """Cumulative fetch statistics."""

    fetches: int = 0
    failures: int = 0
    timeouts: int = 0
    items_parsed: int = 0
    last_errors: dict[str, str] = field(default_factory=dict)


class FeedClient:
    """
    Parallel fetcher for RSS/XML and News API feeds.

    Use as an async context manager, or call close() at shutdown. A session
    passed in by the caller is never closed by the client.
    """

    def __init__(
        self,
        urls: tuple[str, ...] | list[str],
        *,
        timeout_seconds: float = 8.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._urls = tuple(urls)
        self._timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None
        self._stats = FeedClientStats()

    @property
    def urls(self) -> tuple[str, ...]:
        return self._urls

    @property
    def stats(self) -> FeedClientStats:
        return self._stats

    async def __aenter__(self) -> FeedClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": USER_AGENT, "Accept": ACCEPT},
            )
            self._owns_session = True
        return self._session

    async def _fetch_text(self, url: str) -> str:
        """GET one feed and return its body."""
        session = self._get_session()
        async with session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=self._timeout_seconds),
            allow_redirects=True,
        ) as resp:
            if resp.status != 200:
                raise FeedFetchError(f"HTTP {resp.status}", url=_redact(url), status=resp.status)
            return await resp.text()

    async def fetch(self, url: str) -> list[RawNewsItem]:
        """
        Fetch and parse a single feed.

        Raises:
            FeedFetchError: on HTTP errors, network errors or timeout
        """
        self._stats.fetches += 1
        t0 = time.monotonic()
        try:
            text = await asyncio.wait_for(self._fetch_text(url), timeout=self._timeout_seconds)
        except asyncio.TimeoutError as e:
            self._stats.timeouts += 1
            raise FeedFetchError("Feed timed out", url=_redact(url)) from e
        except aiohttp.ClientError as e:
            raise FeedFetchError(_redact(f"Feed request failed: {e}"), url=_redact(url)) from e

        items = parse_feed(text, url)
        self._stats.items_parsed += len(items)
        logger.debug(
            "Fetched feed",
            extra={
                "url": _redact(url),
                "items": len(items),
                "elapsed_ms": round((time.monotonic() - t0) * 1000, 1),
            },
        )
        return items

    async def _fetch_or_empty(self, url: str) -> list[RawNewsItem]:
        try:
            return await self.fetch(url)
        except FeedFetchError as e:
            self._stats.failures += 1
            self._stats.last_errors[_redact(url)] = _redact(e.message)
            logger.warning(
                "Feed fetch failed",
                extra={"url": _redact(url), "error": _redact(str(e))},
            )
            return []
        except Exception as e:
            self._stats.failures += 1
            self._stats.last_errors[_redact(url)] = _redact(str(e))
            logger.error(
                "Unexpected error fetching feed",
                extra={
                    "url": _redact(url),
                    "error_type": type(e).__name__,
                    "error": _redact(str(e)),
                },
            )
            return []

    async def fetch_all(self) -> list[list[RawNewsItem]]:
        """Fetch all feeds concurrently. Returns one item list per feed, in URL order."""
        if not self._urls:
            return []
        return list(await asyncio.gather(*(self._fetch_or_empty(url) for url in self._urls)))
