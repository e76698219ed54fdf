"""
In-Memory Article Store

Insertion-ordered dicts for articles, users and watchlist entries, plus a
source_url index. A lock guards every mutation so check-and-insert on
source_url is atomic; concurrent ingestion runs cannot store the same
article twice.
"""
from __future__ import annotations

import logging
import threading
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from newsdesk.core.types import DuplicateArticleError, DuplicateUserError, ValidationError
from newsdesk.models.news import NewsArticle, User, WatchlistItem

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
DEFAULT_SEARCH_LIMIT = 20
TRENDING_WINDOW = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class ArticleStore:
    """
    Process-local store standing in for a database.

    Nothing is evicted; the store lives as long as the process.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._articles: dict[str, NewsArticle] = {}
        self._by_source_url: dict[str, str] = {}
        self._users: dict[str, User] = {}
        self._watchlist: dict[str, WatchlistItem] = {}

    # ── Articles ──

    def create_article(
        self,
        *,
        headline: str,
        summary: str,
        source_url: str,
        source: str,
        timestamp: Optional[datetime] = None,
        image_url: Optional[str] = None,
        tags: Iterable[str] = (),
        tickers: Iterable[str] = (),
        sectors: Iterable[str] = (),
        is_processed: bool = False,
    ) -> NewsArticle:
        """
        Store a new article and return it with a generated id.

        Raises:
            DuplicateArticleError: an article with this source_url exists
        """
        if not source_url:
            raise ValidationError("source_url is required", field="source_url")

        article = NewsArticle(
            id=_new_id(),
            headline=headline,
            summary=summary,
            source_url=source_url,
            source=source,
            timestamp=timestamp or self._clock(),
            image_url=image_url or None,
            tags=tuple(tags),
            tickers=tuple(tickers),
            sectors=tuple(sectors),
            is_processed=is_processed,
        )

        with self._lock:
            if source_url in self._by_source_url:
                raise DuplicateArticleError(source_url)
            self._articles[article.id] = article
            self._by_source_url[source_url] = article.id
        return article

    def get_article(self, article_id: str) -> Optional[NewsArticle]:
        return self._articles.get(article_id)

    def has_source_url(self, source_url: str) -> bool:
        return source_url in self._by_source_url

    def count(self) -> int:
        return len(self._articles)

    def _newest_first(self) -> list[NewsArticle]:
        with self._lock:
            articles = list(self._articles.values())
        return sorted(articles, key=lambda a: a.timestamp, reverse=True)

    def list_articles(self, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> list[NewsArticle]:
        """Page of articles, newest first."""
        if limit <= 0:
            return []
        offset = max(offset, 0)
        return self._newest_first()[offset : offset + limit]

    def search_articles(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[NewsArticle]:
        """
        Articles matching any whitespace-separated term, newest first.

        A term matches when it is a case-insensitive substring of the
        headline, summary, tags, tickers or sectors.
        """
        terms = (query or "").lower().split()
        if not terms or limit <= 0:
            return []

        matches = []
        for article in self._newest_first():
            haystack = " ".join(
                (
                    article.headline,
                    article.summary,
                    " ".join(article.tags),
                    " ".join(article.tickers),
                    " ".join(article.sectors),
                )
            ).lower()
            if any(term in haystack for term in terms):
                matches.append(article)
                if len(matches) >= limit:
                    break
        return matches

    def trending(self, limit: int = 5, window: int = TRENDING_WINDOW) -> dict[str, list[tuple[str, int]]]:
        """Most frequent tickers, sectors and tags across the newest `window` articles."""
        tickers: Counter[str] = Counter()
        sectors: Counter[str] = Counter()
        tags: Counter[str] = Counter()
        for article in self._newest_first()[:window]:
            tickers.update(article.tickers)
            sectors.update(article.sectors)
            tags.update(article.tags)
        return {
            "tickers": tickers.most_common(limit),
            "sectors": sectors.most_common(limit),
            "tags": tags.most_common(limit),
        }

    # ── Users ──

    def create_user(self, username: str, password: str) -> User:
        """
        Raises:
            DuplicateUserError: username already taken
        """
        user = User(id=_new_id(), username=username, password=password)
        with self._lock:
            if any(u.username == username for u in self._users.values()):
                raise DuplicateUserError(username)
            self._users[user.id] = user
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            users = list(self._users.values())
        return next((u for u in users if u.username == username), None)

    # ── Watchlist ──

    def add_to_watchlist(self, ticker: str, user_id: Optional[str] = None) -> WatchlistItem:
        """Follow a ticker. Adding a ticker the user already follows returns the existing entry."""
        symbol = (ticker or "").strip().upper()
        if not symbol:
            raise ValidationError("ticker is required", field="ticker", value=ticker)

        with self._lock:
            for item in self._watchlist.values():
                if item.user_id == user_id and item.ticker == symbol:
                    return item
            item = WatchlistItem(
                id=_new_id(),
                ticker=symbol,
                added_at=self._clock(),
                user_id=user_id,
            )
            self._watchlist[item.id] = item
        return item

    def list_watchlist(self, user_id: Optional[str] = None) -> list[WatchlistItem]:
        """Entries for one user, oldest first."""
        with self._lock:
            return [item for item in self._watchlist.values() if item.user_id == user_id]

    def remove_from_watchlist(self, ticker: str, user_id: Optional[str] = None) -> bool:
        """Returns False when the user does not follow the ticker."""
        symbol = (ticker or "").strip().upper()
        with self._lock:
            for item_id, item in self._watchlist.items():
                if item.user_id == user_id and item.ticker == symbol:
                    del self._watchlist[item_id]
                    return True
        return False
