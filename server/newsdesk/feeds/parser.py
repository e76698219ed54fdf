"""
Feed Parser

Turns raw feed payloads (RSS/Atom XML or News API JSON) into RawNewsItems.

Parsing is best-effort: a bad entry is dropped, a bad feed yields an empty
list. Nothing here raises to the caller, so one broken source never aborts
an ingestion run.
"""
from __future__ import annotations

import io
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import parse_qs, urlsplit

import feedparser
from dateutil import parser as date_parser

from newsdesk.feeds.sanitizer import clean
from newsdesk.models.news import RawNewsItem

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_NAME = "Financial News"

# Indian feeds stamp local times with "IST", which dateutil does not know.
IST = timezone(timedelta(hours=5, minutes=30), "IST")
_TZINFOS = {"IST": IST}

# Feed URL substring -> display name. First match wins.
SOURCE_NAMES: tuple[tuple[str, str], ...] = (
    ("economictimes", "Economic Times"),
    ("moneycontrol", "Moneycontrol"),
    ("business-standard", "Business Standard"),
    ("livemint", "Mint"),
    ("thehindubusinessline", "BusinessLine"),
    ("financialexpress", "Financial Express"),
    ("ndtvprofit", "NDTV Profit"),
    ("news.google", "Google News"),
    ("newsapi.org", "News API"),
)

# Hosts and paths that wrap the real article URL in a query parameter.
_REDIRECT_HOSTS = (
    "google.com",
    "news.google.com",
    "bing.com",
    "feedproxy.google.com",
    "l.facebook.com",
)
_REDIRECT_PATHS = ("/url", "/redirect", "/link", "/r", "/news/apiclick.aspx")
_REDIRECT_PARAMS = ("url", "u", "q", "target", "dest", "link")
_MAX_UNWRAP_DEPTH = 3

# News API placeholder for articles withdrawn by the publisher.
_REMOVED_MARKER = "[Removed]"


def source_name_for(feed_url: str) -> str:
    """Map a feed URL to its display name."""
    lowered = (feed_url or "").lower()
    for fragment, name in SOURCE_NAMES:
        if fragment in lowered:
            return name
    return DEFAULT_SOURCE_NAME


def _is_http_url(value: str) -> bool:
    return value.startswith("http://") or value.startswith("https://")


def _is_redirect_wrapper(url: str) -> bool:
    parts = urlsplit(url)
    host = (parts.hostname or "").lower()
    if any(host == h or host.endswith("." + h) for h in _REDIRECT_HOSTS):
        return True
    return parts.path.lower().rstrip("/") in _REDIRECT_PATHS


def unwrap_redirect(url: str) -> str:
    """
    Resolve aggregator redirect links to the article they point at.

    e.g. https://www.google.com/url?q=https://example.com/a&sa=U
         -> https://example.com/a
    """
    current = (url or "").strip()
    for _ in range(_MAX_UNWRAP_DEPTH):
        try:
            if not _is_redirect_wrapper(current):
                return current
            query = parse_qs(urlsplit(current).query)
        except ValueError:
            return current
        target = None
        for key in _REDIRECT_PARAMS:
            values = query.get(key)
            if values and _is_http_url(values[0]):
                target = values[0]
                break
        if target is None:
            return current
        current = target
    return current


def parse_published(value: Any, now: datetime) -> datetime:
    """Parse a feed date to aware UTC. Missing or unparsable -> now."""
    if not value or not isinstance(value, str):
        return now
    try:
        parsed = date_parser.parse(value, tzinfos=_TZINFOS)
    except (ValueError, OverflowError):
        logger.debug("Unparsable publish date", extra={"value": value[:60]})
        return now
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _entry_image(entry: Any) -> Optional[str]:
    for key in ("media_content", "media_thumbnail"):
        for media in entry.get(key) or ():
            url = media.get("url") if isinstance(media, dict) else None
            if url:
                return url
    for enclosure in entry.get("enclosures") or ():
        if str(enclosure.get("type", "")).startswith("image") and enclosure.get("href"):
            return enclosure["href"]
    return None


def _build_item(
    *,
    title: str,
    description: str,
    link: str,
    published: Any,
    source_name: str,
    image_url: Optional[str],
    now: datetime,
) -> Optional[RawNewsItem]:
    title = clean(title)
    link = unwrap_redirect(link)
    if not title and not link:
        return None
    if not link or not _is_http_url(link):
        logger.debug("Dropping item without a usable link", extra={"title": title[:80]})
        return None

    description = clean(description) or title
    if not title:
        title = description[:80] if description else link

    return RawNewsItem(
        title=title,
        description=description,
        url=link,
        published_at=parse_published(published, now),
        source_name=source_name,
        image_url=image_url or None,
    )


def parse_rss(payload: str | bytes, feed_url: str, *, now: Optional[datetime] = None) -> list[RawNewsItem]:
    """Parse an RSS/Atom document into RawNewsItems."""
    now = now or datetime.now(timezone.utc)
    data = payload.encode("utf-8") if isinstance(payload, str) else payload
    # Wrapped in a stream so feedparser never treats the payload as a URL or path
    parsed = feedparser.parse(io.BytesIO(data))
    entries = getattr(parsed, "entries", None) or []

    if parsed.get("bozo") and not entries:
        logger.warning(
            "Malformed feed, no items recovered",
            extra={"feed_url": feed_url, "error": str(parsed.get("bozo_exception", ""))[:200]},
        )
        return []

    source_name = source_name_for(feed_url)
    items: list[RawNewsItem] = []
    for entry in entries:
        link = entry.get("link") or ""
        guid = entry.get("id") or ""
        if not link and _is_http_url(guid):
            link = guid
        item = _build_item(
            title=entry.get("title") or "",
            description=entry.get("summary") or entry.get("description") or "",
            link=link,
            published=entry.get("published") or entry.get("updated"),
            source_name=source_name,
            image_url=_entry_image(entry),
            now=now,
        )
        if item is not None:
            items.append(item)
    return items


def parse_news_api(payload: str | bytes, feed_url: str, *, now: Optional[datetime] = None) -> list[RawNewsItem]:
    """Parse a News API `everything` response into RawNewsItems."""
    now = now or datetime.now(timezone.utc)
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("Malformed News API payload", extra={"feed_url": feed_url, "error": str(e)})
        return []

    articles = data.get("articles") if isinstance(data, dict) else None
    if not isinstance(articles, list):
        if isinstance(data, dict) and data.get("status") == "error":
            logger.warning(
                "News API returned an error",
                extra={"code": data.get("code"), "api_message": data.get("message")},
            )
        return []

    default_source = source_name_for(feed_url)
    items: list[RawNewsItem] = []
    for raw in articles:
        if not isinstance(raw, dict):
            continue
        title = raw.get("title") if isinstance(raw.get("title"), str) else ""
        if title.strip() == _REMOVED_MARKER:
            continue
        source = raw.get("source")
        source_name = source.get("name") if isinstance(source, dict) else None
        image_url = raw.get("urlToImage")
        item = _build_item(
            title=title,
            description=raw.get("description") if isinstance(raw.get("description"), str) else "",
            link=raw.get("url") if isinstance(raw.get("url"), str) else "",
            published=raw.get("publishedAt"),
            source_name=source_name if isinstance(source_name, str) and source_name else default_source,
            image_url=image_url if isinstance(image_url, str) else None,
            now=now,
        )
        if item is not None:
            items.append(item)
    return items


def parse_feed(payload: str | bytes, feed_url: str, *, now: Optional[datetime] = None) -> list[RawNewsItem]:
    """
    Parse any supported feed payload.

    JSON payloads are treated as News API responses, everything else as
    RSS/Atom. Never raises; a payload that cannot be parsed yields [].
    """
    if not payload:
        return []
    try:
        head = payload.lstrip()[:1]
        if head in ("{", b"{"):
            return parse_news_api(payload, feed_url, now=now)
        return parse_rss(payload, feed_url, now=now)
    except Exception as e:
        logger.error(
            "Unexpected error parsing feed",
            extra={"feed_url": feed_url, "error": str(e)},
            exc_info=True,
        )
        return []
