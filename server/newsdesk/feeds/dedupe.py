"""
Batch Deduplication

Collapses feed items that point at the same article. Two URLs are the same
article when scheme, host and path match; query strings and fragments are
ignored. This pass runs within one fetch batch, before the store's own
source_url check against articles already ingested.
"""
from __future__ import annotations

from typing import Iterable
from urllib.parse import urlsplit, urlunsplit

from newsdesk.models.news import RawNewsItem


def normalize_url(url: str) -> str:
    """
    Reduce a URL to scheme://host/path for comparison.

    - lowercase scheme and host
    - strip trailing slashes from the path
    - drop query, fragment and default ports
    """
    if not url:
        return ""
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return url.strip()

    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    try:
        port = parts.port
    except ValueError:
        port = None
    if port and not ((scheme == "http" and port == 80) or (scheme == "https" and port == 443)):
        host = f"{host}:{port}"
    path = parts.path.rstrip("/")
    return urlunsplit((scheme, host, path, "", ""))


def dedupe(items: Iterable[RawNewsItem]) -> list[RawNewsItem]:
    """Keep the first item for each normalized URL, preserving order."""
    seen: set[str] = set()
    unique: list[RawNewsItem] = []
    for item in items:
        key = normalize_url(item.url)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique
