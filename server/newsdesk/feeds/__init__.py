"""
News Feeds

Fetching, parsing, cleaning and batch deduplication of raw feed items.
"""
from newsdesk.feeds.client import FeedClient, FeedClientStats
from newsdesk.feeds.dedupe import dedupe, normalize_url
from newsdesk.feeds.parser import parse_feed, source_name_for, unwrap_redirect
from newsdesk.feeds.sanitizer import clean

__all__ = [
    "FeedClient",
    "FeedClientStats",
    "clean",
    "dedupe",
    "normalize_url",
    "parse_feed",
    "source_name_for",
    "unwrap_redirect",
]
