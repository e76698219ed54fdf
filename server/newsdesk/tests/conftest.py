"""Shared fixtures for newsdesk tests."""
from datetime import datetime, timedelta, timezone

import pytest

from newsdesk.models.news import RawNewsItem

BASE_TIME = datetime(2025, 1, 6, 4, 30, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_item():
    """Factory for RawNewsItems; minutes_ago orders items by publish time."""

    def _make(
        url: str = "https://example.com/a",
        title: str = "Sensex rises",
        description: str = "Benchmarks gained in early trade.",
        minutes_ago: int = 0,
        source_name: str = "Economic Times",
        image_url=None,
    ) -> RawNewsItem:
        return RawNewsItem(
            title=title,
            description=description,
            url=url,
            published_at=BASE_TIME - timedelta(minutes=minutes_ago),
            source_name=source_name,
            image_url=image_url,
        )

    return _make


def rss(*items: tuple[str, str]) -> str:
    """Minimal RSS 2.0 document from (title, link) pairs."""
    body = "".join(
        f"<item><title>{title}</title><link>{link}</link>"
        f"<description>{title} in detail</description>"
        f"<pubDate>Mon, 06 Jan 2025 10:0{i}:00 +0530</pubDate></item>"
        for i, (title, link) in enumerate(items)
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0"><channel><title>Feed</title>{body}</channel></rss>'
    )
