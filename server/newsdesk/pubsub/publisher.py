"""
Event Publisher

Optional Redis pub/sub fan-out for newly stored articles and market
snapshots, so other processes can follow the feed without polling the API.

Usage:
    async with EventPublisher(redis_url="redis://localhost:6379/0") as pub:
        await pub.publish_article(article)
"""
from __future__ import annotations

import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from newsdesk.core.types import PublisherError
from newsdesk.models.market import MarketSnapshot
from newsdesk.models.news import NewsArticle
from newsdesk.pubsub.channels import MARKET_UPDATES, channels_for_article
from newsdesk.serializer import article_to_dict, serialize, snapshot_to_dict

logger = logging.getLogger(__name__)


class EventPublisher:
    """Publishes JSON envelopes to Redis pub/sub channels."""

    def __init__(self, redis_url: str) -> None:
        self._redis_url = redis_url
        self._redis: Redis | None = None

    @property
    def connected(self) -> bool:
        return self._redis is not None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Open the Redis connection."""
        redis = Redis.from_url(self._redis_url, decode_responses=False)
        try:
            await redis.ping()
        except RedisError as exc:
            await redis.aclose()
            raise PublisherError(f"Cannot connect to Redis: {exc}") from exc
        self._redis = redis
        logger.info("EventPublisher connected to Redis")

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("EventPublisher disconnected from Redis")

    async def __aenter__(self) -> EventPublisher:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    # ── Publish ───────────────────────────────────────────────────────────────

    async def publish(self, channel: str, data: dict[str, Any]) -> int:
        """
        Publish data to a single channel.

        Returns:
            Number of subscribers that received the message.

        Raises:
            PublisherError: If not connected or Redis returns an error.
        """
        if self._redis is None:
            raise PublisherError("EventPublisher is not connected, call connect() first")

        payload = serialize(channel, data)
        try:
            deliveries: int = await self._redis.publish(channel, payload)
        except RedisError as exc:
            raise PublisherError(f"Redis publish failed on channel '{channel}'") from exc

        logger.debug("Published to '%s', reached %d subscriber(s)", channel, deliveries)
        return deliveries

    async def publish_many(self, channels: list[str], data: dict[str, Any]) -> int:
        """Publish the same data to several channels. Returns total deliveries."""
        total = 0
        for channel in channels:
            total += await self.publish(channel, data)
        return total

    async def publish_article(self, article: NewsArticle) -> int:
        return await self.publish_many(channels_for_article(article), article_to_dict(article))

    async def publish_snapshot(self, snapshot: MarketSnapshot) -> int:
        return await self.publish(MARKET_UPDATES, snapshot_to_dict(snapshot))
