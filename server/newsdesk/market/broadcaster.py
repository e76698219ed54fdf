"""
Market Broadcaster

The service's only unconditional periodic task: pushes the current market
snapshot to every WebSocket subscriber (and Redis, when configured)
immediately on start and then at a fixed interval. Errors are logged and the
loop carries on.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from newsdesk.core.types import PublisherError
from newsdesk.market.cache import MarketDataCache
from newsdesk.pubsub.publisher import EventPublisher
from newsdesk.serializer import market_update_message
from newsdesk.ws_server.server import MarketWebSocketServer

logger = logging.getLogger(__name__)


@dataclass
class BroadcasterStats:
    """Statistics for the broadcaster."""

    broadcasts: int = 0
    errors: int = 0
    last_recipients: int = 0


class MarketBroadcaster:
    """Periodic snapshot push. start() and stop() are idempotent."""

    def __init__(
        self,
        cache: MarketDataCache,
        ws_server: MarketWebSocketServer,
        *,
        publisher: Optional[EventPublisher] = None,
        interval_seconds: float = 5.0,
    ) -> None:
        self._cache = cache
        self._ws_server = ws_server
        self._publisher = publisher
        self._interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task[None]] = None
        self._stats = BroadcasterStats()

    @property
    def stats(self) -> BroadcasterStats:
        return self._stats

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="market-broadcaster")
        logger.info("Market broadcaster started", extra={"interval_s": self._interval_seconds})

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Market broadcaster stopped")

    async def _run(self) -> None:
        while True:
            await self.broadcast_once()
            await asyncio.sleep(self._interval_seconds)

    async def broadcast_once(self) -> int:
        """Fetch the snapshot and push it. Returns the number of WebSocket recipients."""
        try:
            snapshot = await self._cache.get_snapshot()
            recipients = await self._ws_server.broadcast_json(market_update_message(snapshot))
        except Exception as e:
            self._stats.errors += 1
            logger.error("Market broadcast failed", extra={"error": str(e)}, exc_info=True)
            return 0

        self._stats.broadcasts += 1
        self._stats.last_recipients = recipients

        if self._publisher is not None and self._publisher.connected:
            try:
                await self._publisher.publish_snapshot(snapshot)
            except PublisherError as e:
                self._stats.errors += 1
                logger.warning("Snapshot publish failed", extra={"error": str(e)})

        return recipients
