"""
Tests for newsdesk.ws_server and newsdesk.market.broadcaster

Handler logic runs against fake connections; one test goes through a real
server bound to an ephemeral port.
"""
import asyncio
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed, InvalidStatus

from newsdesk.core.types import PublisherError
from newsdesk.market.broadcaster import MarketBroadcaster
from newsdesk.market.cache import FALLBACK_INDICES, MARKET_TIME
from newsdesk.models.market import MarketSnapshot
from newsdesk.ws_server import MarketWebSocketServer

SNAPSHOT = MarketSnapshot(
    indices=FALLBACK_INDICES,
    market_status="OPEN",
    market_time=MARKET_TIME,
    last_updated=datetime(2025, 1, 6, 4, 30, tzinfo=timezone.utc),
)


class FakeConnection:
    """Stands in for a ServerConnection: yields queued messages, records sends."""

    def __init__(self, incoming=(), *, closed=False):
        self.incoming = list(incoming)
        self.sent = []
        self.closed = closed
        self.remote_address = ("127.0.0.1", 50000)

    def __aiter__(self):
        return self._messages()

    async def _messages(self):
        for message in self.incoming:
            yield message

    async def send(self, message):
        if self.closed:
            raise ConnectionClosed(None, None)
        self.sent.append(json.loads(message))


# ── Connection handling ──────────────────────────────────────────────────────

async def test_snapshot_sent_on_connect():
    server = MarketWebSocketServer(snapshot_provider=lambda: SNAPSHOT)
    conn = FakeConnection()

    await server._handle_client(conn)

    assert conn.sent[0]["type"] == "market-update"
    assert conn.sent[0]["data"]["nifty50"]["value"] == "25,330.25"
    assert conn.sent[0]["data"]["marketStatus"] == "OPEN"


async def test_no_snapshot_yet_sends_nothing():
    server = MarketWebSocketServer(snapshot_provider=lambda: None)
    conn = FakeConnection()

    await server._handle_client(conn)

    assert conn.sent == []


async def test_ping_answered_and_junk_ignored():
    server = MarketWebSocketServer()
    conn = FakeConnection(["not json", json.dumps({"type": "ping"}), json.dumps([1, 2])])

    await server._handle_client(conn)

    assert conn.sent == [{"type": "pong"}]


async def test_client_unregistered_after_disconnect():
    server = MarketWebSocketServer()

    await server._handle_client(FakeConnection())

    assert server.client_count == 0
    assert server.get_stats().total_connections == 1


# ── broadcast_json() ─────────────────────────────────────────────────────────

async def test_broadcast_counts_successful_sends():
    server = MarketWebSocketServer()
    alive, dead = FakeConnection(), FakeConnection(closed=True)
    server._clients.update({alive, dead})

    delivered = await server.broadcast_json({"type": "market-update", "data": {}})

    assert delivered == 1
    assert alive.sent == [{"type": "market-update", "data": {}}]
    assert server.get_stats().messages_broadcast == 1


async def test_broadcast_without_clients():
    server = MarketWebSocketServer()
    assert await server.broadcast_json({"type": "x"}) == 0


def test_path_is_normalized():
    assert MarketWebSocketServer(path="/ws/market/").path == "/ws/market"


# ── Real server ──────────────────────────────────────────────────────────────

async def test_real_server_round_trip():
    server = MarketWebSocketServer("127.0.0.1", 0, "/ws/market", snapshot_provider=lambda: SNAPSHOT)
    await server.start()
    try:
        uri = f"ws://127.0.0.1:{server.port}/ws/market"
        async with connect(uri) as ws:
            first = json.loads(await ws.recv())
            assert first["type"] == "market-update"

            await ws.send(json.dumps({"type": "ping"}))
            assert json.loads(await ws.recv()) == {"type": "pong"}

            assert await server.broadcast_json({"type": "market-update", "data": {"n": 1}}) == 1
            assert json.loads(await ws.recv())["data"] == {"n": 1}

        with pytest.raises(InvalidStatus):
            async with connect(f"ws://127.0.0.1:{server.port}/other"):
                pass
    finally:
        await server.stop()


# ── MarketBroadcaster ────────────────────────────────────────────────────────

@pytest.fixture
def cache():
    mock = MagicMock()
    mock.get_snapshot = AsyncMock(return_value=SNAPSHOT)
    return mock


@pytest.fixture
def ws_server():
    mock = MagicMock()
    mock.broadcast_json = AsyncMock(return_value=3)
    return mock


async def test_broadcast_once_pushes_snapshot(cache, ws_server):
    broadcaster = MarketBroadcaster(cache, ws_server)

    assert await broadcaster.broadcast_once() == 3

    message = ws_server.broadcast_json.call_args.args[0]
    assert message["type"] == "market-update"
    assert message["data"]["sensex"]["value"] == "82,876.00"
    assert broadcaster.stats.broadcasts == 1
    assert broadcaster.stats.last_recipients == 3


async def test_broadcast_once_survives_errors(cache, ws_server):
    cache.get_snapshot.side_effect = RuntimeError("boom")
    broadcaster = MarketBroadcaster(cache, ws_server)

    assert await broadcaster.broadcast_once() == 0
    assert broadcaster.stats.errors == 1
    ws_server.broadcast_json.assert_not_called()


async def test_broadcast_publishes_when_connected(cache, ws_server):
    publisher = MagicMock(connected=True)
    publisher.publish_snapshot = AsyncMock(side_effect=PublisherError("down"))
    broadcaster = MarketBroadcaster(cache, ws_server, publisher=publisher)

    assert await broadcaster.broadcast_once() == 3

    publisher.publish_snapshot.assert_awaited_once_with(SNAPSHOT)
    assert broadcaster.stats.errors == 1


async def test_start_broadcasts_immediately_and_stop_is_idempotent(cache, ws_server):
    broadcaster = MarketBroadcaster(cache, ws_server, interval_seconds=60)

    broadcaster.start()
    broadcaster.start()
    assert broadcaster.running is True
    for _ in range(3):
        await asyncio.sleep(0)

    assert ws_server.broadcast_json.await_count == 1

    await broadcaster.stop()
    await broadcaster.stop()
    assert broadcaster.running is False
