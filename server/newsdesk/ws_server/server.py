"""
WebSocket Server for Market Updates

Keeps an explicit registry of subscriber connections and broadcasts
market-update messages to all of them. Connections are only accepted on the
configured path; anything else gets a 404 during the handshake.

Messages:
  server → client  {"type": "market-update", "data": {...snapshot...}}
  client → server  {"type": "ping"}  answered with {"type": "pong"}
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Callable, Optional, Set

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed
from websockets.http11 import Request, Response

from newsdesk.config import WebSocketServerConfig
from newsdesk.models.market import MarketSnapshot
from newsdesk.serializer import market_update_message

logger = logging.getLogger(__name__)

SnapshotProvider = Callable[[], Optional[MarketSnapshot]]


@dataclass
class ServerStats:
    """WebSocket server statistics."""

    connected_clients: int
    total_connections: int
    messages_broadcast: int
    start_time: datetime


def _request_path(path: str) -> str:
    return path.split("?", 1)[0].rstrip("/") or "/"


class MarketWebSocketServer:
    """
    WebSocket server that pushes market snapshots to subscribers.

    snapshot_provider returns the latest cached snapshot without fetching;
    it is sent to each client as soon as it connects.
    """

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 8765,
        path: str = "/ws/market",
        snapshot_provider: Optional[SnapshotProvider] = None,
    ) -> None:
        self._host = host
        self._port = port
        self._path = _request_path(path)
        self._snapshot_provider = snapshot_provider
        self._clients: Set[ServerConnection] = set()
        self._server: Optional[Server] = None
        self._total_connections = 0
        self._messages_broadcast = 0
        self._start_time: Optional[datetime] = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(
        cls,
        config: WebSocketServerConfig,
        snapshot_provider: Optional[SnapshotProvider] = None,
    ) -> MarketWebSocketServer:
        return cls(config.host, config.port, config.path, snapshot_provider)

    @property
    def path(self) -> str:
        return self._path

    @property
    def port(self) -> int:
        """Bound port once started (useful when configured with port 0)."""
        if self._server is not None:
            for sock in self._server.sockets:
                return sock.getsockname()[1]
        return self._port

    def _check_path(self, connection: ServerConnection, request: Request) -> Optional[Response]:
        """Reject handshakes on any path other than the configured one."""
        if _request_path(request.path) != self._path:
            logger.debug(f"WebSocket handshake rejected for path {request.path}")
            return connection.respond(HTTPStatus.NOT_FOUND, "Not Found\n")
        return None

    async def start(self) -> None:
        """Start the WebSocket server."""
        self._start_time = datetime.now(timezone.utc)
        self._server = await serve(
            self._handle_client,
            self._host,
            self._port,
            process_request=self._check_path,
            ping_interval=30,
            ping_timeout=10,
        )
        logger.info(f"WebSocket server started on ws://{self._host}:{self.port}{self._path}")

    async def stop(self) -> None:
        """Stop the WebSocket server and disconnect all clients."""
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("WebSocket server stopped")

    async def _handle_client(self, websocket: ServerConnection) -> None:
        """Handle a new client connection."""
        client_id = f"{websocket.remote_address}"

        async with self._lock:
            self._clients.add(websocket)
            self._total_connections += 1
            client_count = len(self._clients)

        logger.info(f"Client connected: {client_id} (total: {client_count})")

        snapshot = self._snapshot_provider() if self._snapshot_provider else None
        if snapshot is not None:
            await self._send_to_client(websocket, json.dumps(market_update_message(snapshot)))

        try:
            async for message in websocket:
                try:
                    data = json.loads(message)
                except json.JSONDecodeError:
                    continue
                if isinstance(data, dict) and data.get("type") == "ping":
                    await websocket.send(json.dumps({"type": "pong"}))
        except ConnectionClosed:
            pass
        finally:
            async with self._lock:
                self._clients.discard(websocket)
                client_count = len(self._clients)

            logger.info(f"Client disconnected: {client_id} (total: {client_count})")

    async def broadcast_json(self, payload: dict[str, Any]) -> int:
        """
        Broadcast a JSON message to all connected clients.

        Returns the number of clients that received it.
        """
        async with self._lock:
            clients = list(self._clients)
        if not clients:
            return 0

        message = json.dumps(payload)
        results = await asyncio.gather(
            *[self._send_to_client(c, message) for c in clients],
            return_exceptions=True,
        )
        success_count = sum(1 for r in results if r is True)
        self._messages_broadcast += 1

        if success_count < len(clients):
            logger.debug(
                f"Broadcast: {success_count}/{len(clients)} clients "
                f"({len(clients) - success_count} failed)"
            )
        return success_count

    async def _send_to_client(self, client: ServerConnection, message: str) -> bool:
        """Send message to a single client, return True on success."""
        try:
            await client.send(message)
            return True
        except ConnectionClosed:
            return False
        except Exception as e:
            logger.warning(f"Failed to send to client: {e}")
            return False

    def get_stats(self) -> ServerStats:
        """Get current server statistics."""
        return ServerStats(
            connected_clients=len(self._clients),
            total_connections=self._total_connections,
            messages_broadcast=self._messages_broadcast,
            start_time=self._start_time or datetime.now(timezone.utc),
        )

    @property
    def client_count(self) -> int:
        """Get current number of connected clients."""
        return len(self._clients)
