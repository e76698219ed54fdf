"""
WebSocket Server for Market Updates

Broadcasts market snapshots to connected frontend clients.
"""
from newsdesk.ws_server.server import MarketWebSocketServer, ServerStats

__all__ = ["MarketWebSocketServer", "ServerStats"]
