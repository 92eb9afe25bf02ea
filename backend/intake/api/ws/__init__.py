"""WebSocket API layer."""

from intake.api.ws.endpoint import websocket_endpoint
from intake.api.ws.manager import ConnectionManager, get_connection_manager

__all__ = [
    "websocket_endpoint",
    "ConnectionManager",
    "get_connection_manager",
]
