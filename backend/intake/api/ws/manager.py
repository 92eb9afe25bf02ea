"""Registry of open voice sockets and the session each one belongs to."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

logger = logging.getLogger("ws")


@dataclass
class Connection:
    websocket: WebSocket
    session_id: str
    last_ping: datetime | None = None
    # Detaches this socket from the notification hub
    unsubscribe: Callable[[], None] | None = None


class ConnectionManager:
    """Tracks sockets by identity; one voice session per socket."""

    def __init__(self):
        self._connections: dict[int, Connection] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def _log_change(self, message: str, session_id: str | None) -> None:
        logger.info(
            message,
            extra={
                "service": "ws",
                "session_id": session_id,
                "metadata": {"connection_count": self.connection_count},
            },
        )

    async def connect(self, websocket: WebSocket, session_id: str) -> Connection:
        await websocket.accept()
        connection = self._connections[id(websocket)] = Connection(websocket, session_id)
        self._log_change("Voice socket opened", session_id)
        return connection

    async def disconnect(self, websocket: WebSocket) -> None:
        connection = self._connections.pop(id(websocket), None)
        if connection is None:
            return
        if connection.unsubscribe is not None:
            connection.unsubscribe()
        self._log_change("Voice socket released", connection.session_id)

    def session_id_for(self, websocket: WebSocket) -> str | None:
        connection = self._connections.get(id(websocket))
        return connection and connection.session_id

    def update_ping(self, websocket: WebSocket) -> None:
        connection = self._connections.get(id(websocket))
        if connection is not None:
            connection.last_ping = datetime.now(UTC)

    async def send_message(self, websocket: WebSocket, message: dict[str, Any]) -> bool:
        """Send one JSON frame; False when the socket is already gone."""
        message_type = message.get("type")
        if websocket.client_state == WebSocketState.DISCONNECTED:
            return False

        try:
            await websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError) as e:
            # The peer left between the state check and the send
            logger.debug(
                "Voice socket closed before send",
                extra={"service": "ws", "message_type": message_type, "error": type(e).__name__},
            )
            return False
        except Exception as e:
            logger.error(
                "Voice socket send failed",
                extra={"service": "ws", "message_type": message_type, "error": str(e)},
            )
            return False
        return True


_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    global _manager
    if _manager is None:
        _manager = ConnectionManager()
    return _manager


def reset_connection_manager() -> None:
    """Drop the process-wide manager (tests)."""
    global _manager
    _manager = None
