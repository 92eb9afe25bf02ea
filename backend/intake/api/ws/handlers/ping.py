"""Keepalive: ``ping`` is answered with ``pong``."""

from typing import Any

from fastapi import WebSocket

from intake.api.ws.manager import ConnectionManager
from intake.api.ws.router import get_router

router = get_router()


@router.handler("ping")
async def handle_ping(websocket: WebSocket, _payload: dict[str, Any], manager: ConnectionManager) -> None:
    manager.update_ping(websocket)
    await manager.send_message(websocket, {"type": "pong"})
