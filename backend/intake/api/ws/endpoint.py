"""The ``/ws/voice`` socket: session handshake, receive loop, teardown."""

import asyncio
import logging
from uuid import uuid4

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from intake.api.ws.manager import Connection, ConnectionManager, get_connection_manager
from intake.api.ws.router import error_frame, get_router
from intake.config import get_settings
from intake.infrastructure.logging import clear_request_context, set_request_context
from intake.schemas.voice import VoiceMessage, VoiceMessageType
from intake.services.notifications import Notice

logger = logging.getLogger("ws")

CONNECTED_STATUS = "connected"

# Routed off the receive loop so interrupts and pings are still read mid-turn
BACKGROUND_MESSAGE_TYPES = frozenset({"voice.audio"})


class TurnTasks:
    """Background turns started by one socket."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._tasks: set[asyncio.Task[None]] = set()

    def start(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Voice turn task failed",
                extra={"service": "ws", "session_id": self.session_id, "error": str(task.exception())},
                exc_info=task.exception(),
            )

    async def drain(self, timeout: float) -> None:
        """Give running turns ``timeout`` seconds, then cancel the rest."""
        if not self._tasks:
            return
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.info(
                "Cancelled voice turns still running at close",
                extra={"service": "ws", "session_id": self.session_id, "metadata": {"count": len(pending)}},
            )
            await asyncio.gather(*pending, return_exceptions=True)


def _subscribe_to_notices(websocket: WebSocket, manager: ConnectionManager, connection: Connection) -> None:
    hub = getattr(websocket.app.state, "notifications", None)
    if hub is None:
        return

    async def forward(event: str, notice: Notice) -> None:
        await manager.send_message(
            websocket,
            {"type": "notification", "payload": {"event": event, "notice": notice.to_dict()}},
        )

    connection.unsubscribe = hub.subscribe(forward)


async def websocket_endpoint(websocket: WebSocket) -> None:
    """Serve one voice socket until the client leaves.

    The session comes from ``?sessionId=`` or is generated, and is announced
    in a ``connected`` status frame. Audio turns run as background tasks;
    on close they get ``WS_DRAIN_TIMEOUT_SECONDS`` to finish.
    """
    manager = get_connection_manager()
    router = get_router()

    session_id = websocket.query_params.get("sessionId") or str(uuid4())
    set_request_context(session_id=session_id)

    connection = await manager.connect(websocket, session_id)
    _subscribe_to_notices(websocket, manager, connection)
    await manager.send_message(
        websocket,
        VoiceMessage(type=VoiceMessageType.STATUS, content=CONNECTED_STATUS, session_id=session_id).to_wire(),
    )

    turns = TurnTasks(session_id)
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError as e:
                logger.warning("Invalid JSON frame", extra={"service": "ws", "error": str(e)})
                await manager.send_message(websocket, error_frame("INVALID_JSON", "Message must be valid JSON"))
                continue

            if isinstance(message, dict) and message.get("type") in BACKGROUND_MESSAGE_TYPES:
                turns.start(router.route(websocket, message, manager))
            else:
                await router.route(websocket, message, manager)

    except WebSocketDisconnect:
        logger.info("Client closed voice socket", extra={"service": "ws", "session_id": session_id})
    except Exception as e:
        logger.error(
            "Voice socket failed",
            extra={"service": "ws", "session_id": session_id, "error": str(e)},
            exc_info=True,
        )
        if websocket.application_state == WebSocketState.CONNECTED:
            await manager.send_message(websocket, error_frame("SERVER_ERROR", "An unexpected error occurred"))
    finally:
        await turns.drain(get_settings().ws_drain_timeout_seconds)
        await manager.disconnect(websocket)
        clear_request_context()
