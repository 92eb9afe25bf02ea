"""Dispatch of voice socket frames by their ``type`` field."""

import importlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import WebSocket

from intake.api.ws.manager import ConnectionManager

logger = logging.getLogger("ws")

MessageHandler = Callable[[WebSocket, dict[str, Any], ConnectionManager], Awaitable[None]]

# Modules whose @router.handler functions make up the voice socket protocol
HANDLER_MODULES = ("intake.api.ws.handlers.ping", "intake.api.ws.handlers.voice")


def error_frame(code: str, message: str, **extra: Any) -> dict[str, Any]:
    """Build an ``error`` frame."""
    return {"type": "error", "payload": {"code": code, "message": message, **extra}}


class MessageRouter:
    """Maps frame types to handlers; unknown or malformed frames get an error frame."""

    def __init__(self):
        self._handlers: dict[str, MessageHandler] = {}

    @property
    def message_types(self) -> list[str]:
        return sorted(self._handlers)

    def register(self, message_type: str, handler: MessageHandler) -> None:
        self._handlers[message_type] = handler

    def handler(self, message_type: str) -> Callable[[MessageHandler], MessageHandler]:
        """Decorator form of ``register``."""

        def decorator(func: MessageHandler) -> MessageHandler:
            self.register(message_type, func)
            return func

        return decorator

    async def route(self, websocket: WebSocket, message: Any, manager: ConnectionManager) -> None:
        """Hand ``message["payload"]`` (``{}`` when absent) to the handler for its type.

        Handler exceptions are logged and reported as ``HANDLER_ERROR`` so one
        bad frame never tears down the socket.
        """
        frame = message if isinstance(message, dict) else {}
        message_type = frame.get("type")
        if not message_type:
            logger.warning("Frame without type", extra={"service": "ws"})
            await manager.send_message(
                websocket,
                error_frame("INVALID_MESSAGE", "Message must include 'type' field"),
            )
            return

        handler = self._handlers.get(message_type)
        if handler is None:
            logger.warning("Unknown message type", extra={"service": "ws", "message_type": message_type})
            await manager.send_message(
                websocket,
                error_frame("UNKNOWN_MESSAGE_TYPE", f"Unknown message type: {message_type}"),
            )
            return

        payload = frame.get("payload")
        try:
            await handler(websocket, payload if isinstance(payload, dict) else {}, manager)
        except Exception as e:
            logger.error(
                "Handler failed",
                extra={"service": "ws", "message_type": message_type, "error": str(e)},
                exc_info=True,
            )
            await manager.send_message(
                websocket,
                error_frame(
                    "HANDLER_ERROR",
                    "An error occurred processing your request",
                    requestId=frame.get("requestId"),
                ),
            )


_router = MessageRouter()
_handlers_loaded = False


def get_router() -> MessageRouter:
    """The process-wide router, with every handler module loaded.

    Handler modules import this function, so loading happens lazily on the
    first call rather than at import time.
    """
    global _handlers_loaded
    if not _handlers_loaded:
        _handlers_loaded = True
        for module in HANDLER_MODULES:
            importlib.import_module(module)
        logger.info(
            "Voice socket handlers registered",
            extra={"service": "ws", "metadata": {"handlers": _router.message_types}},
        )
    return _router
