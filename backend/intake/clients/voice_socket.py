"""WebSocket client for the voice socket, with reconnect-with-backoff.

Connects to ``/ws/voice``, hands every inbound JSON frame to a callback, and
reconnects after abnormal closures following a ``ReconnectPolicy``.
"""

from __future__ import annotations

import asyncio
import base64
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode, urlsplit, urlunsplit

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake

logger = logging.getLogger("ws.client")

NORMAL_CLOSURE = 1000


@dataclass(frozen=True)
class ReconnectPolicy:
    """When and how soon to reconnect after a socket closes.

    Attributes:
        base_interval: Delay in seconds before the first reconnect
        factor: Multiplier applied per further attempt
        max_interval: Upper bound on any single delay
        max_attempts: Consecutive attempts before giving up
    """

    base_interval: float = 3.0
    factor: float = 2.0
    max_interval: float = 30.0
    max_attempts: int = 5

    def next_delay(self, attempt: int) -> float:
        """Delay before reconnect number ``attempt`` (0-based)."""
        return min(self.base_interval * self.factor**attempt, self.max_interval)

    def should_reconnect(
        self,
        close_code: int | None,
        attempts: int,
        closed_by_client: bool = False,
    ) -> bool:
        """Whether to try again after a close with ``close_code``.

        A normal closure (1000) or a deliberate client close never
        reconnects; otherwise reconnect while attempts remain.
        """
        if closed_by_client or close_code == NORMAL_CLOSURE:
            return False
        return attempts < self.max_attempts


@dataclass
class VoiceSocketCallbacks:
    """Callbacks for socket events."""

    on_message: Callable[[dict[str, Any]], Awaitable[None] | None] | None = None
    on_state_change: Callable[[str], None] | None = None


class VoiceSocketClient:
    """Client side of the voice socket.

    States reported through ``on_state_change``: ``connecting``, ``open``,
    ``closed``, ``reconnecting``, ``gave_up``.
    """

    def __init__(
        self,
        url: str,
        session_id: str | None = None,
        policy: ReconnectPolicy | None = None,
        callbacks: VoiceSocketCallbacks | None = None,
        connect: Callable[[str], Any] = ws_connect,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.url = _with_session(url, session_id) if session_id else url
        self.session_id = session_id
        self.policy = policy or ReconnectPolicy()
        self.callbacks = callbacks or VoiceSocketCallbacks()
        self.attempts = 0
        self.last_close_code: int | None = None
        self._connect = connect
        self._sleep = sleep
        self._websocket: Any | None = None
        self._closing = False

    @property
    def is_connected(self) -> bool:
        return self._websocket is not None

    def _set_state(self, state: str) -> None:
        logger.debug(
            "Voice socket state",
            extra={"service": "ws", "session_id": self.session_id, "status": state},
        )
        if self.callbacks.on_state_change:
            self.callbacks.on_state_change(state)

    async def run(self) -> None:
        """Connect and keep the socket alive until closed or out of attempts."""
        self._closing = False
        while True:
            self._set_state("connecting")
            close_code = await self._run_once()
            self.last_close_code = close_code
            self._set_state("closed")

            if not self.policy.should_reconnect(close_code, self.attempts, self._closing):
                if not self._closing and close_code != NORMAL_CLOSURE:
                    logger.warning(
                        "Voice socket giving up after reconnect attempts",
                        extra={
                            "service": "ws",
                            "session_id": self.session_id,
                            "metadata": {"attempts": self.attempts, "close_code": close_code},
                        },
                    )
                    self._set_state("gave_up")
                return

            delay = self.policy.next_delay(self.attempts)
            self.attempts += 1
            logger.info(
                "Voice socket reconnecting",
                extra={
                    "service": "ws",
                    "session_id": self.session_id,
                    "metadata": {"attempt": self.attempts, "delay": delay, "close_code": close_code},
                },
            )
            self._set_state("reconnecting")
            await self._sleep(delay)

    async def _run_once(self) -> int | None:
        """One connection lifetime. Returns the close code, None if never opened cleanly."""
        try:
            async with self._connect(self.url) as websocket:
                self._websocket = websocket
                self.attempts = 0
                self._set_state("open")
                async for raw in websocket:
                    await self._dispatch(raw)
                return getattr(websocket, "close_code", None)
        except ConnectionClosed as e:
            return e.rcvd.code if e.rcvd is not None else None
        except (OSError, InvalidHandshake, asyncio.TimeoutError) as e:
            logger.warning(
                "Voice socket connection failed",
                extra={"service": "ws", "session_id": self.session_id, "error": str(e)},
            )
            return None
        finally:
            self._websocket = None

    async def _dispatch(self, raw: str | bytes) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            logger.warning(
                "Ignoring non-JSON frame",
                extra={"service": "ws", "session_id": self.session_id},
            )
            return
        if self.callbacks.on_message is None or not isinstance(message, dict):
            return
        result = self.callbacks.on_message(message)
        if inspect.isawaitable(result):
            await result

    async def send(self, message: dict[str, Any]) -> bool:
        """Send one JSON frame. Returns False when not connected."""
        if self._websocket is None:
            logger.warning(
                "Voice socket not connected, dropping frame",
                extra={"service": "ws", "message_type": message.get("type")},
            )
            return False
        await self._websocket.send(json.dumps(message))
        return True

    async def send_audio(
        self,
        audio: bytes,
        context: dict[str, Any] | None = None,
        synthesize: bool = False,
        format: str = "wav",
    ) -> bool:
        return await self.send(
            {
                "type": "voice.audio",
                "payload": {
                    "audioData": base64.b64encode(audio).decode("ascii"),
                    "context": context or {},
                    "synthesize": synthesize,
                    "format": format,
                },
            }
        )

    async def interrupt(self) -> bool:
        return await self.send({"type": "voice.interrupt", "payload": {}})

    async def ping(self) -> bool:
        return await self.send({"type": "ping"})

    async def close(self) -> None:
        """Close deliberately; no reconnect follows."""
        self._closing = True
        if self._websocket is not None:
            await self._websocket.close()

    async def __aenter__(self) -> VoiceSocketClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def _with_session(url: str, session_id: str) -> str:
    parts = urlsplit(url)
    query = f"{parts.query}&" if parts.query else ""
    return urlunsplit(parts._replace(query=query + urlencode({"sessionId": session_id})))
