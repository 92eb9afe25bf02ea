"""Per-session cancellation of in-flight voice turns.

A turn registers a token for its session before its first await. An
interruption sets every token registered for the session; the turn observes
it at its next checkpoint, or immediately if it is parked on a call raced
against the token.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable
from typing import TypeVar

logger = logging.getLogger("voice")

T = TypeVar("T")


class TurnCancelled(Exception):
    """Raised inside a turn when its session was interrupted."""

    def __init__(self, session_id: str, reason: str = "interrupted"):
        self.session_id = session_id
        self.reason = reason
        super().__init__(f"Voice turn cancelled for session {session_id}: {reason}")


class CancellationToken:
    """One-shot cancellation flag that can be awaited."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.reason: str | None = None
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "interrupted") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        """Checkpoint: raise TurnCancelled if the token has been set."""
        if self.cancelled:
            raise TurnCancelled(self.session_id, self.reason or "interrupted")

    async def race(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        The losing side is cancelled. Raises TurnCancelled when the token wins.
        """
        if self.cancelled:
            # Never started; close the coroutine so it is not reported as un-awaited
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()

        call = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self.wait())
        try:
            await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not call.done():
                call.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await call

        if call.cancelled():
            self.raise_if_cancelled()
        return call.result()


class CancellationRegistry:
    """Tokens of the turns currently in flight, keyed by session id."""

    def __init__(self) -> None:
        self._tokens: dict[str, set[CancellationToken]] = {}

    def begin(self, session_id: str) -> CancellationToken:
        token = CancellationToken(session_id)
        self._tokens.setdefault(session_id, set()).add(token)
        return token

    def end(self, token: CancellationToken) -> None:
        tokens = self._tokens.get(token.session_id)
        if tokens is None:
            return
        tokens.discard(token)
        if not tokens:
            del self._tokens[token.session_id]

    def cancel(self, session_id: str, reason: str = "interrupted") -> int:
        """Set every token of the session. Returns how many turns were signalled."""
        tokens = self._tokens.get(session_id, set())
        for token in tokens:
            token.cancel(reason)
        return len(tokens)

    def in_flight(self, session_id: str) -> bool:
        return bool(self._tokens.get(session_id))
