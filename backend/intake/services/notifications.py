"""Application-scoped hub for transient user-facing notices.

Design:
- One hub per application, held on ``app.state``; no module-level list
- Subscribers receive ``("published" | "dismissed", Notice)``
- Notices dismiss themselves after ``ttl`` seconds
- A failing subscriber is logged and does not affect the others

Usage:
    hub = NotificationHub(ttl=5.0)
    unsubscribe = hub.subscribe(forward_to_socket)
    await hub.publish("Audit write failed", "Entry was not stored", variant="destructive")
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal
from uuid import uuid4

logger = logging.getLogger("notifications")

NoticeVariant = Literal["default", "destructive"]
NoticeEvent = Literal["published", "dismissed"]
Subscriber = Callable[[str, "Notice"], Awaitable[None] | None]


@dataclass(frozen=True)
class Notice:
    """A transient notice.

    Attributes:
        id: Unique notice identifier
        title: Short headline
        description: Optional body text
        variant: "default" or "destructive"
        created_at: When the notice was published
    """

    title: str
    description: str | None = None
    variant: NoticeVariant = "default"
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert notice to dictionary for serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "variant": self.variant,
            "createdAt": self.created_at.isoformat(),
        }


class NotificationHub:
    """Publish/subscribe for transient notices."""

    def __init__(self, ttl: float | None = 5.0) -> None:
        """Initialize the hub.

        Args:
            ttl: Seconds before a notice is dismissed automatically; None disables
        """
        self.ttl = ttl
        self._subscribers: list[Subscriber] = []
        self._active: dict[str, Notice] = {}
        self._timers: dict[str, asyncio.Task] = {}

    @property
    def active(self) -> list[Notice]:
        """Snapshot of the notices that have not been dismissed, oldest first."""
        return list(self._active.values())

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def publish(
        self,
        title: str,
        description: str | None = None,
        variant: NoticeVariant = "default",
    ) -> Notice:
        """Publish a notice and schedule its automatic dismissal."""
        notice = Notice(title=title, description=description, variant=variant)
        self._active[notice.id] = notice

        if self.ttl is not None:
            self._timers[notice.id] = asyncio.create_task(self._expire(notice.id, self.ttl))

        logger.debug(
            "Notice published",
            extra={
                "service": "notifications",
                "metadata": {"notice_id": notice.id, "variant": variant},
            },
        )
        await self._notify("published", notice)
        return notice

    async def dismiss(self, notice_id: str) -> bool:
        """Remove a notice. Returns False if it was not active."""
        notice = self._active.pop(notice_id, None)
        timer = self._timers.pop(notice_id, None)
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()
        if notice is None:
            return False
        await self._notify("dismissed", notice)
        return True

    async def close(self) -> None:
        """Cancel pending dismissals and drop subscribers."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._active.clear()
        self._subscribers.clear()

    async def _expire(self, notice_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        await self.dismiss(notice_id)

    async def _notify(self, event: NoticeEvent, notice: Notice) -> None:
        for callback in self._subscribers[:]:
            try:
                result = callback(event, notice)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.error(
                    "Notice subscriber failed",
                    extra={
                        "service": "notifications",
                        "error": str(exc),
                        "metadata": {"event": event, "notice_id": notice.id},
                    },
                    exc_info=True,
                )


__all__ = [
    "Notice",
    "NoticeVariant",
    "NotificationHub",
]
