"""Cross-cutting application services."""

from intake.services.notifications import Notice, NotificationHub

__all__ = ["Notice", "NotificationHub"]
