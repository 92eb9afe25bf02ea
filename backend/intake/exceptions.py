"""Application errors.

``AppError`` subclasses carry a stable ``code`` and a ``retryable`` flag;
the HTTP layer renders them as ``{"error": {...}}`` and answers 503 for
retryable ones.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any


class AppError(Exception):
    code: str = "APP_ERROR"
    message: str = "An unexpected error occurred"
    retryable: bool = False

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool | None = None,
    ) -> None:
        self.message = message or type(self).message
        self.details = dict(details or {})
        self.retryable = type(self).retryable if retryable is None else retryable
        self.timestamp = datetime.now(UTC)
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "retryable": self.retryable,
                "timestamp": self.timestamp.isoformat(),
            }
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class SpeechSynthesisError(AppError):
    """ElevenLabs answered with a non-2xx status.

    The message mirrors the HTTP reason, e.g. ``ElevenLabs API error: Unauthorized``.
    """

    code = "SPEECH_SYNTHESIS_FAILED"

    def __init__(self, status_code: int, status_text: str, provider: str = "elevenlabs") -> None:
        self.provider = provider
        self.status_code = status_code
        self.status_text = status_text
        super().__init__(
            f"ElevenLabs API error: {status_text}",
            details={"provider": provider, "status_code": status_code},
        )


class AuditWriteError(AppError):
    """An audit entry could not be persisted (strict write path only)."""

    code = "AUDIT_WRITE_FAILED"
    retryable = True

    def __init__(self, action: str, user_id: int, reason: str) -> None:
        self.action = action
        self.user_id = user_id
        self.reason = reason
        super().__init__(
            f"Failed to persist audit entry '{action}' for user {user_id}",
            details={"action": action, "user_id": user_id, "reason": reason},
        )


__all__ = [
    "AppError",
    "SpeechSynthesisError",
    "AuditWriteError",
]
