"""JSON log lines for the intake backend.

Every line carries ``ts``, ``level``, ``message``, ``logger`` and ``service``
plus whatever tracing context is bound (request, user, voice session) and the
whitelisted ``extra=`` keys below. Audit events log prescription and refill
identifiers so compliance reviews can grep one entity's history.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
session_id_var: ContextVar[str | None] = ContextVar("session_id", default=None)

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    "request_id": request_id_var,
    "user_id": user_id_var,
    "session_id": session_id_var,
}

# ``extra=`` keys copied onto the line; anything else passed as extra is dropped
EXTRA_FIELDS = (
    "request_id",
    "user_id",
    "session_id",
    "provider",
    "model_id",
    "duration_ms",
    "latency_ms",
    "error_code",
    "error_message",
    "error",
    "status",
    "status_code",
    "action",
    "prescription_id",
    "refill_request_id",
    "message_type",
    "operation",
    "metadata",
)

_QUIET_LOGGERS = ("asyncio", "uvicorn.access", "httpx", "httpcore", "aiosqlite")


def _namespace(logger_name: str) -> str:
    return logger_name.split(".", 1)[0]


class StructuredFormatter(logging.Formatter):
    """Render a record as one JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname.lower(),
            "message": record.getMessage(),
            "logger": record.name,
            "service": getattr(record, "service", None) or _namespace(record.name),
        }

        entry.update(
            {key: var.get() for key, var in _CONTEXT_VARS.items() if var.get() is not None}
        )
        # Explicit extras win over bound context
        entry.update(
            {
                key: getattr(record, key)
                for key in EXTRA_FIELDS
                if getattr(record, key, None) is not None
            }
        )

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class NamespaceFilter(logging.Filter):
    """Pass INFO and above; pass DEBUG only for the listed logger namespaces."""

    def __init__(self, debug_namespaces: list[str]):
        super().__init__()
        self.debug_namespaces = frozenset(debug_namespaces)

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.INFO or _namespace(record.name) in self.debug_namespaces


def setup_logging(log_level: str = "INFO", debug_namespaces: list[str] | None = None) -> None:
    """Install the JSON handler on the root logger.

    Args:
        log_level: Root level when no debug namespaces are given
        debug_namespaces: Namespaces (first segment of the logger name, e.g.
            ``voice``, ``audit``, ``ws``) allowed to log at DEBUG
    """
    debug_namespaces = debug_namespaces or []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    handler.addFilter(NamespaceFilter(debug_namespaces))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    # The filter does the per-namespace gating once DEBUG is requested anywhere
    root.setLevel(logging.DEBUG if debug_namespaces else log_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("logging").info(
        "Logging configured",
        extra={
            "service": "logging",
            "metadata": {"log_level": log_level, "debug_namespaces": debug_namespaces},
        },
    )


def set_request_context(
    request_id: str | None = None,
    user_id: str | None = None,
    session_id: str | None = None,
) -> None:
    """Bind tracing identifiers for the current task; None leaves a value as is."""
    values = {"request_id": request_id, "user_id": user_id, "session_id": session_id}
    for key, value in values.items():
        if value is not None:
            _CONTEXT_VARS[key].set(value)


def clear_request_context() -> None:
    """Unbind every tracing identifier."""
    for var in _CONTEXT_VARS.values():
        var.set(None)


__all__ = [
    "StructuredFormatter",
    "NamespaceFilter",
    "setup_logging",
    "set_request_context",
    "clear_request_context",
    "request_id_var",
    "user_id_var",
    "session_id_var",
]
