"""Healthcare intake backend: voice turns, prescription audit trail, WebSocket transport."""

__version__ = "0.1.0"
