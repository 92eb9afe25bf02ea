"""Client-side helpers for talking to the intake backend."""

from intake.clients.voice_socket import ReconnectPolicy, VoiceSocketCallbacks, VoiceSocketClient

__all__ = ["ReconnectPolicy", "VoiceSocketCallbacks", "VoiceSocketClient"]
