"""TTS provider implementations."""

from intake.ai.providers.tts.elevenlabs import ElevenLabsTTSProvider

__all__ = ["ElevenLabsTTSProvider"]
