"""STT provider implementations."""

from intake.ai.providers.stt.groq_whisper import GroqWhisperSTTProvider

__all__ = ["GroqWhisperSTTProvider"]
