"""AI provider implementations.

This module contains LLM, STT, and TTS provider implementations. Importing
it registers every provider with the registry.
"""

from intake.ai.providers.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    STTProvider,
    STTResult,
    TTSProvider,
    TTSResult,
)
from intake.ai.providers.factory import (
    clear_provider_caches,
    get_llm_provider,
    get_stt_provider,
    get_tts_provider,
)
from intake.ai.providers.llm import GroqProvider
from intake.ai.providers.llm.stub import StubLLMProvider, StubSTTProvider, StubTTSProvider
from intake.ai.providers.stt import GroqWhisperSTTProvider
from intake.ai.providers.tts import ElevenLabsTTSProvider

__all__ = [
    "clear_provider_caches",
    "get_llm_provider",
    "get_stt_provider",
    "get_tts_provider",
    "LLMProvider",
    "STTProvider",
    "TTSProvider",
    "LLMMessage",
    "LLMResponse",
    "STTResult",
    "TTSResult",
    "GroqProvider",
    "GroqWhisperSTTProvider",
    "ElevenLabsTTSProvider",
    "StubLLMProvider",
    "StubSTTProvider",
    "StubTTSProvider",
]
