"""Credential-free providers for development and tests.

Each stub reads ``STUB_<KIND>_*`` environment variables on every call:

    STUB_<KIND>_DELAY_MS        simulated latency (default 100)
    STUB_<KIND>_MODE            normal | error | timeout
    STUB_<KIND>_ERROR_MESSAGE   message of the raised RuntimeError
    STUB_LLM_FORCE_TEXT         reply text
    STUB_STT_FORCE_TRANSCRIPT   transcript text
    STUB_STT_EMPTY_TRANSCRIPT   "true" for an empty transcript
    STUB_TTS_AUDIO_BYTES        size of the silent clip (default 1024)
"""

import asyncio
import logging
import os

from intake.ai.providers.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    STTProvider,
    STTResult,
    TTSProvider,
    TTSResult,
)
from intake.ai.providers.registry import (
    register_llm_provider,
    register_stt_provider,
    register_tts_provider,
)

logger = logging.getLogger("providers")

STUB_TRANSCRIPT = "This is a stub transcription of the audio."
STUB_REPLY = "This is a stub response from the intake assistant."


class _Knobs:
    """Environment switches of one stub kind."""

    def __init__(self, prefix: str):
        self.prefix = prefix

    def text(self, suffix: str) -> str | None:
        value = os.environ.get(f"{self.prefix}_{suffix}", "").strip()
        return value or None

    def number(self, suffix: str, default: int) -> int:
        try:
            return int(self.text(suffix) or default)
        except ValueError:
            return default

    async def act(self) -> None:
        """Sleep for the configured delay, then fail if a failure mode is set."""
        await asyncio.sleep(self.number("DELAY_MS", 100) / 1000)

        mode = (self.text("MODE") or "normal").lower()
        if mode not in ("error", "timeout", "fail"):
            return
        message = self.text("ERROR_MESSAGE") or f"{self.prefix.lower()}_error"
        if mode == "timeout" and "timeout" not in message.lower():
            message = f"timeout: {message}"
        raise RuntimeError(message)


@register_llm_provider
class StubLLMProvider(LLMProvider):
    DEFAULT_MODEL = "stub"
    knobs = _Knobs("STUB_LLM")

    @property
    def name(self) -> str:
        return "stub"

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        **kwargs,
    ) -> LLMResponse:
        await self.knobs.act()

        # An explicitly empty STUB_LLM_FORCE_TEXT yields an empty reply
        forced = os.environ.get("STUB_LLM_FORCE_TEXT")
        content = STUB_REPLY if forced is None else forced
        return LLMResponse(
            content=content,
            model=self.resolve_model(model),
            tokens_in=sum(len(m.content.split()) for m in messages),
            tokens_out=len(content.split()),
            finish_reason="stop",
        )


@register_stt_provider
class StubSTTProvider(STTProvider):
    DEFAULT_MODEL = "stub"
    knobs = _Knobs("STUB_STT")

    @property
    def name(self) -> str:
        return "stub"

    async def transcribe(
        self,
        audio_data: bytes,
        format: str = "wav",
        language: str = "en",
        **kwargs,
    ) -> STTResult:
        await self.knobs.act()

        if self.knobs.text("EMPTY_TRANSCRIPT") == "true":
            transcript = ""
        else:
            transcript = self.knobs.text("FORCE_TRANSCRIPT") or STUB_TRANSCRIPT

        logger.debug(
            "Stub transcript",
            extra={"service": "stt", "provider": "stub", "metadata": {"audio_bytes": len(audio_data)}},
        )
        # 16 bytes per millisecond is 8 kHz 16-bit mono
        return STTResult(transcript=transcript, confidence=0.95, duration_ms=len(audio_data) // 16)


@register_tts_provider
class StubTTSProvider(TTSProvider):
    DEFAULT_VOICE = "stub"
    knobs = _Knobs("STUB_TTS")

    @property
    def name(self) -> str:
        return "stub"

    async def synthesize(
        self,
        text: str,
        voice: str | None = None,
        format: str = "mp3",
        **kwargs,
    ) -> TTSResult:
        """Silence, STUB_TTS_AUDIO_BYTES long."""
        await self.knobs.act()
        size = self.knobs.number("AUDIO_BYTES", 1024)
        return TTSResult(audio_data=b"\x00" * size, format=format, duration_ms=len(text) * 50)
