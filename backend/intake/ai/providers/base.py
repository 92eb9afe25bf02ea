"""Provider interfaces for the voice turn: transcription, completion, speech.

Concrete providers register themselves by ``name`` (see ``registry``) and are
built by ``factory``. Each interface has a stub implementation so the
service can run without credentials.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class LLMMessage:
    """One chat message sent to a completion provider."""

    role: str  # 'system' | 'user' | 'assistant'
    content: str


@dataclass
class LLMResponse:
    """Completion text plus token accounting."""

    content: str
    model: str
    tokens_in: int
    tokens_out: int
    finish_reason: str | None = None


@dataclass
class STTResult:
    """Transcript of one audio clip."""

    transcript: str
    confidence: float | None = None
    duration_ms: int | None = None


@dataclass
class TTSResult:
    """Synthesized audio for one piece of text."""

    audio_data: bytes
    format: str  # 'mp3' for ElevenLabs
    duration_ms: int | None = None


def _first_non_blank(value: str | None, default: str | None) -> str | None:
    return (value or "").strip() or default


class Provider(ABC):
    """Common surface of every provider: a registry name and cleanup."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry name, also used in logs."""

    async def aclose(self) -> None:
        """Release network clients. Providers without any keep the no-op."""
        return None


class LLMProvider(Provider):
    """Chat-completion provider (Groq)."""

    DEFAULT_MODEL: str | None = None

    @classmethod
    def resolve_model(cls, model: str | None) -> str | None:
        """Configured model, or DEFAULT_MODEL when blank."""
        return _first_non_blank(model, cls.DEFAULT_MODEL)

    @abstractmethod
    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        **kwargs,
    ) -> LLMResponse:
        """Return one non-streamed completion for ``messages``.

        Args:
            messages: System prompt followed by the user's transcript
            model: Provider model ID; DEFAULT_MODEL when omitted
            temperature: Sampling temperature
            max_tokens: Completion length cap
        """


class STTProvider(Provider):
    """Speech-to-text provider (Whisper on Groq)."""

    DEFAULT_MODEL: str | None = None

    @classmethod
    def resolve_model(cls, model: str | None) -> str | None:
        """Configured model, or DEFAULT_MODEL when blank."""
        return _first_non_blank(model, cls.DEFAULT_MODEL)

    @abstractmethod
    async def transcribe(
        self,
        audio_data: bytes,
        format: str = "wav",
        language: str = "en",
        **kwargs,
    ) -> STTResult:
        """Transcribe one complete clip.

        ``format`` is the container the client recorded (wav, webm, mp3) and
        only names the upload; the bytes are sent as-is.
        """


class TTSProvider(Provider):
    """Text-to-speech provider (ElevenLabs)."""

    DEFAULT_VOICE: str | None = None

    @classmethod
    def resolve_voice(cls, voice: str | None) -> str | None:
        """Configured voice, or DEFAULT_VOICE when blank."""
        return _first_non_blank(voice, cls.DEFAULT_VOICE)

    @abstractmethod
    async def synthesize(
        self,
        text: str,
        voice: str | None = None,
        format: str = "mp3",
        **kwargs,
    ) -> TTSResult:
        """Render ``text`` as audio with ``voice`` (provider default when None)."""
