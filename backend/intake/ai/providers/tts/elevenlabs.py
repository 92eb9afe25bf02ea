"""ElevenLabs TTS provider implementation using the REST API."""

import logging
import time

import httpx

from intake.ai.providers.base import TTSProvider, TTSResult
from intake.ai.providers.registry import register_tts_provider
from intake.exceptions import SpeechSynthesisError

logger = logging.getLogger("tts")


@register_tts_provider
class ElevenLabsTTSProvider(TTSProvider):
    """ElevenLabs text-to-speech over ``POST /v1/text-to-speech/{voice_id}``.

    Returns MP3 audio. One request per call: no caching, retry, or streaming.
    Non-2xx answers raise ``SpeechSynthesisError``; transport failures
    (connect, read, timeout) propagate as ``httpx.TransportError``.
    """

    DEFAULT_VOICE = "21m00Tcm4TlvDq8ikWAM"
    DEFAULT_MODEL = "eleven_monolingual_v1"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.elevenlabs.io",
        voice_id: str | None = None,
        model_id: str | None = None,
        stability: float = 0.5,
        similarity_boost: float = 0.5,
        timeout: float = 30.0,
    ):
        """Initialize ElevenLabs provider.

        Args:
            api_key: ElevenLabs API key (sent as ``xi-api-key``)
            base_url: API origin
            voice_id: Default voice ID
            model_id: Synthesis model ID
            stability: Voice stability setting (0-1)
            similarity_boost: Voice similarity boost setting (0-1)
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.voice_id = type(self).resolve_voice(voice_id)
        self.model_id = (model_id or "").strip() or self.DEFAULT_MODEL
        self.stability = stability
        self.similarity_boost = similarity_boost
        self.timeout = timeout

        self._client: httpx.AsyncClient | None = None

        logger.info(
            "ElevenLabs TTS provider initialized",
            extra={
                "service": "tts",
                "provider": "elevenlabs",
                "model_id": self.model_id,
                "metadata": {"voice_id": self.voice_id},
            },
        )

    @property
    def name(self) -> str:
        """Provider name for logging."""
        return "elevenlabs"

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": self.api_key,
        }

    def _payload(self, text: str) -> dict:
        return {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": {
                "stability": self.stability,
                "similarity_boost": self.similarity_boost,
            },
        }

    async def synthesize(
        self,
        text: str,
        voice: str | None = None,
        format: str = "mp3",
        **kwargs,
    ) -> TTSResult:
        """Synthesize text to MP3 audio.

        Args:
            text: Text to synthesize
            voice: Voice ID override
            format: Ignored; ElevenLabs answers ``audio/mpeg``

        Returns:
            TTSResult with the raw MP3 bytes

        Raises:
            SpeechSynthesisError: The API answered with a non-2xx status
            httpx.TransportError: The request never completed
        """
        start_time = time.time()
        voice_id = (voice or "").strip() or self.voice_id
        url = f"{self.base_url}/v1/text-to-speech/{voice_id}"

        logger.debug(
            "ElevenLabs synthesis request",
            extra={
                "service": "tts",
                "provider": "elevenlabs",
                "model_id": self.model_id,
                "metadata": {"voice_id": voice_id, "text_length": len(text)},
            },
        )

        try:
            if self._client is None:
                self._client = httpx.AsyncClient(timeout=self.timeout)
            response = await self._client.post(
                url,
                headers=self._headers(),
                json=self._payload(text),
            )
        except httpx.TimeoutException as e:
            logger.error(
                "ElevenLabs request timeout",
                extra={
                    "service": "tts",
                    "provider": "elevenlabs",
                    "error": str(e),
                    "metadata": {"timeout": self.timeout},
                },
            )
            raise

        if not response.is_success:
            logger.error(
                "ElevenLabs HTTP error",
                extra={
                    "service": "tts",
                    "provider": "elevenlabs",
                    "status_code": response.status_code,
                    "error": response.reason_phrase,
                },
            )
            raise SpeechSynthesisError(
                status_code=response.status_code,
                status_text=response.reason_phrase,
            )

        audio_data = response.content
        latency_ms = int((time.time() - start_time) * 1000)

        logger.info(
            "ElevenLabs synthesis complete",
            extra={
                "service": "tts",
                "provider": "elevenlabs",
                "latency_ms": latency_ms,
                "metadata": {"audio_bytes": len(audio_data), "text_length": len(text)},
            },
        )

        return TTSResult(audio_data=audio_data, format="mp3")

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
