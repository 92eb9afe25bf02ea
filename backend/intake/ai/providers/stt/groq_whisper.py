"""Whisper transcription served by Groq."""

import logging
import time
from typing import Any

from groq import AsyncGroq

from intake.ai.providers.base import STTProvider, STTResult
from intake.ai.providers.registry import register_stt_provider

logger = logging.getLogger("stt")


@register_stt_provider
class GroqWhisperSTTProvider(STTProvider):
    """Uploads the whole clip and returns the trimmed transcript text."""

    DEFAULT_MODEL = "whisper-large-v3"

    def __init__(self, api_key: str, model: str | None = None, timeout: float = 30.0):
        self.model = self.resolve_model(model)
        self._client = AsyncGroq(api_key=api_key, timeout=timeout)

    @property
    def name(self) -> str:
        return "groq_whisper"

    async def transcribe(
        self,
        audio_data: bytes,
        format: str = "wav",
        language: str = "en",
        **kwargs,
    ) -> STTResult:
        upload = (f"audio.{format or 'wav'}", audio_data)
        started = time.perf_counter()
        base_extra = {"service": "stt", "provider": self.name, "model_id": self.model}

        try:
            response = await self._client.audio.transcriptions.create(
                file=upload,
                model=self.model,
                language=language,
                response_format="json",
                **kwargs,
            )
        except Exception as e:
            logger.error(
                "Whisper transcription failed",
                extra={
                    **base_extra,
                    "error": str(e),
                    "latency_ms": int((time.perf_counter() - started) * 1000),
                    "metadata": {"format": upload[0], "audio_bytes": len(audio_data)},
                },
                exc_info=True,
            )
            raise

        # json responses come back as a typed object, or a plain dict from older clients
        text: Any = response.get("text") if isinstance(response, dict) else getattr(response, "text", "")
        transcript = (text or "").strip()

        logger.info(
            "Whisper transcription finished",
            extra={
                **base_extra,
                "latency_ms": int((time.perf_counter() - started) * 1000),
                "metadata": {"audio_bytes": len(audio_data), "transcript_chars": len(transcript)},
            },
        )
        return STTResult(transcript=transcript)

    async def aclose(self) -> None:
        await self._client.close()
