"""Voice service for one-shot voice turns.

A turn is transcribe → generate reply, returned as an ordered list of
``VoiceMessage`` records. Speech synthesis of the reply is a separate call.
"""

import logging
import time
from typing import Any

import httpx

from intake.ai.providers.base import LLMMessage, LLMProvider, STTProvider, TTSProvider
from intake.config import get_settings
from intake.domains.voice.cancellation import CancellationRegistry, CancellationToken, TurnCancelled
from intake.domains.voice.prompts import ERROR_REPLY, FALLBACK_REPLY, build_system_prompt
from intake.schemas.voice import VoiceContext, VoiceMessage, VoiceMessageType

logger = logging.getLogger("voice")

CANCELLED_STATUS = "cancelled"


def now_ms() -> int:
    """Return current time in milliseconds for timing logs."""
    return int(time.time() * 1000)


class VoiceService:
    """Runs voice turns and synthesizes replies.

    Holds no conversation state. The only per-session state is the
    cancellation token of each turn in flight.
    """

    def __init__(
        self,
        stt_provider: STTProvider | None = None,
        llm_provider: LLMProvider | None = None,
        tts_provider: TTSProvider | None = None,
        *,
        speech_enabled: bool | None = None,
        model_id: str | None = None,
        max_tokens: int | None = None,
        cancellations: CancellationRegistry | None = None,
    ):
        """Initialize voice service.

        Args:
            stt_provider: STT provider (defaults to configured provider via DI container)
            llm_provider: LLM provider (defaults to configured provider via DI container)
            tts_provider: TTS provider (defaults to configured provider via DI container)
            speech_enabled: Override for the speech soft-disable switch
            model_id: Completion model override
            max_tokens: Completion length override
            cancellations: Shared registry of in-flight turns
        """
        settings = get_settings()
        if stt_provider is None or llm_provider is None or tts_provider is None:
            from intake.core.di import get_container

            container = get_container()
            stt_provider = stt_provider or container.stt_provider
            llm_provider = llm_provider or container.llm_provider
            tts_provider = tts_provider or container.tts_provider

        self.stt = stt_provider
        self.llm = llm_provider
        self.tts = tts_provider
        self.speech_enabled = (
            settings.speech_synthesis_enabled if speech_enabled is None else speech_enabled
        )
        self.model_id = self.llm.resolve_model(model_id or settings.llm_model_id)
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self.cancellations = cancellations or CancellationRegistry()

    # ------------------------------------------------------------------
    # Turn
    # ------------------------------------------------------------------

    async def process_voice_input(
        self,
        audio: bytes,
        session_id: str,
        context: VoiceContext | dict[str, Any] | None = None,
        format: str = "wav",
    ) -> list[VoiceMessage]:
        """Run one voice turn.

        Never raises for provider failures: a failure ends the turn with a
        single ``error`` message, an interruption with a single ``status``
        message reading ``cancelled``.
        """
        messages: list[VoiceMessage] = []
        token = self.cancellations.begin(session_id)
        started = now_ms()

        try:
            voice_context = (
                context
                if isinstance(context, VoiceContext)
                else VoiceContext.model_validate(context or {})
            )

            transcript = await self._checkpoint(token, self._transcribe(audio, format))
            messages.append(
                VoiceMessage(
                    type=VoiceMessageType.TRANSCRIPTION,
                    content=transcript,
                    session_id=session_id,
                )
            )

            reply = await self._checkpoint(token, self.generate_reply(transcript, voice_context))
            messages.append(
                VoiceMessage(
                    type=VoiceMessageType.RESPONSE,
                    content=reply,
                    session_id=session_id,
                )
            )

            logger.info(
                "Voice turn complete",
                extra={
                    "service": "voice",
                    "session_id": session_id,
                    "duration_ms": now_ms() - started,
                },
            )

        except TurnCancelled as exc:
            logger.info(
                "Voice turn cancelled",
                extra={
                    "service": "voice",
                    "session_id": session_id,
                    "metadata": {"reason": exc.reason, "produced": len(messages)},
                },
            )
            messages.append(
                VoiceMessage(
                    type=VoiceMessageType.STATUS,
                    content=CANCELLED_STATUS,
                    session_id=session_id,
                )
            )

        except Exception as exc:
            logger.error(
                "Error processing voice input",
                extra={
                    "service": "voice",
                    "session_id": session_id,
                    "error": str(exc),
                    "duration_ms": now_ms() - started,
                },
                exc_info=True,
            )
            messages.append(
                VoiceMessage(
                    type=VoiceMessageType.ERROR,
                    content=ERROR_REPLY,
                    session_id=session_id,
                )
            )

        finally:
            self.cancellations.end(token)

        return messages

    @staticmethod
    async def _checkpoint(token: CancellationToken, awaitable):
        token.raise_if_cancelled()
        return await token.race(awaitable)

    async def _transcribe(self, audio: bytes, format: str) -> str:
        result = await self.stt.transcribe(audio, format=format)
        return result.transcript

    async def generate_reply(self, transcript: str, context: VoiceContext) -> str:
        """Ask the completion provider for a short reply to ``transcript``.

        An empty completion is replaced by a fixed rephrase prompt.
        """
        messages = [
            LLMMessage(role="system", content=build_system_prompt(context.as_prompt_dict())),
            LLMMessage(role="user", content=transcript),
        ]
        response = await self.llm.generate(
            messages,
            model=self.model_id,
            max_tokens=self.max_tokens,
        )
        content = (response.content or "").strip()
        return content or FALLBACK_REPLY

    # ------------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------------

    async def synthesize_speech(self, text: str) -> bytes | None:
        """Render ``text`` as MP3 audio.

        Returns None without any network call when no speech credential is
        configured, and None when the request fails in transport.

        Raises:
            SpeechSynthesisError: The speech API answered with a non-2xx status
        """
        if not self.speech_enabled:
            logger.warning(
                "ElevenLabs API key not configured, skipping speech synthesis",
                extra={"service": "tts"},
            )
            return None

        try:
            result = await self.tts.synthesize(text)
        except httpx.TransportError as exc:
            logger.error(
                "Error synthesizing speech",
                extra={
                    "service": "tts",
                    "provider": self.tts.name,
                    "error": str(exc),
                },
                exc_info=True,
            )
            return None

        return result.audio_data

    # ------------------------------------------------------------------
    # Interruption
    # ------------------------------------------------------------------

    def handle_interruption(self, session_id: str) -> None:
        """Cancel the turn in flight for ``session_id``, if any."""
        signalled = self.cancellations.cancel(session_id)
        logger.info(
            "Voice interruption",
            extra={
                "service": "voice",
                "session_id": session_id,
                "metadata": {"turns_signalled": signalled},
            },
        )
