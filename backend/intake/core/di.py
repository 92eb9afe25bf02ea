"""Wiring of providers into the voice and audit services."""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from intake.ai.providers import get_llm_provider, get_stt_provider, get_tts_provider
from intake.ai.providers.base import LLMProvider, STTProvider, TTSProvider

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from intake.domains.audit.service import PrescriptionAuditService
    from intake.domains.voice.service import VoiceService
    from intake.services.notifications import NotificationHub


@dataclass(frozen=True)
class Container:
    """The configured provider of each kind."""

    llm_provider: LLMProvider
    stt_provider: STTProvider
    tts_provider: TTSProvider

    @classmethod
    def from_settings(cls) -> "Container":
        # The factories are cached, so repeated containers share provider clients
        return cls(
            llm_provider=get_llm_provider(),
            stt_provider=get_stt_provider(),
            tts_provider=get_tts_provider(),
        )

    def create_voice_service(self) -> "VoiceService":
        from intake.domains.voice.service import VoiceService

        return VoiceService(self.stt_provider, self.llm_provider, self.tts_provider)

    @staticmethod
    def create_audit_service(
        db: "AsyncSession",
        notifications: "NotificationHub | None" = None,
    ) -> "PrescriptionAuditService":
        """Audit service bound to one request's session.

        ``notifications`` receives the destructive notice published when a
        best-effort audit write fails.
        """
        from intake.domains.audit.service import PrescriptionAuditService

        return PrescriptionAuditService(db=db, notifications=notifications)


def get_container() -> Container:
    return Container.from_settings()
