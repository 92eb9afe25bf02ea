"""Pydantic schemas for voice turns and their WebSocket payloads."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class VoiceMessageType(str, Enum):
    """Kinds of message a voice turn produces."""

    TRANSCRIPTION = "transcription"
    RESPONSE = "response"
    ERROR = "error"
    STATUS = "status"


class VoiceMessage(BaseModel):
    """One output record of a voice turn.

    Serialized for the wire as ``{"type", "content", "timestamp", "sessionId"}``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    type: VoiceMessageType
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    session_id: str = Field(..., alias="sessionId")

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-ready wire representation."""
        return self.model_dump(mode="json", by_alias=True)


class VoiceContext(BaseModel):
    """Screen/workflow context forwarded to the reply generator.

    Known keys are typed; anything else the client sends is kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    page: str | None = None
    user_role: str | None = None
    workflow: str | None = None

    def as_prompt_dict(self) -> dict[str, Any]:
        """Context as a plain dict, without unset keys."""
        return self.model_dump(exclude_none=True)


class VoiceAudioPayload(BaseModel):
    """Payload of an inbound ``voice.audio`` frame."""

    model_config = ConfigDict(populate_by_name=True)

    audio_data: str = Field(..., alias="audioData", min_length=1, description="Base64 audio")
    context: VoiceContext = Field(default_factory=VoiceContext)
    synthesize: bool = False
    format: str = "wav"


class AudioChunkPayload(BaseModel):
    """Payload of an outbound ``voice.audio.chunk`` frame."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    data: str
    format: str = "mp3"
