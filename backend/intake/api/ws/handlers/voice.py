"""Voice message WebSocket handlers.

``voice.audio`` runs one turn and streams its messages back in order,
followed by the synthesized reply when the client asked for speech.
``voice.interrupt`` cancels the turn in flight for the socket's session.
"""

import base64
import binascii
import logging
from typing import Any

from fastapi import WebSocket
from pydantic import ValidationError

from intake.api.ws.manager import ConnectionManager
from intake.api.ws.router import error_frame, get_router
from intake.domains.voice.service import VoiceService
from intake.exceptions import SpeechSynthesisError
from intake.schemas.voice import (
    AudioChunkPayload,
    VoiceAudioPayload,
    VoiceMessage,
    VoiceMessageType,
)

logger = logging.getLogger("voice")
router = get_router()

INTERRUPTED_STATUS = "interrupted"


def _voice_service(websocket: WebSocket) -> VoiceService:
    return websocket.app.state.voice_service


def _decode_audio(data: str) -> bytes:
    # Tolerate data: URLs produced by browser FileReader
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    return base64.b64decode(data, validate=True)


@router.handler("voice.audio")
async def handle_voice_audio(
    websocket: WebSocket,
    payload: dict[str, Any],
    manager: ConnectionManager,
) -> None:
    """Run one voice turn for the socket's session."""
    session_id = manager.session_id_for(websocket)
    if session_id is None:
        return

    try:
        request = VoiceAudioPayload.model_validate(payload)
        audio = _decode_audio(request.audio_data)
    except (ValidationError, binascii.Error, ValueError) as e:
        logger.warning(
            "Invalid voice.audio payload",
            extra={"service": "voice", "session_id": session_id, "error": str(e)},
        )
        await manager.send_message(
            websocket,
            error_frame("INVALID_PAYLOAD", "voice.audio requires base64 'audioData'"),
        )
        return

    service = _voice_service(websocket)
    messages = await service.process_voice_input(
        audio,
        session_id,
        request.context,
        format=request.format,
    )

    for message in messages:
        await manager.send_message(websocket, message.to_wire())

    if not request.synthesize:
        return

    reply = next((m for m in messages if m.type == VoiceMessageType.RESPONSE), None)
    if reply is None:
        return

    try:
        speech = await service.synthesize_speech(reply.content)
    except SpeechSynthesisError as e:
        logger.error(
            "Speech synthesis failed",
            extra={
                "service": "voice",
                "session_id": session_id,
                "status_code": e.status_code,
                "error": e.status_text,
            },
        )
        await manager.send_message(websocket, error_frame(e.code, e.message))
        return

    if speech is None:
        return

    chunk = AudioChunkPayload(
        session_id=session_id,
        data=base64.b64encode(speech).decode("ascii"),
    )
    await manager.send_message(
        websocket,
        {"type": "voice.audio.chunk", "payload": chunk.model_dump(by_alias=True)},
    )


@router.handler("voice.interrupt")
async def handle_voice_interrupt(
    websocket: WebSocket,
    _payload: dict[str, Any],
    manager: ConnectionManager,
) -> None:
    """Cancel the turn in flight and acknowledge the interruption."""
    session_id = manager.session_id_for(websocket)
    if session_id is None:
        return

    _voice_service(websocket).handle_interruption(session_id)

    await manager.send_message(
        websocket,
        VoiceMessage(
            type=VoiceMessageType.STATUS,
            content=INTERRUPTED_STATUS,
            session_id=session_id,
        ).to_wire(),
    )
