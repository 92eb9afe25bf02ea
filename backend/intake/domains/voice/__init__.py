"""Voice domain - transcribe, reply, and speak for one-shot voice turns.

Services:
    - VoiceService: runs a turn and synthesizes speech
    - CancellationRegistry: per-session interruption of turns in flight
"""

from intake.domains.voice.cancellation import CancellationRegistry, CancellationToken, TurnCancelled
from intake.domains.voice.service import VoiceService

__all__ = [
    "CancellationRegistry",
    "CancellationToken",
    "TurnCancelled",
    "VoiceService",
]
