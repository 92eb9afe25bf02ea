"""Prompt text for the voice intake assistant."""

import json
from typing import Any

VOICE_ASSISTANT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant for a HIPAA-compliant healthcare intake platform. "
    "You help with patient intake, scheduling, verifications, and general healthcare "
    "workflow questions. Be professional, concise, and maintain HIPAA compliance. "
    "Never share specific patient information."
)

FALLBACK_REPLY = (
    "I'm sorry, I didn't understand that. Could you please rephrase your question?"
)

ERROR_REPLY = "Sorry, I encountered an error processing your request. Please try again."


def build_system_prompt(context: dict[str, Any]) -> str:
    """System prompt with the caller's screen context appended as JSON."""
    return f"{VOICE_ASSISTANT_SYSTEM_PROMPT}\nContext: {json.dumps(context, default=str)}"
