"""Build provider instances from settings.

Names come from ``LLM_PROVIDER``/``STT_PROVIDER``/``TTS_PROVIDER`` and are
resolved through the registry. A real provider without a usable credential
is swapped for the stub of the same kind, so a dev box without keys still
serves the voice socket end to end.
"""

import logging
from collections.abc import Callable
from functools import lru_cache
from typing import Any

from intake.ai.providers.base import LLMProvider, Provider, STTProvider, TTSProvider
from intake.ai.providers.llm.stub import StubLLMProvider, StubSTTProvider, StubTTSProvider
from intake.ai.providers.registry import ProviderRegistry, llm_providers, stt_providers, tts_providers
from intake.config import SPEECH_KEY_SENTINEL, Settings, get_settings

logger = logging.getLogger("providers")

# provider name -> (settings attribute, env var) holding its credential
_CREDENTIALS = {
    "groq": ("groq_api_key", "GROQ_API_KEY"),
    "groq_whisper": ("groq_api_key", "GROQ_API_KEY"),
    "elevenlabs": ("elevenlabs_api_key", "ELEVENLABS_API_KEY"),
}


def _credential(settings: Settings, provider: str) -> str | None:
    """Usable API key for ``provider``; None when unset or the placeholder."""
    attribute, _ = _CREDENTIALS.get(provider, (None, None))
    key = (getattr(settings, attribute, None) or "").strip() if attribute else ""
    if not key or key == SPEECH_KEY_SENTINEL:
        return None
    return key


def _use_stub(kind: str, requested: str, reason: str, stub: type[Provider], **details: Any) -> Provider:
    if reason == "missing_api_key":
        env_var = _CREDENTIALS.get(requested, (None, f"{requested.upper()}_API_KEY"))[1]
        message = f"Using stub {kind} provider - {env_var} not configured"
    elif reason == "initialization_error":
        message = f"Using stub {kind} provider - failed to initialize {requested}"
    else:
        message = f"Using stub {kind} provider (explicitly requested)"

    logger.warning(
        message,
        extra={
            "service": "providers",
            "provider": "stub",
            "metadata": {"reason": reason, "requested_provider": requested, **details},
        },
    )
    return stub()


def _build(
    registry: ProviderRegistry,
    requested: str | None,
    default: str,
    stub: type[Provider],
    options: Callable[[Settings], dict[str, Any]],
) -> Provider:
    settings = get_settings()
    name = (requested or "").lower().strip() or default
    provider_class = registry.lookup(name)

    if name == "stub":
        return _use_stub(registry.kind, name, "explicit_request", provider_class)

    api_key = _credential(settings, name)
    if api_key is None:
        return _use_stub(registry.kind, name, "missing_api_key", stub)

    kwargs = options(settings)
    try:
        instance = provider_class(api_key=api_key, timeout=settings.provider_timeout_seconds, **kwargs)
    except Exception as e:  # noqa: BLE001
        return _use_stub(registry.kind, name, "initialization_error", stub, error=str(e))

    logger.info(
        f"{registry.kind} provider initialized",
        extra={"service": "providers", "provider": name, "model_id": kwargs.get("model")},
    )
    return instance


@lru_cache
def get_llm_provider(provider: str | None = None) -> LLMProvider:
    """Completion provider ('groq' or 'stub'); settings.llm_provider when None.

    Raises:
        ProviderNotFoundError: If the name is not registered
    """
    return _build(
        llm_providers,
        provider or get_settings().llm_provider,
        "groq",
        StubLLMProvider,
        lambda settings: {},
    )


@lru_cache
def get_stt_provider(provider: str | None = None) -> STTProvider:
    """Transcription provider ('groq_whisper' or 'stub'); settings.stt_provider when None.

    Raises:
        ProviderNotFoundError: If the name is not registered
    """
    requested = provider or get_settings().stt_provider
    name = (requested or "").lower().strip() or "groq_whisper"
    return _build(
        stt_providers,
        requested,
        "groq_whisper",
        StubSTTProvider,
        lambda settings: {"model": stt_providers.lookup(name).resolve_model(settings.stt_model)},
    )


@lru_cache
def get_tts_provider(provider: str | None = None) -> TTSProvider:
    """Speech provider ('elevenlabs' or 'stub'); settings.tts_provider when None.

    Raises:
        ProviderNotFoundError: If the name is not registered
    """
    return _build(
        tts_providers,
        provider or get_settings().tts_provider,
        "elevenlabs",
        StubTTSProvider,
        lambda settings: {
            "base_url": settings.elevenlabs_base_url,
            "voice_id": settings.elevenlabs_voice_id,
            "model_id": settings.elevenlabs_model_id,
            "stability": settings.elevenlabs_stability,
            "similarity_boost": settings.elevenlabs_similarity_boost,
        },
    )


def clear_provider_caches() -> None:
    """Drop cached provider instances (for tests and settings reloads)."""
    get_llm_provider.cache_clear()
    get_stt_provider.cache_clear()
    get_tts_provider.cache_clear()
