"""Tests for provider registration and the provider factory."""

import os

import pytest

from intake.ai.providers import (
    ElevenLabsTTSProvider,
    GroqProvider,
    GroqWhisperSTTProvider,
    StubLLMProvider,
    StubSTTProvider,
    StubTTSProvider,
    get_llm_provider,
    get_stt_provider,
    get_tts_provider,
)
from intake.ai.providers.registry import (
    DuplicateProviderError,
    ProviderNotFoundError,
    get_registered_llm_providers,
    get_registered_stt_providers,
    get_registered_tts_providers,
    register_llm_provider,
)
from intake.config import get_settings


class TestRegistry:
    def test_every_provider_is_registered(self):
        assert set(get_registered_llm_providers()) >= {"groq", "stub"}
        assert set(get_registered_stt_providers()) >= {"groq_whisper", "stub"}
        assert set(get_registered_tts_providers()) >= {"elevenlabs", "stub"}

    def test_duplicate_name_is_rejected(self):
        with pytest.raises(DuplicateProviderError):

            @register_llm_provider
            class AnotherStub(StubLLMProvider):
                pass


class TestFactory:
    def test_stub_requested_explicitly(self):
        assert isinstance(get_llm_provider(), StubLLMProvider)
        assert isinstance(get_stt_provider(), StubSTTProvider)
        assert isinstance(get_tts_provider(), StubTTSProvider)

    def test_unknown_provider_raises(self):
        with pytest.raises(ProviderNotFoundError):
            get_llm_provider("openai")

    def test_missing_groq_key_falls_back_to_stub(self):
        os.environ.pop("GROQ_API_KEY", None)
        get_settings.cache_clear()

        assert isinstance(get_llm_provider("groq"), StubLLMProvider)
        assert isinstance(get_stt_provider("groq_whisper"), StubSTTProvider)

    def test_groq_key_builds_real_providers(self):
        os.environ["GROQ_API_KEY"] = "gsk_test"
        get_settings.cache_clear()

        assert isinstance(get_llm_provider("groq"), GroqProvider)
        stt = get_stt_provider("groq_whisper")
        assert isinstance(stt, GroqWhisperSTTProvider)
        assert stt.model == "whisper-large-v3"

    @pytest.mark.parametrize("key", ["", "test_key"])
    def test_placeholder_speech_key_falls_back_to_stub(self, key):
        os.environ["ELEVENLABS_API_KEY"] = key
        get_settings.cache_clear()

        assert isinstance(get_tts_provider("elevenlabs"), StubTTSProvider)

    def test_speech_key_builds_elevenlabs(self):
        os.environ["ELEVENLABS_API_KEY"] = "xi-live"
        get_settings.cache_clear()

        provider = get_tts_provider("elevenlabs")
        assert isinstance(provider, ElevenLabsTTSProvider)
        assert provider.api_key == "xi-live"

    def test_instances_are_cached(self):
        assert get_llm_provider() is get_llm_provider()
