"""Name -> class lookup for the three provider kinds.

Provider modules decorate their class with ``register_<kind>_provider`` and
the factory resolves configured names (``LLM_PROVIDER`` etc.) here:

    @register_tts_provider
    class ElevenLabsTTSProvider(TTSProvider):
        ...
"""

from typing import Generic, TypeVar

from intake.ai.providers.base import LLMProvider, Provider, STTProvider, TTSProvider

P = TypeVar("P", bound=Provider)


class ProviderRegistryError(Exception):
    """A provider class could not be registered or resolved."""


class ProviderNotFoundError(ProviderRegistryError):
    """No provider is registered under the configured name."""


class DuplicateProviderError(ProviderRegistryError):
    """Two provider classes claim the same name."""


def provider_name_of(provider_class: type[Provider]) -> str:
    """Evaluate the ``name`` property on the class itself.

    Every provider returns a constant from ``name``, so the getter does not
    need an instance.
    """
    attr = getattr(provider_class, "name", None)
    getter = attr.fget if isinstance(attr, property) else None
    name = getter(provider_class) if getter is not None else attr
    if not isinstance(name, str) or not name:
        raise ProviderRegistryError(f"{provider_class.__name__} does not define a provider name")
    return name


class ProviderRegistry(Generic[P]):
    """Registered classes of one provider kind."""

    def __init__(self, kind: str):
        self.kind = kind
        self._classes: dict[str, type[P]] = {}

    def add(self, provider_class: type[P]) -> type[P]:
        name = provider_name_of(provider_class)
        if name in self._classes:
            raise DuplicateProviderError(f"{self.kind} provider '{name}' is already registered")
        self._classes[name] = provider_class
        return provider_class

    def lookup(self, name: str) -> type[P]:
        try:
            return self._classes[name]
        except KeyError:
            known = ", ".join(sorted(self._classes)) or "(none)"
            raise ProviderNotFoundError(
                f"Unknown {self.kind} provider: '{name}'. Registered providers: {known}"
            ) from None

    def snapshot(self) -> dict[str, type[P]]:
        return dict(self._classes)


llm_providers: ProviderRegistry[LLMProvider] = ProviderRegistry("LLM")
stt_providers: ProviderRegistry[STTProvider] = ProviderRegistry("STT")
tts_providers: ProviderRegistry[TTSProvider] = ProviderRegistry("TTS")

register_llm_provider = llm_providers.add
register_stt_provider = stt_providers.add
register_tts_provider = tts_providers.add


def get_registered_llm_providers() -> dict[str, type[LLMProvider]]:
    return llm_providers.snapshot()


def get_registered_stt_providers() -> dict[str, type[STTProvider]]:
    return stt_providers.snapshot()


def get_registered_tts_providers() -> dict[str, type[TTSProvider]]:
    return tts_providers.snapshot()
