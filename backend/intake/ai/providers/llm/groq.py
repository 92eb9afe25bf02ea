"""Chat completions on Groq for the intake assistant's replies."""

import logging
import time
from typing import Any

from groq import AsyncGroq

from intake.ai.providers.base import LLMMessage, LLMProvider, LLMResponse
from intake.ai.providers.registry import register_llm_provider

logger = logging.getLogger("llm")


@register_llm_provider
class GroqProvider(LLMProvider):
    DEFAULT_MODEL = "llama-3.3-70b-versatile"

    def __init__(self, api_key: str, timeout: float = 30.0):
        self._client = AsyncGroq(api_key=api_key, timeout=timeout)

    @property
    def name(self) -> str:
        return "groq"

    def _log_extra(self, model: str, **fields: Any) -> dict[str, Any]:
        return {"service": "llm", "provider": self.name, "model_id": model, **fields}

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        **kwargs: Any,
    ) -> LLMResponse:
        """One non-streamed completion. Client errors are logged and re-raised."""
        model = self.resolve_model(model)
        started = time.perf_counter()

        try:
            completion = await self._client.chat.completions.create(
                model=model,
                messages=[{"role": m.role, "content": m.content} for m in messages],
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs,
            )
        except Exception as e:
            logger.error(
                "Groq completion failed",
                extra=self._log_extra(
                    model,
                    error=str(e),
                    duration_ms=int((time.perf_counter() - started) * 1000),
                ),
                exc_info=True,
            )
            raise

        choice = completion.choices[0]
        usage = completion.usage
        result = LLMResponse(
            content=choice.message.content or "",
            model=model,
            tokens_in=getattr(usage, "prompt_tokens", 0) or 0,
            tokens_out=getattr(usage, "completion_tokens", 0) or 0,
            finish_reason=choice.finish_reason,
        )

        logger.info(
            "Groq completion finished",
            extra=self._log_extra(
                model,
                duration_ms=int((time.perf_counter() - started) * 1000),
                metadata={
                    "messages": len(messages),
                    "tokens_in": result.tokens_in,
                    "tokens_out": result.tokens_out,
                },
            ),
        )
        return result

    async def aclose(self) -> None:
        await self._client.close()
