"""LLM provider implementations."""

from intake.ai.providers.llm.groq import GroqProvider

__all__ = ["GroqProvider"]
