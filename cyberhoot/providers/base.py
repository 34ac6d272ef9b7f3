from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cyberhoot.config import Settings


class LLMProvider(ABC):
    @abstractmethod
    async def generate(self, prompt: str, temperature: float = 0.7, thinking: bool = False) -> str:
        ...

    @abstractmethod
    def name(self) -> str:
        ...


def create_llm(settings: Settings) -> LLMProvider | None:
    """The configured provider, or None when the LLM is switched off.

    Hosted providers read their API key from the environment
    (``ANTHROPIC_API_KEY`` / ``OPENAI_API_KEY``).
    """
    if not settings.use_llm:
        return None
    # No single call may outlive the longest wait placed on it
    timeout = max(settings.source_timeout_seconds, settings.grading_timeout_seconds)
    if settings.llm_provider == "ollama":
        from cyberhoot.providers.llm_ollama import OllamaProvider
        return OllamaProvider(base_url=settings.ollama_url, model=settings.llm_model,
                              timeout=timeout)
    elif settings.llm_provider == "anthropic":
        from cyberhoot.providers.llm_anthropic import AnthropicProvider
        return AnthropicProvider(timeout=timeout)
    elif settings.llm_provider == "openai":
        from cyberhoot.providers.llm_openai import OpenAIProvider
        return OpenAIProvider(timeout=timeout)
    raise ValueError(f"Unknown LLM provider: {settings.llm_provider}")
