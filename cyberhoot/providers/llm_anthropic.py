from __future__ import annotations

import logging
import os
import time

from cyberhoot.providers.base import LLMProvider

log = logging.getLogger("cyberhoot.llm")


class AnthropicProvider(LLMProvider):
    def __init__(self, model: str = "claude-sonnet-4-20250514", timeout: float = 120.0):
        import anthropic
        self.client = anthropic.AsyncAnthropic(
            api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
            timeout=timeout,
        )
        self.model = model
        self.timeout = timeout

    async def generate(self, prompt: str, temperature: float = 0.7, thinking: bool = False) -> str:
        t0 = time.monotonic()
        message = await self.client.messages.create(
            model=self.model,
            max_tokens=2048,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        log.info("Anthropic response in %.1fs", time.monotonic() - t0)
        return message.content[0].text

    def name(self) -> str:
        return f"anthropic/{self.model}"
