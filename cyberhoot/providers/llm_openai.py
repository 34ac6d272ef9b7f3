from __future__ import annotations

import logging
import os
import time

from cyberhoot.providers.base import LLMProvider

log = logging.getLogger("cyberhoot.llm")


class OpenAIProvider(LLMProvider):
    def __init__(self, model: str = "gpt-4o-mini", timeout: float = 120.0):
        import openai
        self.client = openai.AsyncOpenAI(
            api_key=os.environ.get("OPENAI_API_KEY", ""),
            timeout=timeout,
        )
        self.model = model
        self.timeout = timeout

    async def generate(self, prompt: str, temperature: float = 0.7, thinking: bool = False) -> str:
        t0 = time.monotonic()
        resp = await self.client.chat.completions.create(
            model=self.model,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        log.info("OpenAI response in %.1fs", time.monotonic() - t0)
        return resp.choices[0].message.content

    def name(self) -> str:
        return f"openai/{self.model}"
