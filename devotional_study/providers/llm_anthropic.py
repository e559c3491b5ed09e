from __future__ import annotations

import os

from devotional_study.errors import ProviderError, SafetyRejected, classify_http_error
from devotional_study.providers.base import LLMProvider


class AnthropicProvider(LLMProvider):
    def __init__(self, model: str = "claude-sonnet-4-20250514", max_tokens: int = 8192):
        import anthropic
        self._anthropic = anthropic
        self.client = anthropic.AsyncAnthropic(
            api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
        )
        self.model = model
        self.max_tokens = max_tokens

    async def generate(self, prompt: str, system: str | None = None, temperature: float = 0.3) -> str:
        kwargs = {}
        if system:
            kwargs["system"] = system
        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
        except self._anthropic.APIStatusError as e:
            raise classify_http_error(e.status_code, str(e)) from e
        except self._anthropic.APIError as e:
            raise ProviderError(str(e)) from e
        if message.stop_reason == "refusal":
            raise SafetyRejected("the model declined to answer")
        return "".join(block.text for block in message.content if block.type == "text")

    def name(self) -> str:
        return f"anthropic/{self.model}"
