from __future__ import annotations

import os

from devotional_study.errors import ProviderError, classify_http_error
from devotional_study.providers.base import LLMProvider


class OpenAIProvider(LLMProvider):
    def __init__(self, model: str = "gpt-4o-mini", max_tokens: int = 8192):
        import openai
        self._openai = openai
        self.client = openai.AsyncOpenAI(
            api_key=os.environ.get("OPENAI_API_KEY", ""),
        )
        self.model = model
        self.max_tokens = max_tokens

    async def generate(self, prompt: str, system: str | None = None, temperature: float = 0.3) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                temperature=temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
                messages=messages,
            )
        except self._openai.APIStatusError as e:
            raise classify_http_error(e.status_code, str(e)) from e
        except self._openai.APIError as e:
            raise ProviderError(str(e)) from e
        return resp.choices[0].message.content or ""

    def name(self) -> str:
        return f"openai/{self.model}"
