from __future__ import annotations

import logging
import os
import time

import httpx

from devotional_study.errors import (
    AuthenticationFailed,
    ProviderError,
    SafetyRejected,
    classify_http_error,
)
from devotional_study.providers.base import LLMProvider

log = logging.getLogger("devotional_study.llm")

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"


def find_openrouter_key() -> str | None:
    """Look up an OpenRouter key, falling back to any variable holding ``sk-or-…``."""
    for name in ("OPENROUTER_API_KEY", "OpenRouter_API_KEY"):
        value = os.environ.get(name, "").strip()
        if value and value != "undefined":
            return value
    for value in os.environ.values():
        if value.strip().startswith("sk-or-"):
            return value.strip()
    return None


class OpenRouterProvider(LLMProvider):
    def __init__(self, model: str = "google/gemma-3-27b-it:free", url: str = OPENROUTER_URL,
                 max_tokens: int = 8192):
        self.model = model
        self.url = url
        self.max_tokens = max_tokens

    async def generate(self, prompt: str, system: str | None = None, temperature: float = 0.3) -> str:
        key = find_openrouter_key()
        if key is None:
            raise AuthenticationFailed("no OpenRouter key found (set OPENROUTER_API_KEY)")
        if key.startswith("AIza"):
            raise AuthenticationFailed("OPENROUTER_API_KEY holds a Google key; OpenRouter keys start with 'sk-or-'")

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        log.info("── PROMPT (%s) ──\n%s", self.model, prompt)
        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=300.0) as client:
                resp = await client.post(
                    self.url,
                    headers={"Authorization": f"Bearer {key}", "X-Title": "Devotional Study"},
                    json={
                        "model": self.model,
                        "messages": messages,
                        "temperature": temperature,
                        "max_tokens": self.max_tokens,
                        "response_format": {"type": "json_object"},
                    },
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise classify_http_error(e.response.status_code, e.response.text) from e
        except httpx.RequestError as e:
            raise ProviderError(f"could not reach OpenRouter: {e}") from e

        if "error" in data:
            err = data["error"] if isinstance(data["error"], dict) else {"message": str(data["error"])}
            code = err.get("code")
            raise classify_http_error(code if isinstance(code, int) else 502, err.get("message", ""))

        choice = data["choices"][0]
        if choice.get("finish_reason") == "content_filter":
            raise SafetyRejected("response blocked by the provider's content filter")
        response = choice["message"].get("content") or ""
        log.info("── RESPONSE (%.1fs) ──\n%s", time.monotonic() - t0, response)
        return response

    def name(self) -> str:
        return f"openrouter/{self.model}"
