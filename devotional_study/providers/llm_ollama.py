from __future__ import annotations

import logging
import time

import httpx

from devotional_study.errors import ProviderError, classify_http_error
from devotional_study.providers.base import LLMProvider

log = logging.getLogger("devotional_study.llm")


class OllamaProvider(LLMProvider):
    def __init__(self, base_url: str = "http://localhost:11434", model: str = "gemma3:27b",
                 max_tokens: int = 8192):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.max_tokens = max_tokens

    async def generate(self, prompt: str, system: str | None = None, temperature: float = 0.3) -> str:
        log.info("── PROMPT (%s) ──\n%s", self.model, prompt)
        body: dict = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": {"temperature": temperature, "num_predict": self.max_tokens},
        }
        if system:
            body["system"] = system

        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=300.0) as client:
                resp = await client.post(f"{self.base_url}/api/generate", json=body)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise classify_http_error(e.response.status_code, e.response.text) from e
        except httpx.RequestError as e:
            raise ProviderError(f"could not reach Ollama at {self.base_url}: {e}") from e

        elapsed = time.monotonic() - t0
        response = data.get("response", "")
        log.info("── RESPONSE (%.1fs, %s tokens) ──\n%s", elapsed, data.get("eval_count", "?"), response)
        return response

    def name(self) -> str:
        return f"ollama/{self.model}"
