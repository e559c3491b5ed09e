from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "llm_provider": "ollama",
    "llm_model": "gemma3:27b",
    "ollama_url": "http://localhost:11434",
    "openrouter_url": "https://openrouter.ai/api/v1/chat/completions",
    "question_count": 10,
    "temperature": 0.3,
    "max_tokens": 8192,
    "max_attempts": 1,
    "language": "English",
}


@dataclass
class Settings:
    llm_provider: str = DEFAULTS["llm_provider"]
    llm_model: str = DEFAULTS["llm_model"]
    ollama_url: str = DEFAULTS["ollama_url"]
    openrouter_url: str = DEFAULTS["openrouter_url"]
    question_count: int = DEFAULTS["question_count"]
    temperature: float = DEFAULTS["temperature"]
    max_tokens: int = DEFAULTS["max_tokens"]
    max_attempts: int = DEFAULTS["max_attempts"]
    language: str = DEFAULTS["language"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    def to_dict(self) -> dict:
        return {
            "llm_provider": self.llm_provider,
            "llm_model": self.llm_model,
            "ollama_url": self.ollama_url,
            "openrouter_url": self.openrouter_url,
            "question_count": self.question_count,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "max_attempts": self.max_attempts,
            "language": self.language,
        }


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        # Migrate: num_questions -> question_count
        if "num_questions" in raw:
            raw.setdefault("question_count", raw["num_questions"])
            del raw["num_questions"]
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")


def make_llm(settings: Settings):
    """Build the LLM provider the settings name."""
    if settings.llm_provider == "ollama":
        from devotional_study.providers.llm_ollama import OllamaProvider
        return OllamaProvider(base_url=settings.ollama_url, model=settings.llm_model,
                              max_tokens=settings.max_tokens)
    elif settings.llm_provider == "openrouter":
        from devotional_study.providers.llm_openrouter import OpenRouterProvider
        return OpenRouterProvider(model=settings.llm_model, url=settings.openrouter_url,
                                  max_tokens=settings.max_tokens)
    elif settings.llm_provider == "anthropic":
        from devotional_study.providers.llm_anthropic import AnthropicProvider
        return AnthropicProvider(model=settings.llm_model, max_tokens=settings.max_tokens)
    elif settings.llm_provider == "openai":
        from devotional_study.providers.llm_openai import OpenAIProvider
        return OpenAIProvider(model=settings.llm_model, max_tokens=settings.max_tokens)
    raise ValueError(f"Unknown LLM provider: {settings.llm_provider}")
