from __future__ import annotations

from abc import ABC, abstractmethod


class LLMProvider(ABC):
    @abstractmethod
    async def generate(self, prompt: str, system: str | None = None, temperature: float = 0.3) -> str:
        """Return the provider's raw text.

        Failures surface as :class:`devotional_study.errors.ProviderError`
        subclasses; the text itself is never validated here.
        """

    @abstractmethod
    def name(self) -> str:
        ...
