"""Ask the LLM for a study document and sanitize its reply."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from devotional_study.errors import MalformedResponse
from devotional_study.models import StudyDocument
from devotional_study.prompts import MALFORMED_FEEDBACK, build_study_prompt
from devotional_study.sanitizer import sanitize

if TYPE_CHECKING:
    from devotional_study.providers.base import LLMProvider

_log = logging.getLogger("devotional_study.generator")


async def generate_study(
    llm: LLMProvider,
    passage: str,
    question_count: int = 10,
    language: str = "English",
    temperature: float = 0.3,
    max_attempts: int = 1,
) -> StudyDocument:
    """Generate and sanitize a study document for *passage*.

    Provider errors propagate unchanged.  A malformed reply raises
    :class:`MalformedResponse` once *max_attempts* is used up; each further
    attempt feeds the parse failure back to the LLM.
    """
    if not passage.strip():
        raise ValueError("passage must not be empty")

    system, base_prompt = build_study_prompt(passage, question_count, language)
    prompt = base_prompt
    attempts = max(1, max_attempts)
    for attempt in range(attempts):
        _log.info("Generate study for %r with %s (attempt %d/%d)",
                  passage, llm.name(), attempt + 1, attempts)
        response = await llm.generate(prompt, system=system, temperature=temperature)
        try:
            doc = sanitize(response)
        except MalformedResponse as e:
            if attempt == attempts - 1:
                raise
            _log.info("  Malformed response (%s), feeding back", e.reason)
            prompt = base_prompt + "\n\n" + MALFORMED_FEEDBACK.format(reason=e.reason)
            continue

        _log.info("  OK: %r, %d questions (%d broken)",
                  doc.title, len(doc.quiz), len(doc.broken_indices()))
        return doc
