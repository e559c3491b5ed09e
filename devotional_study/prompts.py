"""Prompt templates for study generation."""
from __future__ import annotations

STUDY_SYSTEM_PROMPT = """\
You are an academic and pedagogical Bible study assistant. You turn a Bible \
reference into interactive study material written in {language}.

Critical guidelines:
1. Difficult themes: if the passage involves suffering or conflict, treat it \
through resilience and literary wisdom.
2. Full text: the "passageText" property MUST contain the complete verses.
3. Respond with a single valid JSON object and nothing else.
"""

STUDY_PROMPT = """\
Study the passage "{passage}" in depth.

Generate exactly {question_count} varied quiz questions. Mix the six question \
types below; every question needs "type", "question" and "explanation".

- "multiple-choice": "options" (at least 2 strings), "correctIndex" (0-based)
- "multiple-selection": "options", "correctIndices" (every correct 0-based index)
- "matching": "pairs" ([{{"left": "...", "right": "..."}}], each side used once)
- "ordering": "orderedItems" (the items in their correct order)
- "fill-in-the-blanks": "textWithBlanks" (mark each gap with [blank]), \
"blankAnswers" (one answer per [blank], in order)
- "open-ended": no extra fields

Respond in this exact JSON format only, with no other text:
{{
  "title": "string",
  "passageText": "string",
  "summary": "string",
  "historicalContext": "string",
  "keyVerses": ["string"],
  "quiz": [
    {{"type": "multiple-choice", "question": "string", "explanation": "string", "options": ["string", "string"], "correctIndex": 0}}
  ],
  "reflectionPrompts": ["string"],
  "practicalApplication": "string",
  "dailyPlan": [{{"day": 1, "focus": "string", "verse": "string", "action": "string"}}]
}}
"""

MALFORMED_FEEDBACK = (
    "Your previous response could not be parsed ({reason}). "
    "Respond with ONLY one complete JSON object, no other text."
)


def build_study_prompt(passage: str, question_count: int = 10, language: str = "English") -> tuple[str, str]:
    """Return (system, prompt) for a study generation call."""
    system = STUDY_SYSTEM_PROMPT.format(language=language)
    prompt = STUDY_PROMPT.format(passage=passage.strip(), question_count=question_count)
    return system, prompt
