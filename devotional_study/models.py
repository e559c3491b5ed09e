from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import ClassVar, Union

# [blank], [ ___ ] or a free-standing run of underscores
BLANK_RE = re.compile(r"\[\s*blank\s*\]|\[\s*_+\s*\]|(?<!\w)_+(?!\w)", re.IGNORECASE)


def count_blanks(text: str) -> int:
    return len(BLANK_RE.findall(text))


def split_blanks(text: str) -> list[str]:
    """Split *text* around its blank markers (n markers give n + 1 parts)."""
    return BLANK_RE.split(text)


@dataclass
class MatchPair:
    left: str
    right: str


@dataclass
class MultipleChoice:
    TAG: ClassVar[str] = "multiple-choice"

    question: str
    explanation: str
    options: list[str]
    correct_index: int

    def problem(self) -> str | None:
        if len(self.options) < 2:
            return f"needs at least 2 options (got {len(self.options)})"
        if not 0 <= self.correct_index < len(self.options):
            return f"correct_index out of range: {self.correct_index}"
        if not self.options[self.correct_index].strip():
            return "correct option is empty"
        return None


@dataclass
class MultipleSelection:
    TAG: ClassVar[str] = "multiple-selection"

    question: str
    explanation: str
    options: list[str]
    correct_indices: list[int]

    def problem(self) -> str | None:
        if not self.options:
            return "has no options"
        bad = [i for i in self.correct_indices if not 0 <= i < len(self.options)]
        if bad:
            return f"correct_indices out of range: {bad}"
        if any(not self.options[i].strip() for i in self.correct_indices):
            return "a correct option is empty"
        return None


@dataclass
class Matching:
    TAG: ClassVar[str] = "matching"

    question: str
    explanation: str
    pairs: list[MatchPair]

    def problem(self) -> str | None:
        if not self.pairs:
            return "has no pairs"
        lefts = [p.left for p in self.pairs]
        rights = [p.right for p in self.pairs]
        if len(set(lefts)) != len(lefts):
            return "duplicate left items"
        if len(set(rights)) != len(rights):
            return "duplicate right items"
        return None

    @property
    def lefts(self) -> list[str]:
        return [p.left for p in self.pairs]

    @property
    def rights(self) -> list[str]:
        return [p.right for p in self.pairs]


@dataclass
class Ordering:
    TAG: ClassVar[str] = "ordering"

    question: str
    explanation: str
    ordered_items: list[str]

    def problem(self) -> str | None:
        if len(self.ordered_items) < 2:
            return f"needs at least 2 items (got {len(self.ordered_items)})"
        return None


@dataclass
class FillInTheBlanks:
    TAG: ClassVar[str] = "fill-in-the-blanks"

    question: str
    explanation: str
    text_with_blanks: str
    blank_answers: list[str]

    def problem(self) -> str | None:
        n = count_blanks(self.text_with_blanks)
        if n == 0:
            return "text has no blank markers"
        if n != len(self.blank_answers):
            return f"{n} blanks but {len(self.blank_answers)} answers"
        empty = [i for i, a in enumerate(self.blank_answers) if not a.strip()]
        if empty:
            return f"blanks without an answer: {empty}"
        return None

    @property
    def blank_count(self) -> int:
        return count_blanks(self.text_with_blanks)


@dataclass
class OpenEnded:
    TAG: ClassVar[str] = "open-ended"

    question: str
    explanation: str

    def problem(self) -> str | None:
        return None


QuestionVariant = Union[
    MultipleChoice, MultipleSelection, Matching, Ordering, FillInTheBlanks, OpenEnded,
]

VARIANT_TYPES: dict[str, type] = {
    cls.TAG: cls
    for cls in (MultipleChoice, MultipleSelection, Matching, Ordering, FillInTheBlanks, OpenEnded)
}


def is_broken(variant: QuestionVariant) -> bool:
    return variant.problem() is not None


@dataclass
class BrokenVariant:
    """Stand-in the engine exposes for a variant that failed its shape check.

    Carries only what a "skip this question" screen needs, never the payload.
    """
    index: int
    tag: str
    question: str
    reason: str


@dataclass
class SessionComplete:
    score: int
    total: int

    @property
    def ratio(self) -> float:
        return self.score / self.total if self.total else 0.0


@dataclass
class Outcome:
    correct: bool
    explanation: str
    # Per-part feedback (one flag per blank or pair); never partial credit
    marks: list[bool] = field(default_factory=list)


@dataclass
class DayPlan:
    day: int
    focus: str = ""
    verse: str = ""
    action: str = ""


@dataclass
class StudyDocument:
    title: str = ""
    passage_text: str = ""
    summary: str = ""
    historical_context: str = ""
    key_verses: list[str] = field(default_factory=list)
    quiz: list[QuestionVariant] = field(default_factory=list)
    reflection_prompts: list[str] = field(default_factory=list)
    practical_application: str = ""
    daily_plan: list[DayPlan] = field(default_factory=list)

    def broken_indices(self) -> list[int]:
        return [i for i, v in enumerate(self.quiz) if is_broken(v)]

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "passageText": self.passage_text,
            "summary": self.summary,
            "historicalContext": self.historical_context,
            "keyVerses": list(self.key_verses),
            "quiz": [variant_to_dict(v) for v in self.quiz],
            "reflectionPrompts": list(self.reflection_prompts),
            "practicalApplication": self.practical_application,
            "dailyPlan": [
                {"day": d.day, "focus": d.focus, "verse": d.verse, "action": d.action}
                for d in self.daily_plan
            ],
        }


def variant_to_dict(variant: QuestionVariant) -> dict:
    """Render a variant in the camelCase wire shape."""
    data = {"type": variant.TAG, "question": variant.question, "explanation": variant.explanation}
    if isinstance(variant, MultipleChoice):
        data.update(options=list(variant.options), correctIndex=variant.correct_index)
    elif isinstance(variant, MultipleSelection):
        data.update(options=list(variant.options), correctIndices=list(variant.correct_indices))
    elif isinstance(variant, Matching):
        data["pairs"] = [{"left": p.left, "right": p.right} for p in variant.pairs]
    elif isinstance(variant, Ordering):
        data["orderedItems"] = list(variant.ordered_items)
    elif isinstance(variant, FillInTheBlanks):
        data.update(textWithBlanks=variant.text_with_blanks, blankAnswers=list(variant.blank_answers))
    return data
