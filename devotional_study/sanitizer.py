"""Repair raw provider text into a validated StudyDocument.

The provider is asked for a single JSON object but regularly wraps it in
commentary or code fences, truncates it, or leaves stray control bytes in
string values.  Recovery is an ordered tuple of independent strategies; each
takes the trimmed text and returns the parsed object or ``None`` and never
raises.  The first strategy to produce an object wins, and defaults are
back-filled on whatever it produced.
"""
from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable

from devotional_study.errors import MalformedResponse
from devotional_study.models import (
    DayPlan,
    FillInTheBlanks,
    Matching,
    MatchPair,
    MultipleChoice,
    MultipleSelection,
    OpenEnded,
    Ordering,
    QuestionVariant,
    StudyDocument,
)

_log = logging.getLogger("devotional_study.sanitizer")

CONTROL_CHARS_RE = re.compile(r"[\u0000-\u001f\u007f-\u009f]")
_THINK_RE = re.compile(r"^\s*<think>.*?</think>", re.DOTALL)
_FENCE_OPEN_RE = re.compile(r"^```(?:json)?", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"```$")
_INT_RE = re.compile(r"-?[0-9]+")

TRUE_FALSE = "true-false"
TRUE_FALSE_OPTIONS = ("True", "False")

_TAG_ALIASES = {
    "multiple-choice": MultipleChoice.TAG,
    "single-choice": MultipleChoice.TAG,
    "choice": MultipleChoice.TAG,
    "mcq": MultipleChoice.TAG,
    "true-false": TRUE_FALSE,
    "true/false": TRUE_FALSE,
    "truefalse": TRUE_FALSE,
    "boolean": TRUE_FALSE,
    "multiple-selection": MultipleSelection.TAG,
    "multiple-select": MultipleSelection.TAG,
    "multi-select": MultipleSelection.TAG,
    "select-all": MultipleSelection.TAG,
    "checkbox": MultipleSelection.TAG,
    "matching": Matching.TAG,
    "match": Matching.TAG,
    "ordering": Ordering.TAG,
    "order": Ordering.TAG,
    "sequence": Ordering.TAG,
    "fill-in-the-blanks": FillInTheBlanks.TAG,
    "fill-in-the-blank": FillInTheBlanks.TAG,
    "fill-in-blanks": FillInTheBlanks.TAG,
    "fill-blank": FillInTheBlanks.TAG,
    "cloze": FillInTheBlanks.TAG,
    "open-ended": OpenEnded.TAG,
    "open": OpenEnded.TAG,
    "short-answer": OpenEnded.TAG,
    "reflection": OpenEnded.TAG,
    "essay": OpenEnded.TAG,
}


# ── Text trimming ────────────────────────────────────────────────────────

def strip_fences(text: str) -> str:
    """Trim a leading reasoning block and a wrapping code fence.

    Purely textual: only the very start and end of the text are touched.
    """
    text = _THINK_RE.sub("", text).strip()
    text = _FENCE_OPEN_RE.sub("", text)
    text = _FENCE_CLOSE_RE.sub("", text.rstrip())
    return text.strip()


# ── Recovery strategies ──────────────────────────────────────────────────

def _loads_object(candidate: str) -> dict | None:
    try:
        data = json.loads(candidate)
    except (ValueError, RecursionError):
        return None
    return data if isinstance(data, dict) else None


def _brace_span(text: str) -> str | None:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start:end + 1]


def outermost_braces(text: str) -> dict | None:
    """Parse everything between the first ``{`` and the last ``}``."""
    span = _brace_span(text)
    return _loads_object(span) if span is not None else None


def without_control_chars(text: str) -> dict | None:
    """Same span as :func:`outermost_braces`, minus C0/C1 control characters."""
    span = _brace_span(text)
    if span is None:
        return None
    cleaned = CONTROL_CHARS_RE.sub("", span)
    if cleaned == span:
        return None
    return _loads_object(cleaned)


def find_balanced_objects(text: str) -> list[str]:
    """Return the balanced top-level ``{…}`` substrings of *text*, in order.

    String literals are tracked so braces inside them do not count.  An
    opening brace that never closes is skipped.
    """
    found: list[str] = []
    i = 0
    while i < len(text):
        if text[i] != "{":
            i += 1
            continue
        depth = 0
        in_str = False
        escape = False
        for j in range(i, len(text)):
            ch = text[j]
            if escape:
                escape = False
            elif ch == "\\":
                escape = in_str
            elif ch == '"':
                in_str = not in_str
            elif in_str:
                continue
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    found.append(text[i:j + 1])
                    i = j + 1
                    break
        else:
            i += 1
    return found


def balanced_objects(text: str) -> dict | None:
    """Try each balanced ``{…}`` block, last first."""
    for candidate in reversed(find_balanced_objects(text)):
        data = _loads_object(candidate)
        if data is None:
            data = _loads_object(CONTROL_CHARS_RE.sub("", candidate))
        if data is not None:
            return data
    return None


Strategy = Callable[[str], "dict | None"]

STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("outermost_braces", outermost_braces),
    ("without_control_chars", without_control_chars),
    ("balanced_objects", balanced_objects),
)


def recover_object(raw: str) -> dict:
    """Run the recovery strategies in order and return the first object found."""
    if not raw or not raw.strip():
        raise MalformedResponse("empty", raw or "")

    text = strip_fences(raw)
    for name, strategy in STRATEGIES:
        data = strategy(text)
        if data is not None:
            if name != STRATEGIES[0][0]:
                _log.info("Recovered response JSON via %s", name)
            return data
        _log.debug("Strategy %s found nothing", name)

    _log.warning("No JSON object recoverable from response (%d chars)", len(raw))
    _log.debug("Raw response: %.300s", raw)
    raise MalformedResponse("no JSON object found", raw)


def sanitize(raw: str) -> StudyDocument:
    """Turn raw provider text into a StudyDocument.

    Raises :class:`MalformedResponse` when no JSON object can be recovered.
    A document is never returned partially: either every field is
    back-filled or the call fails.
    """
    doc = build_document(recover_object(raw))
    broken = doc.broken_indices()
    if broken:
        _log.info("%d of %d quiz questions are broken: %s", len(broken), len(doc.quiz), broken)
    return doc


# ── Field coercion ───────────────────────────────────────────────────────

def _get(data: dict, *keys: str):
    for key in keys:
        if key in data:
            return data[key]
    return None


def _str(value) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _item_text(item) -> str:
    if isinstance(item, dict):
        # e.g. {"reference": "John 3:16", "text": "..."}
        return ": ".join(s for s in (_str(v) for v in item.values()) if s)
    return _str(item)


def _str_list(value) -> list[str]:
    """Usable strings of a list; empty or unusable entries are dropped."""
    if not isinstance(value, list):
        return []
    return [text for text in (_item_text(item) for item in value) if text]


def _str_slots(value) -> list[str]:
    """Like :func:`_str_list` but keeps every position, unusable entries as ``""``.

    For lists that answer keys index into (options, blank answers).
    """
    if not isinstance(value, list):
        return []
    return [_item_text(item) for item in value]


def _int(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        s = value.strip()
        if _INT_RE.fullmatch(s):
            return int(s)
    return None


def _find_option(options: list[str], answer: str) -> int | None:
    target = answer.strip().lower()
    for i, opt in enumerate(options):
        if opt.strip().lower() == target:
            return i
    return None


def _normalise_tag(value) -> str | None:
    if not isinstance(value, str):
        return None
    key = re.sub(r"[\s_]+", "-", value.strip().lower())
    return _TAG_ALIASES.get(key)


def _infer_tag(entry: dict) -> str:
    if "pairs" in entry:
        return Matching.TAG
    if _get(entry, "orderedItems", "ordered_items") is not None:
        return Ordering.TAG
    if _get(entry, "blankAnswers", "blank_answers", "textWithBlanks", "text_with_blanks") is not None:
        return FillInTheBlanks.TAG
    if _get(entry, "correctIndices", "correct_indices") is not None:
        return MultipleSelection.TAG
    if "options" in entry:
        return MultipleChoice.TAG
    return OpenEnded.TAG


def _choice_index(entry: dict, options: list[str]) -> int:
    idx = _int(_get(entry, "correctIndex", "correct_index", "answerIndex"))
    if idx is not None:
        return idx
    answer = _get(entry, "correctAnswer", "correct_answer", "answer")
    if isinstance(answer, bool) and list(options) == list(TRUE_FALSE_OPTIONS):
        return 0 if answer else 1
    if isinstance(answer, str):
        found = _find_option(options, answer)
        if found is not None:
            return found
    idx = _int(answer)
    # -1 keeps the variant detectably broken rather than guessing
    return idx if idx is not None else -1


def _selection_indices(entry: dict, options: list[str]) -> list[int]:
    raw = _get(entry, "correctIndices", "correct_indices")
    indices: list[int] = []
    if isinstance(raw, list):
        indices = [i for i in (_int(v) for v in raw) if i is not None]
    else:
        answers = _get(entry, "correctAnswers", "correct_answers")
        if isinstance(answers, list):
            for a in answers:
                found = _find_option(options, a) if isinstance(a, str) else _int(a)
                if found is not None:
                    indices.append(found)
    return sorted(set(indices))


def _pairs(value) -> list[MatchPair]:
    if isinstance(value, dict):
        value = [[k, v] for k, v in value.items()]
    if not isinstance(value, list):
        return []
    pairs = []
    for item in value:
        if isinstance(item, dict):
            left, right = _str(item.get("left")), _str(item.get("right"))
        elif isinstance(item, list) and len(item) == 2:
            left, right = _str(item[0]), _str(item[1])
        else:
            continue
        if left and right:
            pairs.append(MatchPair(left, right))
    return pairs


def parse_variant(entry: dict) -> QuestionVariant:
    """Coerce one raw quiz entry into its variant, repairing what it can.

    Never raises.  Entries that cannot be repaired come back as a variant
    whose ``problem()`` explains the defect.
    """
    tag = _normalise_tag(_get(entry, "type", "questionType", "question_type"))
    if tag is None:
        tag = _infer_tag(entry)
    question = _str(_get(entry, "question", "prompt"))
    explanation = _str(entry.get("explanation"))

    if tag == TRUE_FALSE:
        options = _str_slots(entry.get("options"))
        if len(options) < 2:
            options = list(TRUE_FALSE_OPTIONS)
        return MultipleChoice(question, explanation, options, _choice_index(entry, options))

    if tag == MultipleChoice.TAG:
        options = _str_slots(entry.get("options"))
        return MultipleChoice(question, explanation, options, _choice_index(entry, options))

    if tag == MultipleSelection.TAG:
        options = _str_slots(entry.get("options"))
        return MultipleSelection(question, explanation, options, _selection_indices(entry, options))

    if tag == Matching.TAG:
        return Matching(question, explanation, _pairs(entry.get("pairs")))

    if tag == Ordering.TAG:
        items = _str_list(_get(entry, "orderedItems", "ordered_items", "items", "correctOrder"))
        return Ordering(question, explanation, items)

    if tag == FillInTheBlanks.TAG:
        text = _str(_get(entry, "textWithBlanks", "text_with_blanks", "text")) or question
        answers = _str_slots(_get(entry, "blankAnswers", "blank_answers", "answers"))
        return FillInTheBlanks(question, explanation, text, answers)

    return OpenEnded(question, explanation)


def _day_plans(value) -> list[DayPlan]:
    if not isinstance(value, list):
        return []
    plans = []
    for pos, item in enumerate((v for v in value if isinstance(v, dict)), 1):
        day = _int(item.get("day"))
        plans.append(DayPlan(
            day=day if day is not None else pos,
            focus=_str(item.get("focus")),
            verse=_str(item.get("verse")),
            action=_str(item.get("action")),
        ))
    return plans


def build_document(data: dict) -> StudyDocument:
    """Back-fill every StudyDocument field from a parsed object."""
    raw_quiz = _get(data, "quiz", "questions")
    quiz: list[QuestionVariant] = []
    if isinstance(raw_quiz, list):
        for i, entry in enumerate(raw_quiz):
            if not isinstance(entry, dict):
                _log.warning("Dropping quiz entry %d: expected object, got %s", i, type(entry).__name__)
                continue
            quiz.append(parse_variant(entry))

    return StudyDocument(
        title=_str(data.get("title")),
        passage_text=_str(_get(data, "passageText", "passage_text")),
        summary=_str(data.get("summary")),
        historical_context=_str(_get(data, "historicalContext", "historical_context")),
        key_verses=_str_list(_get(data, "keyVerses", "key_verses")),
        quiz=quiz,
        reflection_prompts=_str_list(_get(data, "reflectionPrompts", "reflection_prompts")),
        practical_application=_str(_get(data, "practicalApplication", "practical_application")),
        daily_plan=_day_plans(_get(data, "dailyPlan", "daily_plan")),
    )
