"""Per-variant correctness rules and canonical answer text.

Every rule is all-or-nothing.  ``marks`` on the returned Outcome gives
per-part feedback (one flag per blank, pair or position) for display only.
"""
from __future__ import annotations

from devotional_study.answers import (
    BlanksAnswer,
    ChoiceAnswer,
    MatchingAnswer,
    OpenAnswer,
    OrderingAnswer,
    SelectionAnswer,
    TypedAnswer,
)
from devotional_study.errors import AnswerMismatch
from devotional_study.models import (
    FillInTheBlanks,
    Matching,
    MultipleChoice,
    MultipleSelection,
    OpenEnded,
    Ordering,
    Outcome,
    QuestionVariant,
)


def _norm(text: str) -> str:
    return text.strip().lower()


def _grade_choice(q: MultipleChoice, a: ChoiceAnswer) -> tuple[bool, list[bool]]:
    return a.index == q.correct_index, []


def _grade_selection(q: MultipleSelection, a: SelectionAnswer) -> tuple[bool, list[bool]]:
    return sorted(a.indices) == sorted(set(q.correct_indices)), []


def _grade_matching(q: Matching, a: MatchingAnswer) -> tuple[bool, list[bool]]:
    marks = [a.mapping.get(p.left) == p.right for p in q.pairs]
    return all(marks), marks


def _grade_ordering(q: Ordering, a: OrderingAnswer) -> tuple[bool, list[bool]]:
    marks = [
        i < len(a.items) and a.items[i] == item
        for i, item in enumerate(q.ordered_items)
    ]
    return list(a.items) == list(q.ordered_items), marks


def _grade_blanks(q: FillInTheBlanks, a: BlanksAnswer) -> tuple[bool, list[bool]]:
    marks = [
        i < len(a.texts) and _norm(a.texts[i]) == _norm(expected)
        for i, expected in enumerate(q.blank_answers)
    ]
    return all(marks), marks


def _grade_open(q: OpenEnded, a: OpenAnswer) -> tuple[bool, list[bool]]:
    return True, []


_RULES = {
    MultipleChoice: (ChoiceAnswer, _grade_choice),
    MultipleSelection: (SelectionAnswer, _grade_selection),
    Matching: (MatchingAnswer, _grade_matching),
    Ordering: (OrderingAnswer, _grade_ordering),
    FillInTheBlanks: (BlanksAnswer, _grade_blanks),
    OpenEnded: (OpenAnswer, _grade_open),
}


def _check(variant: QuestionVariant, answer: TypedAnswer):
    answer_type, rule = _RULES[type(variant)]
    if not isinstance(answer, answer_type):
        raise AnswerMismatch(
            f"{variant.TAG} question expects {answer_type.__name__}, "
            f"got {type(answer).__name__}"
        )
    return rule


def grade(variant: QuestionVariant, answer: TypedAnswer) -> Outcome:
    """Grade *answer* against *variant*.

    Raises :class:`AnswerMismatch` when the answer type does not belong to
    the variant.  The variant is assumed to have passed its shape check.
    """
    rule = _check(variant, answer)
    correct, marks = rule(variant, answer)
    return Outcome(correct=correct, explanation=variant.explanation, marks=marks)


def answer_text(variant: QuestionVariant, answer: TypedAnswer) -> str:
    """Free-text rendering of a submitted answer, kept for journaling."""
    _check(variant, answer)
    if isinstance(answer, ChoiceAnswer):
        options = variant.options
        return options[answer.index] if 0 <= answer.index < len(options) else ""
    if isinstance(answer, SelectionAnswer):
        options = variant.options
        return ", ".join(options[i] for i in sorted(answer.indices) if 0 <= i < len(options))
    if isinstance(answer, MatchingAnswer):
        return ", ".join(
            f"{p.left} = {answer.mapping[p.left]}" for p in variant.pairs if p.left in answer.mapping
        )
    if isinstance(answer, OrderingAnswer):
        return " -> ".join(answer.items)
    if isinstance(answer, BlanksAnswer):
        return ", ".join(answer.texts)
    return answer.text
