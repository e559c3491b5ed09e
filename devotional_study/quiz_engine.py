"""Quiz session state machine over heterogeneous question variants.

One engine drives one generated document.  Questions are presented one at a
time; each moves ``Unanswered -> Answered -> (Advanced | Restarted)`` and the
session ends in ``SessionComplete`` until ``restart()``.  Scratch state
(selection, matching pairings, ordering permutation, blank buffers, free
text) belongs to the current question only and is rebuilt on every index
change.
"""
from __future__ import annotations

import logging
import random

from devotional_study.answers import (
    SKIPPED,
    BlanksAnswer,
    ChoiceAnswer,
    MatchingAnswer,
    OpenAnswer,
    OrderingAnswer,
    SelectionAnswer,
    TypedAnswer,
)
from devotional_study.errors import AnswerMismatch, QuizStateError
from devotional_study.grading import answer_text, grade
from devotional_study.models import (
    BrokenVariant,
    FillInTheBlanks,
    Matching,
    MultipleChoice,
    MultipleSelection,
    OpenEnded,
    Ordering,
    Outcome,
    QuestionVariant,
    SessionComplete,
    StudyDocument,
)

_log = logging.getLogger("devotional_study.quiz")


class QuizEngine:
    def __init__(self, variants: list[QuestionVariant], rng: random.Random | None = None):
        self.variants: list[QuestionVariant] = list(variants)
        self._rng = rng or random.Random()
        self.current_index = 0
        self.score = 0
        self.answers: dict[int, str] = {}
        self._complete = not self.variants
        self._enter()

    @classmethod
    def from_document(cls, doc: StudyDocument, rng: random.Random | None = None) -> QuizEngine:
        return cls(doc.quiz, rng=rng)

    # ── State ──────────────────────────────────────────────────────────

    @property
    def total(self) -> int:
        return len(self.variants)

    @property
    def is_complete(self) -> bool:
        return self._complete

    @property
    def is_answered(self) -> bool:
        return self._outcome is not None

    @property
    def outcome(self) -> Outcome | None:
        return self._outcome

    def current(self) -> QuestionVariant | BrokenVariant | SessionComplete:
        if self._complete:
            return SessionComplete(score=self.score, total=self.total)
        variant = self.variants[self.current_index]
        reason = variant.problem()
        if reason is not None:
            return BrokenVariant(self.current_index, variant.TAG, variant.question, reason)
        return variant

    def progress(self) -> dict:
        return {
            "current": min(self.current_index + 1, self.total),
            "total": self.total,
            "answered": len(self.answers),
            "score": self.score,
        }

    def _enter(self) -> None:
        """Reset scratch state for the question at ``current_index``."""
        self._outcome: Outcome | None = None
        self._selection: set[int] = set()
        self._pairings: dict[str, str] = {}
        self._rights: list[str] = []
        self._order: list[str] = []
        self._blanks: list[str] = []
        self._text = ""

        current = self.current()
        if isinstance(current, Matching):
            self._rights = current.rights
            self._rng.shuffle(self._rights)
        elif isinstance(current, Ordering):
            self._order = list(current.ordered_items)
            self._rng.shuffle(self._order)
        elif isinstance(current, FillInTheBlanks):
            self._blanks = [""] * len(current.blank_answers)

    def _playable(self) -> QuestionVariant:
        current = self.current()
        if isinstance(current, SessionComplete):
            raise QuizStateError("session is complete")
        if isinstance(current, BrokenVariant):
            raise QuizStateError(f"question {current.index} is broken ({current.reason}); skip it")
        return current

    # ── Transitions ────────────────────────────────────────────────────

    def submit(self, answer: TypedAnswer | None = None) -> Outcome:
        """Grade the current question.

        Without *answer*, the answer is built from the scratch state and the
        question must be ready (see :meth:`is_ready`).  Submitting again
        before advancing returns the first outcome unchanged.
        """
        if self._outcome is not None:
            return self._outcome
        variant = self._playable()
        if answer is None:
            if not self.is_ready():
                raise QuizStateError("current question has no complete answer yet")
            answer = self.scratch_answer()

        index = self.current_index
        outcome = grade(variant, answer)
        self.answers[index] = answer_text(variant, answer)
        if outcome.correct:
            self.score += 1
        self._outcome = outcome
        _log.debug("Question %d (%s): %s", index + 1, variant.TAG,
                   "correct" if outcome.correct else "wrong")
        return outcome

    def advance(self) -> None:
        if self._complete:
            return
        if self.current_index + 1 < self.total:
            self.current_index += 1
            self._enter()
        else:
            self._complete = True
            self._outcome = None
            _log.info("Quiz complete: %d/%d", self.score, self.total)

    def skip(self) -> None:
        if self._complete:
            return
        if self._outcome is None:
            self.answers[self.current_index] = SKIPPED
        self.advance()

    def restart(self) -> None:
        self.current_index = 0
        self.score = 0
        self.answers.clear()
        self._complete = not self.variants
        self._enter()

    # ── Scratch state ──────────────────────────────────────────────────

    def _editable(self, cls: type):
        variant = self._playable()
        if not isinstance(variant, cls):
            raise AnswerMismatch(f"current question is {variant.TAG}, not {cls.TAG}")
        if self._outcome is not None:
            raise QuizStateError("current question is already answered")
        return variant

    @property
    def selection(self) -> list[int]:
        return sorted(self._selection)

    @property
    def pairings(self) -> dict[str, str]:
        return dict(self._pairings)

    @property
    def presented_rights(self) -> list[str]:
        return list(self._rights)

    @property
    def presented_order(self) -> list[str]:
        return list(self._order)

    @property
    def blanks(self) -> list[str]:
        return list(self._blanks)

    @property
    def text(self) -> str:
        return self._text

    def select(self, index: int) -> None:
        variant = self._editable(MultipleChoice)
        if not 0 <= index < len(variant.options):
            raise IndexError(f"option {index} out of range")
        self._selection = {index}

    def toggle(self, index: int) -> None:
        variant = self._editable(MultipleSelection)
        if not 0 <= index < len(variant.options):
            raise IndexError(f"option {index} out of range")
        self._selection ^= {index}

    def pair(self, left: str, right: str) -> None:
        """Link *left* to *right*; a right already in use moves to *left*."""
        variant = self._editable(Matching)
        if left not in variant.lefts:
            raise KeyError(left)
        if right not in self._rights:
            raise KeyError(right)
        for other, r in list(self._pairings.items()):
            if r == right:
                del self._pairings[other]
        self._pairings[left] = right

    def unpair(self, left: str) -> None:
        self._editable(Matching)
        self._pairings.pop(left, None)

    def move(self, src: int, dst: int) -> None:
        self._editable(Ordering)
        item = self._order.pop(src)
        self._order.insert(dst, item)

    def fill_blank(self, index: int, text: str) -> None:
        self._editable(FillInTheBlanks)
        self._blanks[index] = text

    def write(self, text: str) -> None:
        self._editable(OpenEnded)
        self._text = text

    def is_ready(self) -> bool:
        """Whether the scratch state holds a complete answer to submit."""
        current = self.current()
        if self._outcome is not None:
            return False
        if isinstance(current, MultipleChoice):
            return len(self._selection) == 1
        if isinstance(current, MultipleSelection):
            return bool(self._selection)
        if isinstance(current, Matching):
            return len(self._pairings) == len(current.pairs)
        if isinstance(current, Ordering):
            return True
        if isinstance(current, FillInTheBlanks):
            return all(b.strip() for b in self._blanks)
        if isinstance(current, OpenEnded):
            return bool(self._text.strip())
        return False

    def scratch_answer(self) -> TypedAnswer:
        """Build the typed answer the scratch state currently represents."""
        variant = self._playable()
        if isinstance(variant, MultipleChoice):
            return ChoiceAnswer(next(iter(self._selection), -1))
        if isinstance(variant, MultipleSelection):
            return SelectionAnswer(frozenset(self._selection))
        if isinstance(variant, Matching):
            return MatchingAnswer(dict(self._pairings))
        if isinstance(variant, Ordering):
            return OrderingAnswer(tuple(self._order))
        if isinstance(variant, FillInTheBlanks):
            return BlanksAnswer(tuple(self._blanks))
        return OpenAnswer(self._text)
