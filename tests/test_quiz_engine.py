"""Tests for the quiz session state machine."""
from __future__ import annotations

import random

import pytest

from devotional_study.answers import (
    SKIPPED,
    ChoiceAnswer,
    MatchingAnswer,
    OpenAnswer,
    SelectionAnswer,
)
from devotional_study.errors import AnswerMismatch, QuizStateError
from devotional_study.models import (
    BrokenVariant,
    FillInTheBlanks,
    Matching,
    MatchPair,
    MultipleChoice,
    MultipleSelection,
    OpenEnded,
    Ordering,
    SessionComplete,
)
from devotional_study.quiz_engine import QuizEngine
from devotional_study.sanitizer import build_document

ORDER = ["Creation", "Flood", "Exodus", "Exile", "Return"]


def _sort_into_place(engine: QuizEngine, target: list[str]) -> None:
    """Drag items one at a time until the presented order equals *target*."""
    for i, item in enumerate(target):
        engine.move(engine.presented_order.index(item), i)


class TestInitialState:
    def test_starts_on_first_question(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        assert engine.current_index == 0
        assert engine.score == 0
        assert engine.answers == {}
        assert engine.current() is scenario_variants[0]
        assert not engine.is_complete
        assert not engine.is_answered

    def test_from_document(self, study_data, rng):
        doc = build_document(study_data)
        engine = QuizEngine.from_document(doc, rng=rng)
        assert engine.total == 6
        assert isinstance(engine.current(), MultipleChoice)

    def test_empty_quiz_is_complete(self):
        engine = QuizEngine([])
        assert engine.is_complete
        assert engine.current() == SessionComplete(score=0, total=0)
        engine.advance()
        engine.skip()
        assert engine.current() == SessionComplete(score=0, total=0)

    def test_progress(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        assert engine.progress() == {"current": 1, "total": 3, "answered": 0, "score": 0}


class TestSubmit:
    def test_correct_scores(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        outcome = engine.submit(ChoiceAnswer(1))
        assert outcome.correct
        assert outcome.explanation == "Yes, verse 1."
        assert engine.score == 1
        assert engine.answers == {0: "Yes"}
        assert engine.is_answered

    def test_wrong_does_not_score(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        assert not engine.submit(ChoiceAnswer(0)).correct
        assert engine.score == 0
        assert engine.answers == {0: "No"}

    def test_second_submit_is_idempotent(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        first = engine.submit(ChoiceAnswer(1))
        again = engine.submit(ChoiceAnswer(0))
        assert again is first
        assert engine.score == 1
        assert engine.answers == {0: "Yes"}

    def test_mismatched_answer(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        with pytest.raises(AnswerMismatch):
            engine.submit(SelectionAnswer({1}))
        assert not engine.is_answered
        assert engine.answers == {}

    def test_submit_broken_raises(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        engine.skip()
        engine.skip()
        assert isinstance(engine.current(), BrokenVariant)
        with pytest.raises(QuizStateError):
            engine.submit(ChoiceAnswer(0))

    def test_submit_after_complete_raises(self):
        engine = QuizEngine([OpenEnded("Why?", "")])
        engine.advance()
        with pytest.raises(QuizStateError):
            engine.submit(OpenAnswer("Because."))


class TestAdvance:
    def test_advance_without_answer(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        engine.advance()
        assert engine.current_index == 1
        assert engine.answers == {}

    def test_advance_resets_answered(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        engine.submit(ChoiceAnswer(1))
        engine.advance()
        assert not engine.is_answered
        assert engine.outcome is None

    def test_advance_past_end(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        engine.submit(ChoiceAnswer(1))
        for _ in range(5):
            engine.advance()
        assert engine.current() == SessionComplete(score=1, total=3)
        assert engine.current_index == 2

    def test_skip_records_sentinel(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        engine.skip()
        assert engine.answers == {0: SKIPPED}
        assert engine.current_index == 1

    def test_skip_keeps_given_answer(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        engine.submit(ChoiceAnswer(1))
        engine.skip()
        assert engine.answers == {0: "Yes"}
        assert engine.score == 1


class TestRestart:
    def test_restart_resets(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        engine.submit(ChoiceAnswer(1))
        engine.skip()
        engine.skip()
        engine.skip()
        assert engine.is_complete
        engine.restart()
        assert engine.current_index == 0
        assert engine.score == 0
        assert engine.answers == {}
        assert not engine.is_complete
        assert engine.current() is scenario_variants[0]

    def test_replay_same_score(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        for _ in range(2):
            engine.submit(ChoiceAnswer(1))
            engine.advance()
            engine.skip()
            engine.skip()
            assert engine.current() == SessionComplete(score=1, total=3)
            engine.restart()


class TestScenario:
    def test_choice_matching_broken(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)

        assert engine.submit(ChoiceAnswer(1)).correct
        engine.advance()

        assert isinstance(engine.current(), Matching)
        engine.pair("Rod", "Protection")
        engine.pair("Staff", "Guidance")
        assert engine.is_ready()
        assert engine.submit().correct
        engine.advance()

        broken = engine.current()
        assert isinstance(broken, BrokenVariant)
        assert broken.index == 2
        assert broken.question == "Broken question"
        engine.skip()

        assert engine.current() == SessionComplete(score=2, total=3)
        assert engine.answers == {
            0: "Yes",
            1: "Rod = Protection, Staff = Guidance",
            2: SKIPPED,
        }


class TestScratchChoice:
    def test_select_and_submit(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        assert not engine.is_ready()
        engine.select(0)
        engine.select(1)
        assert engine.selection == [1]
        assert engine.submit().correct

    def test_submit_without_selection(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        with pytest.raises(QuizStateError):
            engine.submit()

    def test_select_out_of_range(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        with pytest.raises(IndexError):
            engine.select(5)

    def test_locked_after_submit(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        engine.select(1)
        engine.submit()
        with pytest.raises(QuizStateError):
            engine.select(0)

    def test_wrong_scratch_operation(self, scenario_variants, rng):
        engine = QuizEngine(scenario_variants, rng=rng)
        with pytest.raises(AnswerMismatch):
            engine.toggle(0)
        with pytest.raises(AnswerMismatch):
            engine.write("hello")


class TestScratchSelection:
    def test_toggle(self, rng):
        engine = QuizEngine([MultipleSelection("Where?", "", ["a", "b", "c"], [0, 2])], rng=rng)
        engine.toggle(0)
        engine.toggle(1)
        engine.toggle(2)
        engine.toggle(1)
        assert engine.selection == [0, 2]
        assert engine.submit().correct
        assert engine.answers == {0: "a, c"}

    def test_empty_selection_not_ready(self, rng):
        engine = QuizEngine([MultipleSelection("Where?", "", ["a", "b"], [0])], rng=rng)
        assert not engine.is_ready()


class TestScratchMatching:
    PAIRS = [MatchPair("Rod", "Protection"), MatchPair("Staff", "Guidance"), MatchPair("Oil", "Blessing")]

    def test_rights_are_a_permutation(self, rng):
        engine = QuizEngine([Matching("Match.", "", self.PAIRS)], rng=rng)
        assert sorted(engine.presented_rights) == sorted(p.right for p in self.PAIRS)

    def test_presentation_stable_while_editing(self, rng):
        engine = QuizEngine([Matching("Match.", "", self.PAIRS)], rng=rng)
        shown = engine.presented_rights
        engine.pair("Rod", "Guidance")
        engine.unpair("Rod")
        assert engine.presented_rights == shown
        assert engine.presented_rights == shown

    def test_same_seed_same_presentation(self):
        a = QuizEngine([Matching("Match.", "", self.PAIRS)], rng=random.Random(7))
        b = QuizEngine([Matching("Match.", "", self.PAIRS)], rng=random.Random(7))
        assert a.presented_rights == b.presented_rights

    def test_right_moves_to_new_left(self, rng):
        engine = QuizEngine([Matching("Match.", "", self.PAIRS)], rng=rng)
        engine.pair("Rod", "Guidance")
        engine.pair("Staff", "Guidance")
        assert engine.pairings == {"Staff": "Guidance"}

    def test_unknown_items(self, rng):
        engine = QuizEngine([Matching("Match.", "", self.PAIRS)], rng=rng)
        with pytest.raises(KeyError):
            engine.pair("Crown", "Protection")
        with pytest.raises(KeyError):
            engine.pair("Rod", "Crown")

    def test_ready_only_when_all_paired(self, rng):
        engine = QuizEngine([Matching("Match.", "", self.PAIRS)], rng=rng)
        engine.pair("Rod", "Protection")
        engine.pair("Staff", "Guidance")
        assert not engine.is_ready()
        engine.pair("Oil", "Blessing")
        assert engine.is_ready()

    def test_typed_answer_wrong_pair(self, rng):
        engine = QuizEngine([Matching("Match.", "", self.PAIRS)], rng=rng)
        outcome = engine.submit(MatchingAnswer({"Rod": "Guidance", "Staff": "Protection", "Oil": "Blessing"}))
        assert not outcome.correct
        assert outcome.marks == [False, False, True]


class TestScratchOrdering:
    @pytest.mark.parametrize("seed", range(10))
    def test_sorted_into_place_is_correct(self, seed):
        engine = QuizEngine([Ordering("Order.", "", ORDER)], rng=random.Random(seed))
        assert sorted(engine.presented_order) == sorted(ORDER)
        _sort_into_place(engine, ORDER)
        assert engine.presented_order == ORDER
        assert engine.submit().correct

    def test_presented_order_is_what_gets_graded(self):
        engine = QuizEngine([Ordering("Order.", "", ORDER)], rng=random.Random(3))
        _sort_into_place(engine, list(reversed(ORDER)))
        outcome = engine.submit()
        assert not outcome.correct
        assert engine.answers == {0: " -> ".join(reversed(ORDER))}

    def test_shuffle_happens_on_entry_only(self, rng):
        engine = QuizEngine([Ordering("Order.", "", ORDER)], rng=rng)
        shown = engine.presented_order
        assert engine.presented_order == shown


class TestScratchBlanks:
    def test_fill_and_submit(self, rng):
        variant = FillInTheBlanks("Complete.", "", "The LORD is my [blank]; I shall not [blank].", ["shepherd", "want"])
        engine = QuizEngine([variant], rng=rng)
        assert engine.blanks == ["", ""]
        engine.fill_blank(0, "Shepherd")
        assert not engine.is_ready()
        engine.fill_blank(1, " want ")
        assert engine.is_ready()
        assert engine.submit().correct

    def test_blank_index_out_of_range(self, rng):
        variant = FillInTheBlanks("Complete.", "", "[blank]", ["x"])
        engine = QuizEngine([variant], rng=rng)
        with pytest.raises(IndexError):
            engine.fill_blank(3, "x")


class TestScratchOpenEnded:
    def test_write_and_submit(self, rng):
        engine = QuizEngine([OpenEnded("Reflect.", "Any answer.")], rng=rng)
        engine.write("   ")
        assert not engine.is_ready()
        engine.write("Quiet mornings.")
        assert engine.text == "Quiet mornings."
        assert engine.submit().correct
        assert engine.answers == {0: "Quiet mornings."}
