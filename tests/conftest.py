"""Shared test fixtures."""
from __future__ import annotations

import json
import random

import pytest

from devotional_study.models import (
    Matching,
    MatchPair,
    MultipleChoice,
)


@pytest.fixture
def study_data():
    """A complete, well-formed study document covering all six question types."""
    return {
        "title": "The Good Shepherd",
        "passageText": "The LORD is my shepherd; I shall not want. He makes me lie down in green pastures.",
        "summary": "David describes God's care through the image of a shepherd.",
        "historicalContext": "Written by David, himself a shepherd before he was king.",
        "keyVerses": ["Psalm 23:1", "Psalm 23:4"],
        "quiz": [
            {
                "type": "multiple-choice",
                "question": "Who is the shepherd in verse 1?",
                "explanation": "Verse 1 names the LORD as shepherd.",
                "options": ["David", "The LORD", "Moses"],
                "correctIndex": 1,
            },
            {
                "type": "multiple-selection",
                "question": "Where does the shepherd lead?",
                "explanation": "Green pastures and still waters.",
                "options": ["Green pastures", "Deserts", "Still waters", "Mountains"],
                "correctIndices": [0, 2],
            },
            {
                "type": "matching",
                "question": "Match each image to its meaning.",
                "explanation": "The rod protects, the staff guides, the oil blesses.",
                "pairs": [
                    {"left": "Rod", "right": "Protection"},
                    {"left": "Staff", "right": "Guidance"},
                    {"left": "Oil", "right": "Blessing"},
                ],
            },
            {
                "type": "ordering",
                "question": "Put the phrases in the order they appear.",
                "explanation": "This is the order of verses 1 to 3.",
                "orderedItems": ["I shall not want", "He makes me lie down", "He restores my soul"],
            },
            {
                "type": "fill-in-the-blanks",
                "question": "Complete the verse.",
                "explanation": "Psalm 23:1.",
                "textWithBlanks": "The LORD is my [blank]; I shall not [blank].",
                "blankAnswers": ["shepherd", "want"],
            },
            {
                "type": "open-ended",
                "question": "When have you felt led beside still waters?",
                "explanation": "Any honest reflection counts.",
            },
        ],
        "reflectionPrompts": ["Where do you need restoring?"],
        "practicalApplication": "Spend five quiet minutes outdoors today.",
        "dailyPlan": [
            {"day": 1, "focus": "Trust", "verse": "Psalm 23:1", "action": "List what you lack."},
            {"day": 2, "focus": "Rest", "verse": "Psalm 23:2", "action": "Take a real Sabbath hour."},
        ],
    }


@pytest.fixture
def study_json(study_data):
    return json.dumps(study_data, indent=2)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def scenario_variants():
    """Choice (2 options, answer 1), matching with 2 pairs, broken choice."""
    return [
        MultipleChoice("Is the LORD a shepherd?", "Yes, verse 1.", ["No", "Yes"], 1),
        Matching("Match the tools.", "Rod protects, staff guides.", [
            MatchPair("Rod", "Protection"),
            MatchPair("Staff", "Guidance"),
        ]),
        MultipleChoice("Broken question", "n/a", [], 0),
    ]
