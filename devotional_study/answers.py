"""Typed answers, one per question variant."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class ChoiceAnswer:
    index: int


@dataclass(frozen=True)
class SelectionAnswer:
    indices: frozenset[int]

    def __post_init__(self):
        object.__setattr__(self, "indices", frozenset(self.indices))


@dataclass(frozen=True)
class MatchingAnswer:
    mapping: dict[str, str] = field(hash=False)


@dataclass(frozen=True)
class OrderingAnswer:
    items: tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))


@dataclass(frozen=True)
class BlanksAnswer:
    texts: tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "texts", tuple(self.texts))


@dataclass(frozen=True)
class OpenAnswer:
    text: str


TypedAnswer = Union[
    ChoiceAnswer, SelectionAnswer, MatchingAnswer, OrderingAnswer, BlanksAnswer, OpenAnswer,
]

# Stored in a session's answers map for a skipped question
SKIPPED = "(no answer)"
