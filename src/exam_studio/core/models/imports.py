"""
Parsed CSV import shapes.

The CSV parser itself lives outside this package; it produces these
fragments, which ExamDraft.import_sections() merges into the tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .questions import QuestionDifficulty, QuestionType


@dataclass(frozen=True)
class ParsedOption:
    option_text: str
    is_correct: bool = False
    option_order: int = 1
    requires_image: bool = False


@dataclass(frozen=True)
class ParsedQuestion:
    type: QuestionType
    text: str
    marks: float = 1
    negative_marks: float = 0
    explanation: str = ""
    difficulty: QuestionDifficulty = QuestionDifficulty.MEDIUM
    requires_image: bool = False
    options: tuple[ParsedOption, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ParsedSection:
    name: str
    marks_per_question: float = 1
    duration: int = 0
    questions: tuple[ParsedQuestion, ...] = field(default_factory=tuple)
