"""
Module: questions

Purpose:
    The Question dataclass and its discriminating enums. A question's type
    decides whether options apply: numerical questions carry none, the
    other types need at least two.

Key Classes:
    - QuestionType: single / multiple / truefalse / numerical
    - QuestionDifficulty: easy / medium / hard
    - Question: Immutable question with ordered options

Used By:
    - core.models.sections.Section
    - core.models.draft.ExamDraft
    - editor.sync
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .ids import EntityId, TemporaryId
from .images import ImageAttachment
from .options import Option


DEFAULT_OPTION_COUNT = 4
MIN_OPTION_COUNT = 2


class QuestionType(str, Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"
    TRUEFALSE = "truefalse"
    NUMERICAL = "numerical"

    @property
    def uses_options(self) -> bool:
        return self is not QuestionType.NUMERICAL

    @property
    def single_answer(self) -> bool:
        """True when exactly one option may be correct."""
        return self in (QuestionType.SINGLE, QuestionType.TRUEFALSE)


class QuestionDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True)
class Question:
    """
    Question within a section (immutable).

    Changing `type` away from an option-bearing type keeps the options
    on the question; they are ignored by validation and still submitted.

    Attributes:
        id: Temporary or persisted id
        type: QuestionType
        text: English question text
        marks: Marks awarded for a correct answer
        negative_marks: Marks deducted for a wrong answer
        explanation: Optional worked explanation
        difficulty: QuestionDifficulty
        options: Ordered options
        image: Optional pending or remote image
        requires_image: Set by CSV import; cleared by uploading or ignoring
        text_hi: Optional Hindi text
        explanation_hi: Optional Hindi explanation
    """

    id: EntityId
    type: QuestionType = QuestionType.SINGLE
    text: str = ""
    marks: float = 1
    negative_marks: float = 0
    explanation: str = ""
    difficulty: QuestionDifficulty = QuestionDifficulty.MEDIUM
    options: tuple[Option, ...] = ()
    image: Optional[ImageAttachment] = None
    requires_image: bool = False
    text_hi: str = ""
    explanation_hi: str = ""

    def __post_init__(self) -> None:
        # Accept raw strings from forms and payloads
        if not isinstance(self.type, QuestionType):
            object.__setattr__(self, "type", QuestionType(self.type))
        if not isinstance(self.difficulty, QuestionDifficulty):
            object.__setattr__(self, "difficulty", QuestionDifficulty(self.difficulty))
        if not isinstance(self.options, tuple):
            object.__setattr__(self, "options", tuple(self.options))

    @classmethod
    def blank(cls, question_type: QuestionType = QuestionType.SINGLE) -> "Question":
        """
        Create a new question with a temporary id.

        Option-bearing types are seeded with DEFAULT_OPTION_COUNT blank
        options ordered 1..N.
        """
        options: tuple[Option, ...] = ()
        if question_type.uses_options:
            options = tuple(Option.blank(order=i) for i in range(1, DEFAULT_OPTION_COUNT + 1))
        return cls(id=TemporaryId.new("question"), type=question_type, options=options)

    @property
    def uses_options(self) -> bool:
        return self.type.uses_options

    @property
    def correct_options(self) -> tuple[Option, ...]:
        return tuple(opt for opt in self.options if opt.is_correct)

    @property
    def missing_required_image(self) -> bool:
        return self.requires_image and self.image is None

    def find_option(self, option_id: EntityId) -> Optional[Option]:
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None
