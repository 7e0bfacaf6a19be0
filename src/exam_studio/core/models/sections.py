"""
Module: sections

Purpose:
    The Section dataclass - an ordered group of questions within an exam.
    `total_questions` is always calculated from the question list.

Used By:
    - core.models.draft.ExamDraft
    - core.validation
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .ids import EntityId
from .questions import Question


class Language(str, Enum):
    ENGLISH = "en"
    HINDI = "hi"


@dataclass(frozen=True)
class Section:
    """
    Exam section (immutable).

    Attributes:
        id: Temporary or persisted id
        name: English section name
        marks_per_question: Default marks per question
        duration: Section duration in minutes (0 = no override)
        section_order: 1-based order within the exam
        questions: Ordered questions
        language: Content language of this section
        name_hi: Optional Hindi name

    Invariants:
        - total_questions == len(questions), never stored
    """

    id: EntityId
    name: str = ""
    marks_per_question: float = 1
    duration: int = 0
    section_order: int = 1
    questions: tuple[Question, ...] = ()
    language: Language = Language.ENGLISH
    name_hi: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.language, Language):
            object.__setattr__(self, "language", Language(self.language))
        if not isinstance(self.questions, tuple):
            object.__setattr__(self, "questions", tuple(self.questions))
        if self.duration < 0:
            raise ValueError(f"duration cannot be negative: {self.duration}")

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def total_marks(self) -> float:
        return sum(q.marks for q in self.questions)

    @property
    def option_count(self) -> int:
        return sum(len(q.options) for q in self.questions)

    @property
    def display_name(self) -> str:
        if self.language is Language.HINDI and self.name_hi:
            return self.name_hi
        return self.name

    def find_question(self, question_id: EntityId) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None
