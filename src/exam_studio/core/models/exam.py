"""
Module: exam

Purpose:
    Exam-level metadata: titles, totals, pricing, schedule window, taxonomy
    references and media. Schedule rules live here so every caller gets the
    same "anytime" behaviour.

Key Classes:
    - ExamStatus: upcoming / ongoing / completed / anytime
    - ExamType: past_paper / mock_test / short_quiz
    - ExamMetadata: Immutable exam header

Key Functions:
    - ExamMetadata.with_allow_anytime(flag): Toggle the anytime schedule
    - ExamMetadata.with_field(name, value): Form-style single field update

Used By:
    - core.models.draft.ExamDraft
    - editor.sync (exam payload)
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from .images import ImageAttachment


class ExamStatus(str, Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    ANYTIME = "anytime"


class ExamType(str, Enum):
    PAST_PAPER = "past_paper"
    MOCK_TEST = "mock_test"
    SHORT_QUIZ = "short_quiz"


def coerce_date(value: Any) -> Optional[date]:
    """
    Normalize form/API date values.

    Accepts date, datetime, ISO strings (date part is kept) and empty values.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise ValueError(f"Unsupported date value: {value!r}")


# Fields that callers may not set through with_field()
_PROTECTED_FIELDS = {"status_before_anytime", "allow_anytime"}

# Fields fixed while allow_anytime is on
_SCHEDULE_FIELDS = {"status", "start_date", "end_date"}


@dataclass(frozen=True)
class ExamMetadata:
    """
    Exam header (immutable).

    Attributes:
        title: Display title
        description: Long description
        duration: Duration in minutes
        total_marks: Total marks (can be derived from sections)
        total_questions: Total questions (can be derived from sections)
        category / category_id: Category name and id
        subcategory / subcategory_id: Subcategory name and id
        difficulty / difficulty_id: Difficulty name and id
        slug: URL slug; derived from title when empty
        status: Schedule status
        start_date / end_date: Schedule window
        pass_percentage: Pass mark in percent
        is_free / price: Pricing
        negative_marking / negative_mark_value: Negative marking rule
        is_published: Visible to learners
        allow_anytime: No schedule window
        exam_type: ExamType
        show_in_mock_tests: Only meaningful for past papers
        syllabus: Ordered syllabus topics
        logo / thumbnail: Exam media
        status_before_anytime: Status to restore when anytime is switched off

    Invariants:
        - allow_anytime implies status == ANYTIME and no schedule dates
        - negative_marking False implies negative_mark_value == 0
    """

    title: str = ""
    description: str = ""
    duration: int = 180
    total_marks: float = 100
    total_questions: int = 50
    category: str = ""
    category_id: str = ""
    subcategory: str = ""
    subcategory_id: str = ""
    difficulty: str = ""
    difficulty_id: str = ""
    slug: str = ""
    status: ExamStatus = ExamStatus.UPCOMING
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    pass_percentage: float = 33
    is_free: bool = True
    price: float = 0
    negative_marking: bool = False
    negative_mark_value: float = 0
    is_published: bool = False
    allow_anytime: bool = False
    exam_type: ExamType = ExamType.MOCK_TEST
    show_in_mock_tests: bool = False
    syllabus: tuple[str, ...] = ()
    logo: Optional[ImageAttachment] = None
    thumbnail: Optional[ImageAttachment] = None
    status_before_anytime: Optional[ExamStatus] = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, ExamStatus):
            object.__setattr__(self, "status", ExamStatus(self.status))
        if not isinstance(self.exam_type, ExamType):
            object.__setattr__(self, "exam_type", ExamType(self.exam_type))
        if self.status_before_anytime is not None and not isinstance(self.status_before_anytime, ExamStatus):
            object.__setattr__(self, "status_before_anytime", ExamStatus(self.status_before_anytime))
        object.__setattr__(self, "start_date", coerce_date(self.start_date))
        object.__setattr__(self, "end_date", coerce_date(self.end_date))
        if not isinstance(self.syllabus, tuple):
            object.__setattr__(self, "syllabus", tuple(self.syllabus))
        if not 0 <= self.pass_percentage <= 100:
            raise ValueError(f"pass_percentage must be 0-100: {self.pass_percentage}")

    # ─────────────────────────────────────────────────────────────────────────
    # Updates (return new instances)
    # ─────────────────────────────────────────────────────────────────────────

    def with_field(self, name: str, value: Any) -> "ExamMetadata":
        """
        Set a single field, as a form input would.

        Raises:
            ValueError: For unknown or protected fields, or a schedule
                change while the exam is available anytime
        """
        known = {f.name for f in fields(self)}
        if name not in known:
            raise ValueError(f"Unknown exam field: {name!r}")
        if name in _PROTECTED_FIELDS:
            raise ValueError(f"Use with_allow_anytime() to change {name!r}")
        if self.allow_anytime and name in _SCHEDULE_FIELDS and not self._keeps_anytime_schedule(name, value):
            raise ValueError(f"Exam is available anytime; switch that off before setting {name!r}")

        if name == "syllabus":
            value = tuple(value)
        updated = replace(self, **{name: value})
        if name == "negative_marking" and not value:
            updated = replace(updated, negative_mark_value=0)
        return updated

    @staticmethod
    def _keeps_anytime_schedule(name: str, value: Any) -> bool:
        if name == "status":
            return value in (ExamStatus.ANYTIME, ExamStatus.ANYTIME.value)
        return value in (None, "")

    def with_allow_anytime(self, allow: bool) -> "ExamMetadata":
        """
        Toggle the anytime schedule.

        Switching on clears the window and forces ANYTIME, remembering the
        previous status. Switching off restores that status, or UPCOMING.
        """
        if allow:
            if self.allow_anytime:
                return self
            previous = self.status if self.status is not ExamStatus.ANYTIME else None
            return replace(
                self,
                allow_anytime=True,
                status=ExamStatus.ANYTIME,
                start_date=None,
                end_date=None,
                status_before_anytime=previous,
            )

        restored = self.status_before_anytime or ExamStatus.UPCOMING
        if self.status is not ExamStatus.ANYTIME and not self.allow_anytime:
            restored = self.status
        return replace(
            self,
            allow_anytime=False,
            status=restored,
            status_before_anytime=None,
        )

    def with_syllabus_item(self, item: str) -> "ExamMetadata":
        item = item.strip()
        if not item:
            return self
        return replace(self, syllabus=self.syllabus + (item,))

    def without_syllabus_item(self, index: int) -> "ExamMetadata":
        if not 0 <= index < len(self.syllabus):
            raise IndexError(f"Syllabus index out of range: {index}")
        return replace(self, syllabus=self.syllabus[:index] + self.syllabus[index + 1:])

    # ─────────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def schedule_complete(self) -> bool:
        if self.allow_anytime:
            return True
        return bool(self.start_date and self.end_date and self.status)

    @property
    def effective_show_in_mock_tests(self) -> bool:
        return self.exam_type is ExamType.PAST_PAPER and self.show_in_mock_tests
