"""
Module: validation

Purpose:
    Pure validation of an ExamDraft. Nothing here is stored on the draft;
    the report is recomputed from the tree whenever it is needed, so the
    GUI and the publish gate always agree.

Key Functions:
    - validate_sections(sections): Structural and content checks per section
    - validate_draft(draft): Exam basics plus validate_sections
    - validate_bilingual(draft): English sections in full, Hindi structurally

Key Classes:
    - ValidationReport: Flat violation list plus a per-entity keyed map

Used By:
    - editor.session (publish gating)
    - gui.editor_window (inline issue list)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .models.draft import ExamDraft
from .models.questions import MIN_OPTION_COUNT, Question
from .models.sections import Language, Section


@dataclass(frozen=True)
class ValidationReport:
    """
    Result of validating a draft.

    Attributes:
        violations: Human-readable messages in tree order
        by_key: "<section id>" or "<section id>/<question id>" → messages

    Example:
        >>> report = validate_sections(())
        >>> report.is_valid
        False
    """

    violations: tuple[str, ...] = ()
    by_key: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def for_key(self, key: str) -> tuple[str, ...]:
        return tuple(self.by_key.get(key, ()))

    def __len__(self) -> int:
        return len(self.violations)


class _ReportBuilder:
    """Accumulates messages in order while keeping the keyed map in sync."""

    def __init__(self) -> None:
        self._violations: list[str] = []
        self._by_key: dict[str, list[str]] = {}

    def add(self, message: str, key: str | None = None) -> None:
        self._violations.append(message)
        if key is not None:
            self._by_key.setdefault(key, []).append(message)

    def build(self) -> ValidationReport:
        return ValidationReport(
            violations=tuple(self._violations),
            by_key={k: tuple(v) for k, v in self._by_key.items()},
        )


def section_key(section: Section) -> str:
    return str(section.id)


def question_key(section: Section, question: Question) -> str:
    return f"{section.id}/{question.id}"


# ─────────────────────────────────────────────────────────────────────────────
# Per-entity checks
# ─────────────────────────────────────────────────────────────────────────────

def _check_question(
    out: _ReportBuilder,
    section: Section,
    section_label: str,
    q_num: int,
    question: Question,
    require_text: bool,
) -> None:
    key = question_key(section, question)
    label = f"{section_label}, Question {q_num}"

    if require_text and not question.text.strip():
        out.add(f"{label}: question text is required", key)
    if question.marks <= 0:
        out.add(f"{label}: marks must be greater than 0", key)
    if question.missing_required_image:
        out.add(f"{label}: an image is required", key)

    if not question.uses_options:
        return

    if len(question.options) < MIN_OPTION_COUNT:
        out.add(f"{label}: at least {MIN_OPTION_COUNT} options are required", key)
    if require_text:
        for o_num, option in enumerate(question.options, start=1):
            if not option.option_text.strip() and not option.has_image:
                out.add(f"{label}, Option {o_num}: option text is required", key)
    for o_num, option in enumerate(question.options, start=1):
        if option.missing_required_image:
            out.add(f"{label}, Option {o_num}: an image is required", key)
    if not question.correct_options:
        out.add(f"{label}: select at least one correct option", key)


def _check_section(
    out: _ReportBuilder,
    s_num: int,
    section: Section,
    require_text: bool,
) -> None:
    label = f"Section {s_num}"
    key = section_key(section)

    if require_text and not section.name.strip():
        out.add(f"{label}: section name is required", key)
    if not section.questions:
        out.add(f"{label}: add at least one question", key)

    for q_num, question in enumerate(section.questions, start=1):
        _check_question(out, section, label, q_num, question, require_text)


# ─────────────────────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────────────────────

def _collect_sections(out: _ReportBuilder, sections: Iterable[Section]) -> None:
    sections = tuple(sections)
    if not sections:
        out.add("Add at least one section")
        return
    for s_num, section in enumerate(sections, start=1):
        _check_section(out, s_num, section, require_text=True)


def validate_sections(sections: Iterable[Section]) -> ValidationReport:
    """
    Validate sections, questions and options.

    A tree with no sections is never valid.
    """
    out = _ReportBuilder()
    _collect_sections(out, sections)
    return out.build()


def _collect_exam_basics(out: _ReportBuilder, draft: ExamDraft) -> None:
    meta = draft.metadata
    if not meta.title.strip():
        out.add("Exam title is required")
    if not meta.description.strip():
        out.add("Exam description is required")
    if not (meta.category_id or meta.category):
        out.add("Exam category is required")
    if meta.duration <= 0:
        out.add("Exam duration must be greater than 0")
    if meta.total_marks <= 0:
        out.add("Total marks must be greater than 0")
    if meta.total_questions <= 0:
        out.add("Total questions must be greater than 0")
    if not meta.schedule_complete:
        out.add("Start date, end date and status are required unless the exam is available anytime")
    elif not meta.allow_anytime and meta.end_date < meta.start_date:
        out.add("End date cannot be before start date")


def validate_draft(draft: ExamDraft) -> ValidationReport:
    """Validate exam basics and every section."""
    out = _ReportBuilder()
    _collect_exam_basics(out, draft)
    _collect_sections(out, draft.sections)
    return out.build()


def validate_bilingual(draft: ExamDraft) -> ValidationReport:
    """
    Language-aware validation.

    At least one English section must exist and every English section is
    validated in full. Hindi sections only get structural checks: marks,
    option count, a correct answer and image requirements. Their text
    fields may be left empty.
    """
    out = _ReportBuilder()
    _collect_exam_basics(out, draft)

    english = [s for s in draft.sections if s.language is Language.ENGLISH]
    if not english:
        out.add("Add at least one English section")

    for s_num, section in enumerate(draft.sections, start=1):
        _check_section(out, s_num, section, require_text=section.language is Language.ENGLISH)
    return out.build()
