"""
Module: draft

Purpose:
    ExamDraft - the single owned aggregate the editor works on. Holds exam
    metadata and the Section → Question → Option tree, and exposes every
    editing operation as a pure method that returns a new draft.

Key Classes:
    - ExamDraft: Immutable exam tree with mutation methods
    - RemovedEntity: Persisted entity deleted locally, pending server delete
    - EntityKind: exam / section / question / option
    - DraftError, EntityNotFoundError: Mutation failures

Key Functions:
    - ExamDraft.add_section / remove_section / update_section
    - ExamDraft.add_question / remove_question / update_question
    - ExamDraft.add_option / remove_option / update_option
    - ExamDraft.set_correct_answer
    - ExamDraft.import_sections
    - ExamDraft.apply_id_remap

Dependencies:
    - dataclasses (std)
    - .ids, .images, .options, .questions, .sections, .exam, .imports

Used By:
    - core.validation
    - editor.sync
    - editor.session
    - core.utils.serialization

Invariants:
    - Mutations never modify the receiver; each returns a new ExamDraft
    - For single/truefalse questions set_correct_answer leaves exactly one
      correct option
    - Unknown ids raise EntityNotFoundError rather than being ignored
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Callable, Iterator, Optional, Sequence

from .exam import ExamMetadata
from .ids import EntityId, IdRemap, PersistedId, TemporaryId
from .images import ImageAttachment
from .imports import ParsedSection
from .options import Option
from .questions import MIN_OPTION_COUNT, Question, QuestionType
from .sections import Language, Section


class DraftError(Exception):
    """Invalid draft mutation."""
    pass


class EntityNotFoundError(DraftError, LookupError):
    """A section, question or option id is not in the draft."""
    pass


class EntityKind(str, Enum):
    EXAM = "exam"
    SECTION = "section"
    QUESTION = "question"
    OPTION = "option"


@dataclass(frozen=True)
class RemovedEntity:
    """A persisted entity removed locally; deleted on the next submission."""

    kind: EntityKind
    id: PersistedId


# Fields callers cannot set through the generic update_* methods
_SECTION_LOCKED = frozenset({"id", "questions"})
_QUESTION_LOCKED = frozenset({"id", "options", "image"})
_OPTION_LOCKED = frozenset({"id", "image"})


def _checked_replace(obj: Any, name: str, value: Any, locked: frozenset[str], kind: str) -> Any:
    known = {f.name for f in fields(obj)}
    if name not in known:
        raise DraftError(f"Unknown {kind} field: {name!r}")
    if name in locked:
        raise DraftError(f"{kind} field {name!r} cannot be set directly")
    try:
        return replace(obj, **{name: value})
    except ValueError as e:
        raise DraftError(f"Invalid value for {kind}.{name}: {e}") from e


@dataclass(frozen=True)
class ExamDraft:
    """
    The exam being edited (immutable).

    Attributes:
        exam_id: None before the first save, then the exam's id
        metadata: Exam header fields
        sections: Ordered sections
        removed: Persisted entities awaiting server-side deletion

    Example:
        >>> draft = ExamDraft().add_section()
        >>> section_id = draft.sections[0].id
        >>> draft = draft.add_question(section_id)
        >>> len(draft.sections[0].questions[0].options)
        4
    """

    exam_id: Optional[EntityId] = None
    metadata: ExamMetadata = field(default_factory=ExamMetadata)
    sections: tuple[Section, ...] = ()
    removed: tuple[RemovedEntity, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.sections, tuple):
            object.__setattr__(self, "sections", tuple(self.sections))

    # ─────────────────────────────────────────────────────────────────────────
    # Lookup
    # ─────────────────────────────────────────────────────────────────────────

    def get_section(self, section_id: EntityId) -> Section:
        for section in self.sections:
            if section.id == section_id:
                return section
        raise EntityNotFoundError(f"Section not found: {section_id}")

    def get_question(self, section_id: EntityId, question_id: EntityId) -> Question:
        question = self.get_section(section_id).find_question(question_id)
        if question is None:
            raise EntityNotFoundError(f"Question not found: {question_id}")
        return question

    def get_option(self, section_id: EntityId, question_id: EntityId, option_id: EntityId) -> Option:
        option = self.get_question(section_id, question_id).find_option(option_id)
        if option is None:
            raise EntityNotFoundError(f"Option not found: {option_id}")
        return option

    def iter_questions(self) -> Iterator[tuple[Section, Question]]:
        for section in self.sections:
            for question in section.questions:
                yield section, question

    def iter_options(self) -> Iterator[tuple[Section, Question, Option]]:
        for section, question in self.iter_questions():
            for option in question.options:
                yield section, question, option

    # ─────────────────────────────────────────────────────────────────────────
    # Calculated Properties (never stored)
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def question_count(self) -> int:
        return sum(s.total_questions for s in self.sections)

    @property
    def option_count(self) -> int:
        return sum(s.option_count for s in self.sections)

    @property
    def step_count(self) -> int:
        """Submission steps: exam + every section, question and option."""
        return 1 + len(self.sections) + self.question_count + self.option_count

    def derived_totals(self, language: Optional[Language] = None) -> tuple[int, float]:
        """
        Count questions and sum marks, optionally for one language only.

        Returns:
            (total_questions, total_marks)
        """
        sections = [s for s in self.sections if language is None or s.language is language]
        return (
            sum(s.total_questions for s in sections),
            sum(s.total_marks for s in sections),
        )

    def can_remove_option(self, section_id: EntityId, question_id: EntityId) -> bool:
        """True when removing one option still leaves the minimum."""
        question = self.get_question(section_id, question_id)
        return len(question.options) > MIN_OPTION_COUNT

    # ─────────────────────────────────────────────────────────────────────────
    # Internal replace helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _map_section(self, section_id: EntityId, fn: Callable[[Section], Section]) -> "ExamDraft":
        self.get_section(section_id)
        return replace(
            self,
            sections=tuple(fn(s) if s.id == section_id else s for s in self.sections),
        )

    def _map_question(
        self,
        section_id: EntityId,
        question_id: EntityId,
        fn: Callable[[Question], Question],
    ) -> "ExamDraft":
        self.get_question(section_id, question_id)

        def update(section: Section) -> Section:
            return replace(
                section,
                questions=tuple(fn(q) if q.id == question_id else q for q in section.questions),
            )

        return self._map_section(section_id, update)

    def _map_option(
        self,
        section_id: EntityId,
        question_id: EntityId,
        option_id: EntityId,
        fn: Callable[[Option], Option],
    ) -> "ExamDraft":
        self.get_option(section_id, question_id, option_id)

        def update(question: Question) -> Question:
            return replace(
                question,
                options=tuple(fn(o) if o.id == option_id else o for o in question.options),
            )

        return self._map_question(section_id, question_id, update)

    def _with_removed(self, kind: EntityKind, entity_id: EntityId) -> tuple[RemovedEntity, ...]:
        if isinstance(entity_id, PersistedId):
            return self.removed + (RemovedEntity(kind, entity_id),)
        return self.removed

    # ─────────────────────────────────────────────────────────────────────────
    # Exam metadata
    # ─────────────────────────────────────────────────────────────────────────

    def update_exam(self, name: str, value: Any) -> "ExamDraft":
        try:
            return replace(self, metadata=self.metadata.with_field(name, value))
        except ValueError as e:
            raise DraftError(str(e)) from e

    def set_allow_anytime(self, allow: bool) -> "ExamDraft":
        return replace(self, metadata=self.metadata.with_allow_anytime(allow))

    def add_syllabus_item(self, item: str) -> "ExamDraft":
        return replace(self, metadata=self.metadata.with_syllabus_item(item))

    def remove_syllabus_item(self, index: int) -> "ExamDraft":
        return replace(self, metadata=self.metadata.without_syllabus_item(index))

    def set_exam_media(self, kind: str, image: Optional[ImageAttachment]) -> "ExamDraft":
        """Attach or clear the exam's "logo" or "thumbnail"."""
        if kind not in ("logo", "thumbnail"):
            raise DraftError(f"Unknown exam media kind: {kind!r}")
        return replace(self, metadata=replace(self.metadata, **{kind: image}))

    def with_derived_totals(self, language: Optional[Language] = None) -> "ExamDraft":
        total_questions, total_marks = self.derived_totals(language)
        metadata = self.metadata
        if metadata.total_questions == total_questions and metadata.total_marks == total_marks:
            return self
        return replace(
            self,
            metadata=replace(metadata, total_questions=total_questions, total_marks=total_marks),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Sections
    # ─────────────────────────────────────────────────────────────────────────

    def add_section(self, language: Language = Language.ENGLISH) -> "ExamDraft":
        same_language = sum(1 for s in self.sections if s.language is language)
        section = Section(
            id=TemporaryId.new("section"),
            name=f"Section {same_language + 1}",
            section_order=len(self.sections) + 1,
            language=language,
        )
        return replace(self, sections=self.sections + (section,))

    def remove_section(self, section_id: EntityId) -> "ExamDraft":
        self.get_section(section_id)
        return replace(
            self,
            sections=tuple(s for s in self.sections if s.id != section_id),
            removed=self._with_removed(EntityKind.SECTION, section_id),
        )

    def update_section(self, section_id: EntityId, name: str, value: Any) -> "ExamDraft":
        return self._map_section(
            section_id,
            lambda s: _checked_replace(s, name, value, _SECTION_LOCKED, "section"),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Questions
    # ─────────────────────────────────────────────────────────────────────────

    def add_question(
        self,
        section_id: EntityId,
        question_type: QuestionType = QuestionType.SINGLE,
    ) -> "ExamDraft":
        question = Question.blank(question_type)
        return self._map_section(
            section_id,
            lambda s: replace(s, questions=s.questions + (question,)),
        )

    def remove_question(self, section_id: EntityId, question_id: EntityId) -> "ExamDraft":
        self.get_question(section_id, question_id)
        draft = self._map_section(
            section_id,
            lambda s: replace(s, questions=tuple(q for q in s.questions if q.id != question_id)),
        )
        return replace(draft, removed=self._with_removed(EntityKind.QUESTION, question_id))

    def update_question(
        self,
        section_id: EntityId,
        question_id: EntityId,
        name: str,
        value: Any,
    ) -> "ExamDraft":
        # Changing type keeps existing options so an accidental toggle loses nothing
        return self._map_question(
            section_id,
            question_id,
            lambda q: _checked_replace(q, name, value, _QUESTION_LOCKED, "question"),
        )

    def set_correct_answer(
        self,
        section_id: EntityId,
        question_id: EntityId,
        option_id: EntityId,
        question_type: Optional[QuestionType] = None,
    ) -> "ExamDraft":
        """
        Mark an option as correct.

        single/truefalse: the target becomes the only correct option, siblings
        are cleared in the same update. multiple: only the target toggles.
        """
        self.get_option(section_id, question_id, option_id)
        qtype = QuestionType(question_type) if question_type else self.get_question(section_id, question_id).type

        def update(question: Question) -> Question:
            if qtype.single_answer:
                options = tuple(replace(o, is_correct=o.id == option_id) for o in question.options)
            else:
                options = tuple(
                    replace(o, is_correct=not o.is_correct) if o.id == option_id else o
                    for o in question.options
                )
            return replace(question, options=options)

        return self._map_question(section_id, question_id, update)

    def set_question_image(
        self,
        section_id: EntityId,
        question_id: EntityId,
        image: Optional[ImageAttachment],
    ) -> "ExamDraft":
        """Attach (or clear with None) a question image locally."""
        return self._map_question(
            section_id,
            question_id,
            lambda q: replace(q, image=image, requires_image=q.requires_image and image is None),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Options
    # ─────────────────────────────────────────────────────────────────────────

    def add_option(self, section_id: EntityId, question_id: EntityId) -> "ExamDraft":
        def update(question: Question) -> Question:
            next_order = len(question.options) + 1
            return replace(question, options=question.options + (Option.blank(order=next_order),))

        return self._map_question(section_id, question_id, update)

    def remove_option(self, section_id: EntityId, question_id: EntityId, option_id: EntityId) -> "ExamDraft":
        # Minimum option count is enforced by callers via can_remove_option()
        self.get_option(section_id, question_id, option_id)
        draft = self._map_question(
            section_id,
            question_id,
            lambda q: replace(q, options=tuple(o for o in q.options if o.id != option_id)),
        )
        return replace(draft, removed=self._with_removed(EntityKind.OPTION, option_id))

    def update_option(
        self,
        section_id: EntityId,
        question_id: EntityId,
        option_id: EntityId,
        name: str,
        value: Any,
    ) -> "ExamDraft":
        return self._map_option(
            section_id,
            question_id,
            option_id,
            lambda o: _checked_replace(o, name, value, _OPTION_LOCKED, "option"),
        )

    def set_option_image(
        self,
        section_id: EntityId,
        question_id: EntityId,
        option_id: EntityId,
        image: Optional[ImageAttachment],
    ) -> "ExamDraft":
        return self._map_option(
            section_id,
            question_id,
            option_id,
            lambda o: replace(o, image=image, requires_image=o.requires_image and image is None),
        )

    def ignore_image_requirement(
        self,
        section_id: EntityId,
        question_id: EntityId,
        option_id: Optional[EntityId] = None,
    ) -> "ExamDraft":
        """Dismiss an imported "image required" flag on a question or option."""
        if option_id is None:
            return self._map_question(section_id, question_id, lambda q: replace(q, requires_image=False))
        return self._map_option(section_id, question_id, option_id, lambda o: replace(o, requires_image=False))

    # ─────────────────────────────────────────────────────────────────────────
    # Bulk operations
    # ─────────────────────────────────────────────────────────────────────────

    def import_sections(
        self,
        parsed_sections: Sequence[ParsedSection],
        language: Language = Language.ENGLISH,
    ) -> "ExamDraft":
        """
        Append CSV-parsed sections with fresh temporary ids.

        Hindi imports place text in the *_hi fields and leave the English
        fields empty. Section order continues from the current maximum.
        """
        language = Language(language)
        hindi = language is Language.HINDI
        base_order = max((s.section_order for s in self.sections), default=0)

        converted = []
        for idx, parsed in enumerate(parsed_sections):
            questions = []
            for pq in parsed.questions:
                options = tuple(
                    Option(
                        id=TemporaryId.new("option"),
                        option_text="" if hindi else po.option_text,
                        option_text_hi=po.option_text if hindi else "",
                        is_correct=po.is_correct,
                        option_order=po.option_order,
                        requires_image=po.requires_image,
                    )
                    for po in pq.options
                )
                questions.append(Question(
                    id=TemporaryId.new("question"),
                    type=pq.type,
                    text="" if hindi else pq.text,
                    text_hi=pq.text if hindi else "",
                    marks=pq.marks,
                    negative_marks=pq.negative_marks,
                    explanation="" if hindi else pq.explanation,
                    explanation_hi=pq.explanation if hindi else "",
                    difficulty=pq.difficulty,
                    options=options,
                    requires_image=pq.requires_image,
                ))
            converted.append(Section(
                id=TemporaryId.new("section"),
                name="" if hindi else parsed.name,
                name_hi=parsed.name if hindi else "",
                marks_per_question=parsed.marks_per_question,
                duration=parsed.duration,
                section_order=base_order + idx + 1,
                questions=tuple(questions),
                language=language,
            ))

        return replace(self, sections=self.sections + tuple(converted))

    def apply_id_remap(self, remap: IdRemap) -> "ExamDraft":
        """Replace every recorded temporary id with its server id."""
        if not len(remap):
            return self

        def remap_question(q: Question) -> Question:
            return replace(
                q,
                id=remap.get(q.id),
                options=tuple(replace(o, id=remap.get(o.id)) for o in q.options),
            )

        sections = tuple(
            replace(
                s,
                id=remap.get(s.id),
                questions=tuple(remap_question(q) for q in s.questions),
            )
            for s in self.sections
        )
        exam_id = remap.get(self.exam_id) if self.exam_id is not None else None
        return replace(self, exam_id=exam_id, sections=sections)

    def replace_entity_image(
        self,
        kind: EntityKind,
        entity_id: EntityId,
        image: Optional[ImageAttachment],
    ) -> "ExamDraft":
        """Set the image of a question or option found anywhere in the tree."""
        if kind is EntityKind.QUESTION:
            for section, question in self.iter_questions():
                if question.id == entity_id:
                    return self.set_question_image(section.id, question.id, image)
        elif kind is EntityKind.OPTION:
            for section, question, option in self.iter_options():
                if option.id == entity_id:
                    return self.set_option_image(section.id, question.id, option.id, image)
        else:
            raise DraftError(f"Images are not attached to {kind.value} entities this way")
        raise EntityNotFoundError(f"{kind.value.title()} not found: {entity_id}")

    def without_removed(self, done: Sequence[RemovedEntity]) -> "ExamDraft":
        """Drop deletions the backend has acknowledged."""
        remaining = tuple(r for r in self.removed if r not in done)
        return replace(self, removed=remaining)
