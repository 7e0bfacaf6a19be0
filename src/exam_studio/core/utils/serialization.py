"""
Serialization Utilities

To/from dict conversion for ExamDraft.

Two directions are supported:

1. **Snapshots** (`serialize_draft` / `deserialize_draft`)
   - Lossless round-trip used by the autosave store
   - Ids keep their temporary/persisted tag
   - Carries SNAPSHOT_SCHEMA_VERSION; other versions are rejected

2. **Server payloads** (`draft_from_server`)
   - Builds a draft from the admin exam + sections-questions responses
   - Every id is persisted, every image is remote
   - Derived counts sent by the server (section total_questions) are ignored
"""

from __future__ import annotations

from dataclasses import fields
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional

from ..models.draft import EntityKind, ExamDraft, RemovedEntity
from ..models.exam import ExamMetadata
from ..models.ids import PersistedId, parse_entity_id, serialize_entity_id
from ..models.images import ImageAttachment, PendingImage, RemoteImage
from ..models.options import Option
from ..models.questions import Question
from ..models.sections import Language, Section


SNAPSHOT_SCHEMA_VERSION = 1


class SnapshotVersionError(ValueError):
    """Raised when a snapshot was written by a different schema version."""

    def __init__(self, found: Any):
        super().__init__(
            f"Snapshot schema version {found!r} does not match {SNAPSHOT_SCHEMA_VERSION}"
        )
        self.found = found


# ─────────────────────────────────────────────────────────────────────────────
# Images
# ─────────────────────────────────────────────────────────────────────────────

def serialize_image(image: Optional[ImageAttachment]) -> Optional[dict[str, Any]]:
    if image is None:
        return None
    if isinstance(image, RemoteImage):
        return {"remote": image.url}
    return {
        "pending": {
            "path": str(image.path),
            "width": image.width,
            "height": image.height,
            "format": image.format,
        }
    }


def deserialize_image(data: Optional[dict[str, Any]]) -> Optional[ImageAttachment]:
    if not data:
        return None
    if "remote" in data:
        return RemoteImage(data["remote"])
    pending = data["pending"]
    return PendingImage(
        path=Path(pending["path"]),
        width=int(pending["width"]),
        height=int(pending["height"]),
        format=pending["format"],
    )


# ─────────────────────────────────────────────────────────────────────────────
# Snapshot serialization
# ─────────────────────────────────────────────────────────────────────────────

_IMAGE_FIELDS = {"image", "logo", "thumbnail"}


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, tuple):
        return list(value)
    return value


def _flat_fields(obj: Any, skip: Iterable[str] = ()) -> dict[str, Any]:
    skip = set(skip)
    out: dict[str, Any] = {}
    for f in fields(obj):
        if f.name in skip:
            continue
        value = getattr(obj, f.name)
        out[f.name] = serialize_image(value) if f.name in _IMAGE_FIELDS else _plain(value)
    return out


def serialize_option(option: Option) -> dict[str, Any]:
    data = _flat_fields(option, skip={"id"})
    data["id"] = serialize_entity_id(option.id)
    return data


def serialize_question(question: Question) -> dict[str, Any]:
    data = _flat_fields(question, skip={"id", "options"})
    data["id"] = serialize_entity_id(question.id)
    data["options"] = [serialize_option(o) for o in question.options]
    return data


def serialize_section(section: Section) -> dict[str, Any]:
    """
    Serialize a Section.

    Note:
        total_questions is NOT included - it's always calculated on load.
    """
    data = _flat_fields(section, skip={"id", "questions"})
    data["id"] = serialize_entity_id(section.id)
    data["questions"] = [serialize_question(q) for q in section.questions]
    return data


def serialize_draft(draft: ExamDraft) -> dict[str, Any]:
    """
    Serialize a draft to a JSON-safe snapshot dict.

    Args:
        draft: Draft to snapshot

    Returns:
        Dictionary with schema_version, exam_id, metadata, sections, removed
    """
    return {
        "schema_version": SNAPSHOT_SCHEMA_VERSION,
        "exam_id": serialize_entity_id(draft.exam_id) if draft.exam_id is not None else None,
        "metadata": _flat_fields(draft.metadata),
        "sections": [serialize_section(s) for s in draft.sections],
        "removed": [
            {"kind": r.kind.value, "id": r.id.value} for r in draft.removed
        ],
    }


def _deserialize_option(data: dict[str, Any]) -> Option:
    return Option(
        id=parse_entity_id(data["id"]),
        option_text=data.get("option_text", ""),
        is_correct=bool(data.get("is_correct", False)),
        option_order=int(data.get("option_order", 1)),
        option_text_hi=data.get("option_text_hi", ""),
        image=deserialize_image(data.get("image")),
        requires_image=bool(data.get("requires_image", False)),
    )


def _deserialize_question(data: dict[str, Any]) -> Question:
    return Question(
        id=parse_entity_id(data["id"]),
        type=data.get("type", "single"),
        text=data.get("text", ""),
        marks=data.get("marks", 1),
        negative_marks=data.get("negative_marks", 0),
        explanation=data.get("explanation", ""),
        difficulty=data.get("difficulty", "medium"),
        options=tuple(_deserialize_option(o) for o in data.get("options", [])),
        image=deserialize_image(data.get("image")),
        requires_image=bool(data.get("requires_image", False)),
        text_hi=data.get("text_hi", ""),
        explanation_hi=data.get("explanation_hi", ""),
    )


def _deserialize_section(data: dict[str, Any]) -> Section:
    return Section(
        id=parse_entity_id(data["id"]),
        name=data.get("name", ""),
        marks_per_question=data.get("marks_per_question", 1),
        duration=int(data.get("duration", 0)),
        section_order=int(data.get("section_order", 1)),
        questions=tuple(_deserialize_question(q) for q in data.get("questions", [])),
        language=data.get("language", Language.ENGLISH.value),
        name_hi=data.get("name_hi", ""),
    )


def _deserialize_metadata(data: dict[str, Any]) -> ExamMetadata:
    known = {f.name for f in fields(ExamMetadata)}
    kwargs = {k: v for k, v in data.items() if k in known}
    for name in _IMAGE_FIELDS & kwargs.keys():
        kwargs[name] = deserialize_image(kwargs[name])
    if kwargs.get("status_before_anytime") is None:
        kwargs.pop("status_before_anytime", None)
    return ExamMetadata(**kwargs)


def deserialize_draft(data: dict[str, Any]) -> ExamDraft:
    """
    Rebuild a draft from `serialize_draft` output.

    Raises:
        SnapshotVersionError: If schema_version does not match
        KeyError / ValueError: If the snapshot is malformed
    """
    version = data.get("schema_version")
    if version != SNAPSHOT_SCHEMA_VERSION:
        raise SnapshotVersionError(version)

    raw_exam_id = data.get("exam_id")
    return ExamDraft(
        exam_id=parse_entity_id(raw_exam_id) if raw_exam_id else None,
        metadata=_deserialize_metadata(data.get("metadata", {})),
        sections=tuple(_deserialize_section(s) for s in data.get("sections", [])),
        removed=tuple(
            RemovedEntity(EntityKind(r["kind"]), PersistedId(r["id"]))
            for r in data.get("removed", [])
        ),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Server payloads
# ─────────────────────────────────────────────────────────────────────────────

def _value(data: dict[str, Any], key: str, default: Any) -> Any:
    # Server sends null for unset columns
    value = data.get(key)
    return default if value is None else value


def _remote(url: Optional[str]) -> Optional[RemoteImage]:
    return RemoteImage(url) if url else None


def metadata_from_server(exam: dict[str, Any]) -> ExamMetadata:
    """Build ExamMetadata from an admin exam record."""
    defaults = ExamMetadata()
    allow_anytime = bool(_value(exam, "allow_anytime", False))
    return ExamMetadata(
        title=_value(exam, "title", ""),
        description=_value(exam, "description", ""),
        duration=int(_value(exam, "duration", defaults.duration)),
        total_marks=_value(exam, "total_marks", defaults.total_marks),
        total_questions=int(_value(exam, "total_questions", defaults.total_questions)),
        category=_value(exam, "category", ""),
        category_id=_value(exam, "category_id", ""),
        subcategory=_value(exam, "subcategory", ""),
        subcategory_id=_value(exam, "subcategory_id", ""),
        difficulty=_value(exam, "difficulty", ""),
        difficulty_id=_value(exam, "difficulty_id", ""),
        slug=_value(exam, "slug", ""),
        status="anytime" if allow_anytime else _value(exam, "status", defaults.status.value),
        start_date=None if allow_anytime else exam.get("start_date"),
        end_date=None if allow_anytime else exam.get("end_date"),
        pass_percentage=_value(exam, "pass_percentage", defaults.pass_percentage),
        is_free=bool(_value(exam, "is_free", True)),
        price=_value(exam, "price", 0),
        negative_marking=bool(_value(exam, "negative_marking", False)),
        negative_mark_value=_value(exam, "negative_mark_value", 0),
        is_published=bool(_value(exam, "is_published", False)),
        allow_anytime=allow_anytime,
        exam_type=_value(exam, "exam_type", defaults.exam_type.value),
        show_in_mock_tests=bool(_value(exam, "show_in_mock_tests", False)),
        syllabus=tuple(_value(exam, "syllabus", ())),
        logo=_remote(exam.get("logo_url")),
        thumbnail=_remote(exam.get("thumbnail_url")),
    )


def _option_from_server(data: dict[str, Any]) -> Option:
    return Option(
        id=PersistedId(str(data["id"])),
        option_text=_value(data, "option_text", ""),
        is_correct=bool(_value(data, "is_correct", False)),
        option_order=int(_value(data, "option_order", 1)),
        option_text_hi=_value(data, "option_text_hi", ""),
        image=_remote(data.get("image_url")),
    )


def _question_from_server(data: dict[str, Any]) -> Question:
    return Question(
        id=PersistedId(str(data["id"])),
        type=_value(data, "type", "single"),
        text=_value(data, "text", ""),
        marks=_value(data, "marks", 1),
        negative_marks=_value(data, "negative_marks", 0),
        explanation=_value(data, "explanation", ""),
        difficulty=_value(data, "difficulty", "medium"),
        options=tuple(_option_from_server(o) for o in _value(data, "options", [])),
        image=_remote(data.get("image_url")),
        text_hi=_value(data, "text_hi", ""),
        explanation_hi=_value(data, "explanation_hi", ""),
    )


def section_from_server(data: dict[str, Any]) -> Section:
    """
    Build a Section from a sections-questions record.

    Sections carrying a Hindi name are loaded as Hindi sections.
    """
    name_hi = _value(data, "name_hi", "")
    return Section(
        id=PersistedId(str(data["id"])),
        name=_value(data, "name", ""),
        marks_per_question=_value(data, "marks_per_question", 1),
        duration=int(_value(data, "duration", 0)),
        section_order=int(_value(data, "section_order", 1)),
        questions=tuple(_question_from_server(q) for q in _value(data, "questions", [])),
        language=Language.HINDI if name_hi else Language.ENGLISH,
        name_hi=name_hi,
    )


def draft_from_server(exam: dict[str, Any], sections: Iterable[dict[str, Any]]) -> ExamDraft:
    """
    Build a draft from the admin exam record and its sections.

    Args:
        exam: Exam record (must include "id")
        sections: Records from the sections-questions endpoint

    Returns:
        ExamDraft with every id persisted, sections sorted by section_order
    """
    built = sorted((section_from_server(s) for s in sections), key=lambda s: s.section_order)
    return ExamDraft(
        exam_id=PersistedId(str(exam["id"])),
        metadata=metadata_from_server(exam),
        sections=tuple(built),
    )
