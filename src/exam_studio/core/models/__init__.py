"""
Core Models Package

Immutable, validated data models for the exam being edited.

**DESIGN NOTES:**

All models in this package are frozen dataclasses. Editing an exam means
calling an ExamDraft method and keeping the draft it returns, so:
1. Undo/autosave can hold any previous draft without copying
2. Drafts are safe to hand to the submission worker thread
3. Derived values (question counts, totals) are calculated, never stored

**IDENTIFIERS:**

| Id | Meaning | Submission step |
|----|---------|-----------------|
| `TemporaryId` | Created locally, unknown to the server | create |
| `PersistedId` | Assigned by the server | update |
"""

from .ids import EntityId, IdRemap, PersistedId, TemporaryId, UnresolvedIdError, is_persisted
from .images import ImageAttachment, ImageAttachmentError, PendingImage, RemoteImage, load_pending_image
from .options import Option
from .questions import Question, QuestionDifficulty, QuestionType
from .sections import Language, Section
from .exam import ExamMetadata, ExamStatus, ExamType
from .imports import ParsedOption, ParsedQuestion, ParsedSection
from .draft import DraftError, EntityKind, EntityNotFoundError, ExamDraft, RemovedEntity

__all__ = [
    "EntityId",
    "IdRemap",
    "PersistedId",
    "TemporaryId",
    "UnresolvedIdError",
    "is_persisted",
    "ImageAttachment",
    "ImageAttachmentError",
    "PendingImage",
    "RemoteImage",
    "load_pending_image",
    "Option",
    "Question",
    "QuestionDifficulty",
    "QuestionType",
    "Language",
    "Section",
    "ExamMetadata",
    "ExamStatus",
    "ExamType",
    "ParsedOption",
    "ParsedQuestion",
    "ParsedSection",
    "DraftError",
    "EntityKind",
    "EntityNotFoundError",
    "ExamDraft",
    "RemovedEntity",
]
