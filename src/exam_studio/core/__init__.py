"""
Exam Studio Core Package

Data models, validation and serialization shared by the API layer, the
editor session and the GUI. Nothing in here performs network I/O.

**RULES:**

1. **Immutable Data Models**
   - Every edit produces a new ExamDraft; nothing is mutated in place

2. **Calculated Counts (Never Stored)**
   - `Section.total_questions` is always `len(questions)`
   - Exam totals are synced explicitly with `with_derived_totals()`

3. **Tagged Identifiers**
   - TemporaryId / PersistedId decide create vs update, never string prefixes
"""

from .models import ExamDraft, ExamMetadata, Option, Question, Section
from .validation import ValidationReport, validate_bilingual, validate_draft, validate_sections

__all__ = [
    "ExamDraft",
    "ExamMetadata",
    "Option",
    "Question",
    "Section",
    "ValidationReport",
    "validate_bilingual",
    "validate_draft",
    "validate_sections",
]
