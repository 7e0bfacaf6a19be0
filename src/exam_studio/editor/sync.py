"""
Module: editor.sync

Purpose:
    Persist an ExamDraft to the backend. Submission is split in two: a pure
    plan built from the draft, and an executor that walks the plan against
    AdminService while recording temporary → server ids.

    Exam → Sections → Questions → Options → Deletions → Images → Verify

Key Functions:
    - build_plan(draft): Ordered steps, deletions and image uploads
    - exam_payload / section_payload / question_payload / option_payload

Key Classes:
    - SyncPlan, SyncStep, ImageUpload: The plan
    - SyncExecutor: Runs a plan, reports progress
    - SubmissionResult / SubmissionOutcome: What happened
    - SyncError: A step failed; carries the partial id remap

Dependencies:
    - concurrent.futures (std): Image upload batch
    - api.admin_service.AdminService

Used By:
    - editor.session.ExamEditorSession

Invariants:
    - A parent is always created before any of its children are sent
    - Progress `completed` never decreases and never exceeds `total`
    - Re-running a plan after a partial failure never creates duplicates,
      provided the partial remap was folded back into the draft
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Callable, Optional

from exam_studio.api.admin_service import AdminService
from exam_studio.api.client import ApiError
from exam_studio.core.models.draft import EntityKind, ExamDraft, RemovedEntity
from exam_studio.core.models.exam import ExamMetadata, ExamStatus, ExamType
from exam_studio.core.models.ids import EntityId, IdRemap, PersistedId, TemporaryId
from exam_studio.core.models.images import PendingImage, RemoteImage
from exam_studio.core.models.options import Option
from exam_studio.core.models.questions import Question
from exam_studio.core.models.sections import Section

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """
    A submission step failed and the remaining steps were skipped.

    Attributes:
        remap: Ids recorded before the failure
        partial_draft: Input draft with `remap` applied and finished
            deletions dropped; retrying from it takes the update branch
        step: Label of the step that failed
        completed: Progress count reached
    """

    def __init__(
        self,
        message: str,
        remap: IdRemap,
        partial_draft: ExamDraft,
        step: str,
        completed: int,
    ):
        super().__init__(message)
        self.remap = remap
        self.partial_draft = partial_draft
        self.step = step
        self.completed = completed


class SubmissionOutcome(str, Enum):
    SUCCESS = "success"
    SUCCESS_WITH_IMAGE_FAILURES = "success_with_image_failures"
    COUNT_MISMATCH = "count_mismatch"


@dataclass(frozen=True)
class SyncProgress:
    completed: int
    total: int
    message: str


ProgressCallback = Callable[[SyncProgress], None]


@dataclass(frozen=True)
class ImageUploadFailure:
    kind: EntityKind
    entity_id: EntityId
    filename: str
    message: str


@dataclass(frozen=True)
class SubmissionResult:
    """
    Result of a completed submission (immutable).

    Attributes:
        draft: Draft with server ids and uploaded images as RemoteImage
        outcome: SubmissionOutcome
        image_failures: Uploads that failed; their images stay pending
        expected_questions: Question count in the submitted draft
        persisted_questions: Count reported by the server, None if unverified
        warnings: Messages for the user (verification, image failures)
    """

    draft: ExamDraft
    outcome: SubmissionOutcome
    image_failures: tuple[ImageUploadFailure, ...] = ()
    expected_questions: int = 0
    persisted_questions: Optional[int] = None
    warnings: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.outcome is SubmissionOutcome.SUCCESS


# ─────────────────────────────────────────────────────────────────────────────
# Payloads
# ─────────────────────────────────────────────────────────────────────────────

_EXAM_PAYLOAD_SKIP = {"logo", "thumbnail", "status_before_anytime"}


def exam_payload(metadata: ExamMetadata) -> dict[str, Any]:
    """
    Form fields for create/update exam.

    Anytime exams send an empty schedule with status "anytime".
    show_in_mock_tests is only kept for past papers.
    """
    payload: dict[str, Any] = {}
    for f in fields(metadata):
        if f.name in _EXAM_PAYLOAD_SKIP:
            continue
        payload[f.name] = getattr(metadata, f.name)

    if metadata.allow_anytime:
        payload["status"] = ExamStatus.ANYTIME
        payload["start_date"] = ""
        payload["end_date"] = ""
    if metadata.exam_type is not ExamType.PAST_PAPER:
        payload["show_in_mock_tests"] = False
    return payload


def _drop_empty(payload: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in payload.items() if v is not None}


def section_payload(section: Section) -> dict[str, Any]:
    return _drop_empty({
        "name": section.name,
        "name_hi": section.name_hi or None,
        "total_questions": section.total_questions,
        "marks_per_question": section.marks_per_question,
        "duration": section.duration or None,
        "section_order": section.section_order,
    })


def question_payload(question: Question) -> dict[str, Any]:
    return _drop_empty({
        "type": question.type,
        "text": question.text,
        "text_hi": question.text_hi or None,
        "marks": question.marks,
        "negative_marks": question.negative_marks,
        "explanation": question.explanation,
        "explanation_hi": question.explanation_hi or None,
        "difficulty": question.difficulty,
    })


def option_payload(option: Option) -> dict[str, Any]:
    return _drop_empty({
        "option_text": option.option_text,
        "option_text_hi": option.option_text_hi or None,
        "is_correct": option.is_correct,
        "option_order": option.option_order,
    })


# ─────────────────────────────────────────────────────────────────────────────
# Plan
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SyncStep:
    """
    One create-or-update call.

    `parent_id` is the exam id for sections, the section id for questions
    and the question id for options; it is resolved through the IdRemap
    when the step runs.
    """

    kind: EntityKind
    entity_id: EntityId
    parent_id: Optional[EntityId]
    payload: dict[str, Any]
    label: str
    files: dict[str, PendingImage] = field(default_factory=dict)
    exam_id: Optional[EntityId] = None

    @property
    def is_create(self) -> bool:
        return isinstance(self.entity_id, TemporaryId)


@dataclass(frozen=True)
class ImageUpload:
    kind: EntityKind
    entity_id: EntityId
    image: PendingImage


@dataclass(frozen=True)
class SyncPlan:
    steps: tuple[SyncStep, ...]
    deletions: tuple[RemovedEntity, ...]
    uploads: tuple[ImageUpload, ...]
    expected_questions: int

    @property
    def total(self) -> int:
        return len(self.steps)


_DELETE_ORDER = {EntityKind.OPTION: 0, EntityKind.QUESTION: 1, EntityKind.SECTION: 2}


def _question_label(question: Question) -> str:
    return f'Question "{question.text[:40] or "Untitled"}"'


def build_plan(draft: ExamDraft) -> SyncPlan:
    """
    Build the submission plan for a draft.

    The draft must have an exam_id (use a TemporaryId for a new exam).
    Steps are depth-first: each section is followed by its questions, each
    question by its options.
    """
    if draft.exam_id is None:
        raise ValueError("Draft needs an exam_id (TemporaryId for new exams) before planning")

    media = {
        name: img for name, img in (("logo", draft.metadata.logo), ("thumbnail", draft.metadata.thumbnail))
        if isinstance(img, PendingImage)
    }
    steps = [SyncStep(
        kind=EntityKind.EXAM,
        entity_id=draft.exam_id,
        parent_id=None,
        payload=exam_payload(draft.metadata),
        label="Exam",
        files=media,
    )]
    uploads: list[ImageUpload] = []

    for section in draft.sections:
        steps.append(SyncStep(
            EntityKind.SECTION, section.id, draft.exam_id, section_payload(section),
            f'Section "{section.display_name or section.section_order}"',
        ))
        for question in section.questions:
            steps.append(SyncStep(
                EntityKind.QUESTION, question.id, section.id, question_payload(question),
                _question_label(question), exam_id=draft.exam_id,
            ))
            if isinstance(question.image, PendingImage):
                uploads.append(ImageUpload(EntityKind.QUESTION, question.id, question.image))
            for option in question.options:
                steps.append(SyncStep(
                    EntityKind.OPTION, option.id, question.id, option_payload(option),
                    f"Option {option.option_order}",
                ))
                if isinstance(option.image, PendingImage):
                    uploads.append(ImageUpload(EntityKind.OPTION, option.id, option.image))

    deletions = tuple(sorted(draft.removed, key=lambda r: _DELETE_ORDER[r.kind]))
    return SyncPlan(
        steps=tuple(steps),
        deletions=deletions,
        uploads=tuple(uploads),
        expected_questions=draft.question_count,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Executor
# ─────────────────────────────────────────────────────────────────────────────

class SyncExecutor:
    """
    Runs a SyncPlan against AdminService.

    Args:
        admin: Service used for every call
        upload_workers: Thread pool size for the image batch
        progress: Optional callback, invoked on the calling thread

    Example:
        >>> executor = SyncExecutor(admin, upload_workers=4)
        >>> result = executor.run(draft)  # doctest: +SKIP
        >>> result.outcome
        <SubmissionOutcome.SUCCESS: 'success'>
    """

    def __init__(
        self,
        admin: AdminService,
        upload_workers: int = 4,
        progress: Optional[ProgressCallback] = None,
    ):
        self.admin = admin
        self.upload_workers = max(1, upload_workers)
        self._progress = progress

    def _report(self, completed: int, total: int, message: str) -> None:
        logger.debug(f"[{completed}/{total}] {message}")
        if self._progress is not None:
            self._progress(SyncProgress(completed, total, message))

    def run(self, draft: ExamDraft) -> SubmissionResult:
        """
        Submit a draft.

        Raises:
            SyncError: If any exam/section/question/option call or deletion
                fails. Image upload and verification failures are not raised.
        """
        if draft.exam_id is None:
            draft = replace(draft, exam_id=TemporaryId.new("exam"))

        plan = build_plan(draft)
        remap = IdRemap()
        total = plan.total
        completed = 0
        deleted: list[RemovedEntity] = []
        exam_record: dict[str, Any] = {}
        current = "Exam"

        self._report(0, total, "Saving exam...")
        try:
            for step in plan.steps:
                current = step.label
                record = self._run_step(step, remap)
                if step.kind is EntityKind.EXAM:
                    exam_record = record
                completed += 1
                verb = "created" if step.is_create else "saved"
                self._report(completed, total, f"{step.label} {verb}")

            for removal in plan.deletions:
                current = f"Delete {removal.kind.value} {removal.id}"
                self._delete(removal)
                deleted.append(removal)
        except ApiError as e:
            partial = draft.apply_id_remap(remap).without_removed(deleted)
            logger.error(f"Submission stopped at {current}: {e}")
            raise SyncError(
                f"{current} failed: {e.message}",
                remap=remap,
                partial_draft=partial,
                step=current,
                completed=completed,
            ) from e

        result_draft = draft.apply_id_remap(remap).without_removed(deleted)
        result_draft = _with_exam_media(result_draft, exam_record)
        warnings: list[str] = []

        result_draft, failures = self._upload_images(plan.uploads, remap, result_draft, total)
        if failures:
            warnings.append(
                f"{len(failures)} image upload(s) failed; the images stay attached and "
                f"will be retried on the next save"
            )

        persisted = self._verify(result_draft, total)
        if persisted is None:
            warnings.append("Could not verify the saved question count")
        elif persisted != plan.expected_questions:
            warnings.append(
                f"Server reports {persisted} questions but {plan.expected_questions} were saved; "
                f"save again to repair"
            )

        if persisted is not None and persisted != plan.expected_questions:
            outcome = SubmissionOutcome.COUNT_MISMATCH
        elif failures:
            outcome = SubmissionOutcome.SUCCESS_WITH_IMAGE_FAILURES
        else:
            outcome = SubmissionOutcome.SUCCESS

        logger.info(
            f"Submission finished: {outcome.value} "
            f"({completed} steps, {len(deleted)} deletions, {len(failures)} image failures)"
        )
        return SubmissionResult(
            draft=result_draft,
            outcome=outcome,
            image_failures=tuple(failures),
            expected_questions=plan.expected_questions,
            persisted_questions=persisted,
            warnings=tuple(warnings),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Steps
    # ─────────────────────────────────────────────────────────────────────────

    def _run_step(self, step: SyncStep, remap: IdRemap) -> dict[str, Any]:
        admin = self.admin
        payload = dict(step.payload)

        if step.kind is EntityKind.EXAM:
            files = step.files
            if step.is_create:
                record = admin.create_exam(payload, files.get("logo"), files.get("thumbnail"))
            else:
                record = admin.update_exam(str(step.entity_id), payload, files.get("logo"), files.get("thumbnail"))

        elif step.kind is EntityKind.SECTION:
            if step.is_create:
                payload["exam_id"] = str(remap.resolve(step.parent_id))
                record = admin.create_section(payload)
            else:
                record = admin.update_section(str(step.entity_id), payload)

        elif step.kind is EntityKind.QUESTION:
            if step.is_create:
                payload["section_id"] = str(remap.resolve(step.parent_id))
                if step.exam_id is not None:
                    payload["exam_id"] = str(remap.resolve(step.exam_id))
                record = admin.create_question(payload)
            else:
                record = admin.update_question(str(step.entity_id), payload)

        else:
            if step.is_create:
                payload["question_id"] = str(remap.resolve(step.parent_id))
                record = admin.create_option(payload)
            else:
                record = admin.update_option(str(step.entity_id), payload)

        if step.is_create:
            remap.record(step.entity_id, PersistedId(str(record["id"])))
        return record or {}

    def _delete(self, removal: RemovedEntity) -> None:
        delete = {
            EntityKind.SECTION: self.admin.delete_section,
            EntityKind.QUESTION: self.admin.delete_question,
            EntityKind.OPTION: self.admin.delete_option,
        }[removal.kind]
        try:
            delete(str(removal.id))
        except ApiError as e:
            if e.status_code != 404:
                raise
            logger.warning(f"{removal.kind.value} {removal.id} was already deleted")

    def _upload_one(self, upload: ImageUpload, persisted: PersistedId) -> str:
        if upload.kind is EntityKind.QUESTION:
            return self.admin.upload_question_image(str(persisted), upload.image)
        return self.admin.upload_option_image(str(persisted), upload.image)

    def _upload_images(
        self,
        uploads: tuple[ImageUpload, ...],
        remap: IdRemap,
        draft: ExamDraft,
        total: int,
    ) -> tuple[ExamDraft, list[ImageUploadFailure]]:
        if not uploads:
            return draft, []

        self._report(total, total, f"Uploading {len(uploads)} image(s)...")
        failures: list[ImageUploadFailure] = []
        done = 0

        with ThreadPoolExecutor(max_workers=self.upload_workers) as pool:
            futures = {}
            for upload in uploads:
                persisted = remap.resolve(upload.entity_id)
                futures[pool.submit(self._upload_one, upload, persisted)] = (upload, persisted)

            for future in as_completed(futures):
                upload, persisted = futures[future]
                done += 1
                try:
                    url = future.result()
                except ApiError as e:
                    logger.warning(f"Image upload failed for {upload.kind.value} {persisted}: {e}")
                    failures.append(ImageUploadFailure(
                        upload.kind, persisted, upload.image.filename, e.message,
                    ))
                else:
                    draft = draft.replace_entity_image(upload.kind, persisted, RemoteImage(url))
                self._report(total, total, f"Uploaded image {done}/{len(uploads)}")

        return draft, failures

    def _verify(self, draft: ExamDraft, total: int) -> Optional[int]:
        self._report(total, total, "Verifying saved questions...")
        try:
            structure = self.admin.get_exam_structure(str(draft.exam_id))
        except ApiError as e:
            logger.warning(f"Verification fetch failed: {e}")
            return None
        return sum(len(section.get("questions") or []) for section in structure)


def _with_exam_media(draft: ExamDraft, record: dict[str, Any]) -> ExamDraft:
    """Swap uploaded logo/thumbnail files for the URLs the server returned."""
    updates = {}
    for name in ("logo", "thumbnail"):
        url = record.get(f"{name}_url")
        if url and isinstance(getattr(draft.metadata, name), PendingImage):
            updates[name] = RemoteImage(url)
    if not updates:
        return draft
    return replace(draft, metadata=replace(draft.metadata, **updates))
