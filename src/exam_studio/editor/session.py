"""
Module: editor.session

Purpose:
    ExamEditorSession owns the current ExamDraft and everything that needs
    the network while editing: loading an exam, uploading or removing
    images on persisted entities, and submitting as draft or published.

Key Classes:
    - ExamEditorSession: The editing session
    - SubmissionBlockedError: Publish refused by validation
    - SubmissionInProgressError: A submission is already running
    - ImageUploadError: Immediate image upload/removal failed

Dependencies:
    - editor.sync: Submission protocol
    - editor.autosave: Crash recovery snapshots
    - core.validation: Publish gate

Used By:
    - gui.editor_window

Invariants:
    - At most one submission runs per session
    - A failed image upload or removal leaves the draft unchanged
    - Entities with temporary ids never trigger image network calls
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional

from exam_studio.api.admin_service import AdminService
from exam_studio.api.client import ApiError
from exam_studio.core.models.draft import EntityKind, ExamDraft
from exam_studio.core.models.ids import EntityId, PersistedId
from exam_studio.core.models.images import RemoteImage, load_pending_image
from exam_studio.core.utils.serialization import draft_from_server
from exam_studio.core.validation import ValidationReport, validate_bilingual, validate_draft

from .autosave import NEW_EXAM_KEY, DraftSnapshotStore, snapshot_key
from .sync import ProgressCallback, SubmissionResult, SyncError, SyncExecutor

logger = logging.getLogger(__name__)

DraftListener = Callable[[ExamDraft], None]


class SubmissionBlockedError(Exception):
    """Publishing was refused because the draft has validation violations."""

    def __init__(self, report: ValidationReport):
        count = len(report.violations)
        super().__init__(f"Cannot publish: {count} issue(s) must be fixed first")
        self.report = report


class SubmissionInProgressError(Exception):
    """Raised when a second submission starts before the first finishes."""
    pass


class ImageUploadError(Exception):
    """Immediate image upload or removal failed; the draft was not changed."""

    def __init__(self, kind: EntityKind, entity_id: EntityId, cause: ApiError):
        super().__init__(f"Image update failed for {kind.value} {entity_id}: {cause.message}")
        self.kind = kind
        self.entity_id = entity_id
        self.cause = cause


class ExamEditorSession:
    """
    One editing session over one exam.

    Args:
        admin: Service for loading, image calls and submission
        autosave: Optional snapshot store
        upload_workers: Thread pool size for the submission image batch

    Example:
        >>> session = ExamEditorSession(admin)
        >>> session.edit(lambda d: d.add_section())
        >>> result = session.save_draft()  # doctest: +SKIP
    """

    def __init__(
        self,
        admin: AdminService,
        autosave: Optional[DraftSnapshotStore] = None,
        upload_workers: int = 4,
        draft: Optional[ExamDraft] = None,
    ):
        self.admin = admin
        self.autosave = autosave
        self.upload_workers = upload_workers
        self._draft = draft or ExamDraft()
        self._submit_lock = threading.Lock()
        self._listeners: list[DraftListener] = []

    # ─────────────────────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def draft(self) -> ExamDraft:
        return self._draft

    @property
    def is_submitting(self) -> bool:
        return self._submit_lock.locked()

    def add_listener(self, listener: DraftListener) -> None:
        self._listeners.append(listener)

    def _set_draft(self, draft: ExamDraft) -> None:
        if draft is self._draft:
            return
        self._draft = draft
        for listener in self._listeners:
            listener(draft)

    def edit(self, mutation: Callable[[ExamDraft], ExamDraft]) -> ExamDraft:
        """Apply a pure draft mutation and keep its result."""
        self._set_draft(mutation(self._draft))
        return self._draft

    def validate(self, bilingual: bool = False) -> ValidationReport:
        return validate_bilingual(self._draft) if bilingual else validate_draft(self._draft)

    # ─────────────────────────────────────────────────────────────────────────
    # Loading
    # ─────────────────────────────────────────────────────────────────────────

    def new(self) -> ExamDraft:
        """Start an empty exam."""
        self._set_draft(ExamDraft())
        return self._draft

    def load(self, exam_id: str | PersistedId) -> ExamDraft:
        """
        Fetch an exam with its sections, questions and options.

        Raises:
            ApiError: If either fetch fails; the current draft is kept
        """
        exam_id = str(exam_id)
        exam = self.admin.get_exam(exam_id)
        structure = self.admin.get_exam_structure(exam_id)
        exam.setdefault("id", exam_id)
        draft = draft_from_server(exam, structure)
        logger.info(
            f"Loaded exam {exam_id}: {len(draft.sections)} sections, {draft.question_count} questions"
        )
        self._set_draft(draft)
        return draft

    def recoverable_key(self, exam_id: str | PersistedId | None = None) -> Optional[str]:
        """Snapshot key for `exam_id` (or the unsaved exam) when a snapshot is on disk."""
        if self.autosave is None:
            return None
        key = NEW_EXAM_KEY if exam_id is None else snapshot_key(PersistedId(str(exam_id)))
        return key if self.autosave.exists(key) else None

    def recover(self, key: str | PersistedId = NEW_EXAM_KEY) -> Optional[ExamDraft]:
        """Replace the draft with an autosaved snapshot, if one exists."""
        if self.autosave is None:
            return None
        if isinstance(key, PersistedId):
            key = snapshot_key(key)
        snapshot = self.autosave.load(key)
        if snapshot is not None:
            logger.info(f"Recovered autosaved draft {key!r}")
            self._set_draft(snapshot)
        return snapshot

    def autosave_now(self) -> Optional[Path]:
        if self.autosave is None or self.is_submitting:
            return None
        return self.autosave.save(self._draft)

    # ─────────────────────────────────────────────────────────────────────────
    # Images
    # ─────────────────────────────────────────────────────────────────────────

    def attach_question_image(
        self,
        section_id: EntityId,
        question_id: EntityId,
        path: Path | str,
    ) -> ExamDraft:
        """
        Attach an image file to a question.

        Persisted questions upload immediately; new questions keep the file
        pending until the next submission.

        Raises:
            ImageAttachmentError: If the file is not a readable image
            ImageUploadError: If the immediate upload fails
        """
        self._draft.get_question(section_id, question_id)
        pending = load_pending_image(path)
        image = pending
        if isinstance(question_id, PersistedId):
            try:
                url = self.admin.upload_question_image(str(question_id), pending)
            except ApiError as e:
                raise ImageUploadError(EntityKind.QUESTION, question_id, e) from e
            image = RemoteImage(url)
        return self.edit(lambda d: d.set_question_image(section_id, question_id, image))

    def attach_option_image(
        self,
        section_id: EntityId,
        question_id: EntityId,
        option_id: EntityId,
        path: Path | str,
    ) -> ExamDraft:
        self._draft.get_option(section_id, question_id, option_id)
        pending = load_pending_image(path)
        image = pending
        if isinstance(option_id, PersistedId):
            try:
                url = self.admin.upload_option_image(str(option_id), pending)
            except ApiError as e:
                raise ImageUploadError(EntityKind.OPTION, option_id, e) from e
            image = RemoteImage(url)
        return self.edit(lambda d: d.set_option_image(section_id, question_id, option_id, image))

    def clear_question_image(self, section_id: EntityId, question_id: EntityId) -> ExamDraft:
        question = self._draft.get_question(section_id, question_id)
        if isinstance(question_id, PersistedId) and isinstance(question.image, RemoteImage):
            try:
                self.admin.remove_question_image(str(question_id))
            except ApiError as e:
                raise ImageUploadError(EntityKind.QUESTION, question_id, e) from e
        return self.edit(lambda d: d.set_question_image(section_id, question_id, None))

    def clear_option_image(
        self,
        section_id: EntityId,
        question_id: EntityId,
        option_id: EntityId,
    ) -> ExamDraft:
        option = self._draft.get_option(section_id, question_id, option_id)
        if isinstance(option_id, PersistedId) and isinstance(option.image, RemoteImage):
            try:
                self.admin.remove_option_image(str(option_id))
            except ApiError as e:
                raise ImageUploadError(EntityKind.OPTION, option_id, e) from e
        return self.edit(lambda d: d.set_option_image(section_id, question_id, option_id, None))

    def attach_exam_media(self, kind: str, path: Path | str) -> ExamDraft:
        """Attach a logo or thumbnail; sent with the next exam save."""
        pending = load_pending_image(path)
        return self.edit(lambda d: d.set_exam_media(kind, pending))

    # ─────────────────────────────────────────────────────────────────────────
    # Submission
    # ─────────────────────────────────────────────────────────────────────────

    def save_draft(self, progress: Optional[ProgressCallback] = None) -> SubmissionResult:
        """Submit with is_published forced off; validation does not gate."""
        return self._submit(False, progress)

    def publish(
        self,
        bilingual: bool = False,
        progress: Optional[ProgressCallback] = None,
    ) -> SubmissionResult:
        """
        Submit as published.

        Raises:
            SubmissionBlockedError: If validation reports any violation; no
                network call is made
            SubmissionInProgressError: If a submission is already running
            SyncError: If a step fails; the session keeps the partial ids
        """
        report = self.validate(bilingual)
        if not report.is_valid:
            logger.info(f"Publish blocked by {len(report.violations)} validation issue(s)")
            raise SubmissionBlockedError(report)
        return self._submit(True, progress)

    def _submit(self, publish: bool, progress: Optional[ProgressCallback]) -> SubmissionResult:
        if not self._submit_lock.acquire(blocking=False):
            raise SubmissionInProgressError("A submission is already in progress")
        try:
            before_key = snapshot_key(self._draft.exam_id)
            draft = replace(self._draft, metadata=replace(self._draft.metadata, is_published=publish))
            executor = SyncExecutor(self.admin, upload_workers=self.upload_workers, progress=progress)
            try:
                result = executor.run(draft)
            except SyncError as e:
                self._set_draft(e.partial_draft)
                raise

            self._set_draft(result.draft)
            if self.autosave is not None:
                self.autosave.discard(before_key)
                self.autosave.discard(snapshot_key(result.draft.exam_id))
            for warning in result.warnings:
                logger.warning(warning)
            return result
        finally:
            self._submit_lock.release()
