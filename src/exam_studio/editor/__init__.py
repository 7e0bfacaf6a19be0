"""
Editor Package

Editing session, submission protocol, autosave and configuration.
"""

from .config import EditorConfig
from .autosave import DraftSnapshotStore, snapshot_key
from .sync import (
    ImageUploadFailure,
    SubmissionOutcome,
    SubmissionResult,
    SyncError,
    SyncExecutor,
    SyncPlan,
    SyncProgress,
    build_plan,
)
from .session import (
    ExamEditorSession,
    ImageUploadError,
    SubmissionBlockedError,
    SubmissionInProgressError,
)

__all__ = [
    "EditorConfig",
    "DraftSnapshotStore",
    "snapshot_key",
    "ImageUploadFailure",
    "SubmissionOutcome",
    "SubmissionResult",
    "SyncError",
    "SyncExecutor",
    "SyncPlan",
    "SyncProgress",
    "build_plan",
    "ExamEditorSession",
    "ImageUploadError",
    "SubmissionBlockedError",
    "SubmissionInProgressError",
]
