"""
Module: editor.autosave

Purpose:
    Draft snapshots on disk, one file per exam. A snapshot lets the editor
    recover unsaved work after a crash; it is discarded once the exam is
    submitted successfully.

Key Classes:
    - DraftSnapshotStore: save / load / discard / exists

Dependencies:
    - storage.file_locking: portalocker-guarded JSON
    - core.utils.serialization: Snapshot format and schema version

Used By:
    - editor.session.ExamEditorSession
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from exam_studio.core.models.draft import ExamDraft
from exam_studio.core.models.ids import EntityId
from exam_studio.core.utils.serialization import (
    SnapshotVersionError,
    deserialize_draft,
    serialize_draft,
)
from exam_studio.storage.file_locking import locked_read_json, locked_write_json

logger = logging.getLogger(__name__)

NEW_EXAM_KEY = "new"

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def snapshot_key(exam_id: Optional[EntityId]) -> str:
    """Snapshot key for an exam id; unsaved exams share NEW_EXAM_KEY."""
    if exam_id is None or not exam_id.is_persisted:
        return NEW_EXAM_KEY
    return str(exam_id)


class DraftSnapshotStore:
    """
    Directory of draft snapshots keyed by exam id.

    Example:
        >>> store = DraftSnapshotStore(tmp_path)
        >>> store.save(draft)
        >>> store.load(snapshot_key(draft.exam_id)) == draft
        True
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{_UNSAFE.sub('_', key)}.json"

    def exists(self, key: str) -> bool:
        return self.path_for(key).exists()

    def save(self, draft: ExamDraft, key: Optional[str] = None) -> Path:
        key = key or snapshot_key(draft.exam_id)
        path = self.path_for(key)
        locked_write_json(path, {
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "snapshot": serialize_draft(draft),
        })
        logger.debug(f"Autosaved draft to {path.name}")
        return path

    def load(self, key: str) -> Optional[ExamDraft]:
        """
        Load a snapshot, or None when absent.

        Snapshots from another schema version, or that fail to parse, are
        deleted and None is returned.
        """
        path = self.path_for(key)
        if not path.exists():
            return None

        record = locked_read_json(path)
        snapshot = record.get("snapshot")
        if not snapshot:
            self.discard(key)
            return None

        try:
            return deserialize_draft(snapshot)
        except SnapshotVersionError as e:
            logger.info(f"Discarding autosave {path.name}: {e}")
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable autosave {path.name}: {e}")
        self.discard(key)
        return None

    def saved_at(self, key: str) -> Optional[datetime]:
        path = self.path_for(key)
        if not path.exists():
            return None
        raw = locked_read_json(path).get("saved_at")
        return datetime.fromisoformat(raw) if raw else None

    def discard(self, key: str) -> None:
        path = self.path_for(key)
        if path.exists():
            path.unlink()
            logger.debug(f"Removed autosave {path.name}")
