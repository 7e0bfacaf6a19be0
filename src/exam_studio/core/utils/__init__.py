"""
Utils Package

Snapshot serialization and URL helpers.
"""

from .serialization import (
    SNAPSHOT_SCHEMA_VERSION,
    SnapshotVersionError,
    deserialize_draft,
    draft_from_server,
    serialize_draft,
)
from .urls import build_exam_url, slugify

__all__ = [
    "SNAPSHOT_SCHEMA_VERSION",
    "SnapshotVersionError",
    "deserialize_draft",
    "draft_from_server",
    "serialize_draft",
    "build_exam_url",
    "slugify",
]
