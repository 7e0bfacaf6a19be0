"""Locked JSON files for local editor state."""

from .file_locking import (
    locked_file,
    locked_read_json,
    locked_read_modify_write_json,
    locked_write_json,
)
from .local_storage import LocalStorage

__all__ = [
    "locked_file",
    "locked_read_json",
    "locked_read_modify_write_json",
    "locked_write_json",
    "LocalStorage",
]
