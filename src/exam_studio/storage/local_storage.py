"""
Module: storage.local_storage

Purpose:
    A small string key/value store persisted as one JSON object. The editor
    keeps the bearer token here under "auth_token".

Key Classes:
    - LocalStorage: get_item / set_item / remove_item / clear

Dependencies:
    - storage.file_locking

Used By:
    - api.auth
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .file_locking import locked_read_json, locked_read_modify_write_json

logger = logging.getLogger(__name__)


class LocalStorage:
    """
    JSON-file backed key/value store.

    Example:
        >>> store = LocalStorage(tmp_path / "storage.json")
        >>> store.set_item("auth_token", "abc")
        >>> store.get_item("auth_token")
        'abc'
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def get_item(self, key: str) -> Optional[str]:
        value = locked_read_json(self.path).get(key)
        return None if value is None else str(value)

    def set_item(self, key: str, value: str) -> None:
        def update(data):
            data[key] = str(value)
            return data

        locked_read_modify_write_json(self.path, update)

    def remove_item(self, key: str) -> None:
        def update(data):
            data.pop(key, None)
            return data

        locked_read_modify_write_json(self.path, update)

    def clear(self) -> None:
        locked_read_modify_write_json(self.path, lambda data: {})
        logger.info(f"Cleared local storage at {self.path}")

    def keys(self) -> list[str]:
        return sorted(locked_read_json(self.path))
