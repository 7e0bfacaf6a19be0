"""
Bearer token lookup.

The token lives in the editor's LocalStorage file under "auth_token"; an
older client wrote it under "token", which is still honoured.
"""

from __future__ import annotations

import logging
from typing import Optional

from exam_studio.storage import LocalStorage

logger = logging.getLogger(__name__)

TOKEN_KEYS = ("auth_token", "token")


def stored_token(storage: LocalStorage) -> Optional[str]:
    """Return the first non-empty token under TOKEN_KEYS, else None."""
    for key in TOKEN_KEYS:
        token = storage.get_item(key)
        if token:
            return token
    return None


class StoredTokenProvider:
    """Callable token provider for ApiClient, re-read on every request."""

    def __init__(self, storage: LocalStorage):
        self.storage = storage

    def __call__(self) -> Optional[str]:
        return stored_token(self.storage)

    def save(self, token: str) -> None:
        self.storage.set_item(TOKEN_KEYS[0], token)
        logger.info("Stored auth token")

    def forget(self) -> None:
        for key in TOKEN_KEYS:
            self.storage.remove_item(key)
