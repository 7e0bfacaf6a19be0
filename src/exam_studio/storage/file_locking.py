"""
Module: storage.file_locking

Purpose:
    Cross-platform locked JSON files for local editor state. Uses
    portalocker so a second editor window (or process) never reads a
    half-written token store or autosave snapshot.

Key Functions:
    - locked_file: Context manager for locked file access
    - locked_read_json: Read a JSON document under a shared lock
    - locked_write_json: Replace a JSON document under an exclusive lock
    - locked_read_modify_write_json: Read-modify-write JSON with lock

Dependencies:
    - portalocker: Cross-platform file locking

Used By:
    - storage.local_storage: Key/value token store
    - editor.autosave: Draft snapshots
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Generator

import portalocker

logger = logging.getLogger(__name__)


@contextmanager
def locked_file(
    path: Path,
    mode: str = 'r',
    lock_type: int = portalocker.LOCK_EX,
) -> Generator:
    """
    Context manager for cross-platform locked file access.

    Args:
        path: Path to file.
        mode: File open mode ('r', 'w', 'r+', etc.).
        lock_type: Lock type (LOCK_EX for exclusive, LOCK_SH for shared).

    Yields:
        Open file handle with lock held.

    Example:
        >>> with locked_file(path, 'w') as f:
        ...     f.write('{}')
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    # Read modes need the file to exist
    if 'r' in mode and not path.exists():
        path.touch()

    with open(path, mode, encoding='utf-8') as f:
        portalocker.lock(f, lock_type)
        try:
            yield f
        finally:
            portalocker.unlock(f)


def locked_read_json(
    path: Path,
    default: Callable[[], Dict[str, Any]] = dict,
) -> Dict[str, Any]:
    """
    Read a JSON document with a shared lock.

    Missing or empty files yield `default()`. Corrupt JSON is logged and
    also yields `default()` so one bad write never locks the user out.
    """
    if not path.exists():
        return default()

    with locked_file(path, 'r', portalocker.LOCK_SH) as f:
        content = f.read()

    if not content.strip():
        return default()
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring corrupt JSON in {path.name}: {e}")
        return default()
    if not isinstance(data, dict):
        logger.warning(f"Ignoring non-object JSON in {path.name}")
        return default()
    return data


def locked_write_json(path: Path, data: Dict[str, Any]) -> None:
    """Replace the file contents with `data` under an exclusive lock."""
    with locked_file(path, 'w', portalocker.LOCK_EX) as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    logger.debug(f"Wrote {path.name}")


def locked_read_modify_write_json(
    path: Path,
    modifier: Callable[[Dict[str, Any]], Dict[str, Any]],
    default: Callable[[], Dict[str, Any]] = dict,
) -> Dict[str, Any]:
    """
    Read JSON, apply modifier, write back - all with exclusive lock.

    Args:
        path: Path to JSON file.
        modifier: Function that takes existing data, returns modified data.
        default: Factory for default data if file doesn't exist.

    Returns:
        The modified data that was written.

    Example:
        >>> def forget_token(existing):
        ...     existing.pop('auth_token', None)
        ...     return existing
        >>> locked_read_modify_write_json(store_path, forget_token)
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    if not path.exists():
        path.write_text(json.dumps(default(), indent=2), encoding='utf-8')

    with open(path, 'r+', encoding='utf-8') as f:
        portalocker.lock(f, portalocker.LOCK_EX)
        try:
            f.seek(0)
            content = f.read()
            try:
                existing = json.loads(content) if content.strip() else default()
            except json.JSONDecodeError as e:
                logger.warning(f"Replacing corrupt JSON in {path.name}: {e}")
                existing = default()

            modified = modifier(existing)

            f.seek(0)
            f.truncate()
            json.dump(modified, f, indent=2, ensure_ascii=False)

            return modified
        finally:
            portalocker.unlock(f)
