"""
Module: ids

Purpose:
    Tagged identifiers for draft entities. An entity is either known only to
    the client (TemporaryId) or acknowledged by the backend (PersistedId).
    The submission executor picks "create" or "update" from the tag alone.

Key Classes:
    - TemporaryId: Client-generated placeholder
    - PersistedId: Server-assigned identifier
    - IdRemap: Temporary → persisted table built during submission

Key Functions:
    - is_persisted(entity_id): True for server ids
    - parse_entity_id(raw): Rebuild an id from its serialized form

Used By:
    - core.models.draft.ExamDraft
    - editor.sync (IdRemap)
    - core.utils.serialization
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class TemporaryId:
    """
    Placeholder id for an entity the backend has not seen yet.

    Attributes:
        handle: Opaque local handle like "question-1718000000000-a1b2c3"

    Example:
        >>> tid = TemporaryId.new("section")
        >>> tid.handle.startswith("section-")
        True
    """

    handle: str

    def __post_init__(self) -> None:
        if not self.handle:
            raise ValueError("TemporaryId handle cannot be empty")

    @classmethod
    def new(cls, kind: str) -> "TemporaryId":
        """Generate a fresh handle for an entity kind."""
        millis = int(time.time() * 1000)
        return cls(f"{kind}-{millis}-{secrets.token_hex(3)}")

    @property
    def is_persisted(self) -> bool:
        return False

    def __str__(self) -> str:
        return self.handle


@dataclass(frozen=True, slots=True)
class PersistedId:
    """
    Identifier assigned by the backend.

    Attributes:
        value: Server id as returned in the response envelope
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("PersistedId value cannot be empty")

    @property
    def is_persisted(self) -> bool:
        return True

    def __str__(self) -> str:
        return self.value


EntityId = Union[TemporaryId, PersistedId]


def is_persisted(entity_id: EntityId | None) -> bool:
    """Return True when the id was assigned by the backend."""
    return isinstance(entity_id, PersistedId)


def serialize_entity_id(entity_id: EntityId) -> dict[str, str]:
    """Serialize an id into a tagged dict for snapshots."""
    if isinstance(entity_id, PersistedId):
        return {"persisted": entity_id.value}
    return {"temporary": entity_id.handle}


def parse_entity_id(raw: dict[str, str]) -> EntityId:
    """
    Rebuild an id from `serialize_entity_id` output.

    Raises:
        ValueError: If the dict carries neither tag
    """
    if "persisted" in raw:
        return PersistedId(str(raw["persisted"]))
    if "temporary" in raw:
        return TemporaryId(str(raw["temporary"]))
    raise ValueError(f"Unrecognised entity id payload: {raw!r}")


class UnresolvedIdError(LookupError):
    """Raised when a temporary id has no server id yet."""
    pass


class IdRemap:
    """
    Temporary → persisted id table built during submission.

    Parents are recorded before their children are sent, so a child's
    parent id always resolves while the plan runs in order.

    Example:
        >>> remap = IdRemap()
        >>> tid = TemporaryId.new("section")
        >>> remap.record(tid, PersistedId("42"))
        >>> remap.resolve(tid)
        PersistedId(value='42')
    """

    def __init__(self, entries: dict[TemporaryId, PersistedId] | None = None) -> None:
        self._entries: dict[TemporaryId, PersistedId] = dict(entries or {})

    def record(self, temporary: EntityId, persisted: PersistedId) -> None:
        if isinstance(temporary, TemporaryId):
            self._entries[temporary] = persisted

    def resolve(self, entity_id: EntityId) -> PersistedId:
        """
        Return the server id for an entity.

        Raises:
            UnresolvedIdError: If a temporary id was never recorded
        """
        if isinstance(entity_id, PersistedId):
            return entity_id
        try:
            return self._entries[entity_id]
        except KeyError:
            raise UnresolvedIdError(f"No server id recorded for {entity_id}") from None

    def get(self, entity_id: EntityId) -> EntityId:
        """Return the server id when known, else the id unchanged."""
        if isinstance(entity_id, TemporaryId):
            return self._entries.get(entity_id, entity_id)
        return entity_id

    def items(self):
        return self._entries.items()

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"IdRemap({len(self._entries)} entries)"
