"""
Response envelope helpers.

Every endpoint answers `{"success": bool, "data": T}`; list endpoints add
`{"pagination": {"page", "limit", "total", "totalPages"}}`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from .client import ApiError

T = TypeVar("T")


def unwrap(response: dict[str, Any]) -> Any:
    """
    Return the envelope's `data`.

    Raises:
        ApiError: When the server reports success=false with a 2xx status
    """
    if response.get("success") is False:
        raise ApiError(None, str(response.get("message") or "API request failed"))
    return response.get("data")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a paginated listing."""

    items: list[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10
    total_pages: int = 0

    @classmethod
    def from_response(cls, response: dict[str, Any]) -> "Page[Any]":
        items = unwrap(response) or []
        pagination = response.get("pagination") or {}
        return cls(
            items=list(items),
            total=int(pagination.get("total", len(items))),
            page=int(pagination.get("page", 1)),
            limit=int(pagination.get("limit", len(items) or 10)),
            total_pages=int(pagination.get("totalPages", 1 if items else 0)),
        )

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages
