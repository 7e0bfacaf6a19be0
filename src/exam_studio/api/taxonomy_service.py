"""
Module: api.taxonomy_service

Purpose:
    Read and create calls for the category / subcategory / difficulty
    taxonomy used by the exam header form.

Key Classes:
    - TaxonomyService
    - Category, Subcategory, Difficulty: Frozen records

Used By:
    - gui.editor_window (taxonomy pickers)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .client import ApiClient
from .envelope import unwrap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    slug: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Category":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            slug=data.get("slug") or "",
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class Subcategory:
    id: str
    category_id: str
    name: str
    slug: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Subcategory":
        return cls(
            id=str(data["id"]),
            category_id=str(data.get("category_id", "")),
            name=data.get("name", ""),
            slug=data.get("slug") or "",
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class Difficulty:
    id: str
    name: str
    slug: str = ""
    level_order: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Difficulty":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            slug=data.get("slug") or "",
            level_order=int(data.get("level_order") or 0),
        )


def _clean(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v not in (None, "")}


class TaxonomyService:
    """Category tree lookups. Reads are public; creates need a token."""

    def __init__(self, client: ApiClient):
        self.client = client

    def get_categories(self, search: str = "") -> list[Category]:
        data = unwrap(self.client.get("/taxonomy/categories", params={"search": search}))
        return [Category.from_dict(c) for c in data or []]

    def get_subcategories(self, category_id: Optional[str] = None, search: str = "") -> list[Subcategory]:
        params = {"category_id": category_id, "search": search}
        data = unwrap(self.client.get("/taxonomy/subcategories", params=params))
        return [Subcategory.from_dict(s) for s in data or []]

    def get_difficulties(self) -> list[Difficulty]:
        data = unwrap(self.client.get("/taxonomy/difficulties"))
        return sorted((Difficulty.from_dict(d) for d in data or []), key=lambda d: d.level_order)

    def create_category(self, name: str, description: str = "", slug: str = "") -> Category:
        body = _clean({"name": name, "description": description, "slug": slug})
        category = Category.from_dict(unwrap(self.client.post("/taxonomy/categories", body, requires_auth=True)))
        logger.info(f"Created category {category.name!r}")
        return category

    def create_subcategory(
        self,
        category_id: str,
        name: str,
        description: str = "",
        slug: str = "",
    ) -> Subcategory:
        body = _clean({"category_id": category_id, "name": name, "description": description, "slug": slug})
        return Subcategory.from_dict(unwrap(self.client.post("/taxonomy/subcategories", body, requires_auth=True)))

    def create_difficulty(self, name: str, level_order: Optional[int] = None, description: str = "") -> Difficulty:
        body = _clean({"name": name, "description": description, "level_order": level_order})
        return Difficulty.from_dict(unwrap(self.client.post("/taxonomy/difficulties", body, requires_auth=True)))
