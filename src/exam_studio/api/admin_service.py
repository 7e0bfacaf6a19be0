"""
Module: api.admin_service

Purpose:
    Typed façade over the admin endpoints for exams, sections, questions and
    options. Each method unwraps the response envelope and returns the
    server record as a dict.

Key Classes:
    - AdminService: One method per admin operation
    - ExamFilters: Listing filters for get_exams

Dependencies:
    - api.client.ApiClient

Used By:
    - editor.sync (submission steps)
    - editor.session (immediate image upload/removal, loading)
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional, Union

from exam_studio.core.models.ids import PersistedId
from exam_studio.core.models.images import PendingImage

from .client import ApiClient, ApiError
from .envelope import Page, unwrap

logger = logging.getLogger(__name__)

IdLike = Union[str, PersistedId]
Record = dict[str, Any]


@dataclass(frozen=True)
class ExamFilters:
    page: int = 1
    limit: int = 10
    search: str = ""
    status: str = ""
    category: str = ""
    difficulty: str = ""


def _created_id(record: Any, what: str) -> Record:
    if not isinstance(record, dict) or not record.get("id"):
        raise ApiError(None, f"Server did not return an id for the new {what}")
    return record


class AdminService:
    """
    Admin resource operations.

    Example:
        >>> admin = AdminService(ApiClient(base_url, token_provider))
        >>> exam = admin.create_exam({"title": "Mock 1"})  # doctest: +SKIP
    """

    def __init__(self, client: ApiClient):
        self.client = client

    # ─────────────────────────────────────────────────────────────────────────
    # Exams
    # ─────────────────────────────────────────────────────────────────────────

    def get_exams(self, filters: Optional[ExamFilters] = None) -> Page[Record]:
        params = asdict(filters or ExamFilters())
        return Page.from_response(self.client.get("/admin/exams", params=params, requires_auth=True))

    def get_exam(self, exam_id: IdLike) -> Record:
        return unwrap(self.client.get(f"/admin/exams/{exam_id}", requires_auth=True))

    def get_exam_structure(self, exam_id: IdLike) -> list[Record]:
        """Sections with nested questions and options, as persisted."""
        data = unwrap(self.client.get(f"/admin/exams/{exam_id}/sections-questions", requires_auth=True))
        return list(data or [])

    def create_exam(
        self,
        data: Mapping[str, Any],
        logo: Optional[PendingImage] = None,
        thumbnail: Optional[PendingImage] = None,
    ) -> Record:
        response = self.client.post_form(
            "/admin/exams",
            data,
            files={"logo": logo, "thumbnail": thumbnail},
            requires_auth=True,
        )
        record = _created_id(unwrap(response), "exam")
        logger.info(f"Created exam {record['id']}")
        return record

    def update_exam(
        self,
        exam_id: IdLike,
        data: Mapping[str, Any],
        logo: Optional[PendingImage] = None,
        thumbnail: Optional[PendingImage] = None,
    ) -> Record:
        response = self.client.put_form(
            f"/admin/exams/{exam_id}",
            data,
            files={"logo": logo, "thumbnail": thumbnail},
            requires_auth=True,
        )
        return unwrap(response) or {}

    def delete_exam(self, exam_id: IdLike) -> None:
        self.client.delete(f"/admin/exams/{exam_id}", requires_auth=True)
        logger.info(f"Deleted exam {exam_id}")

    # ─────────────────────────────────────────────────────────────────────────
    # Sections
    # ─────────────────────────────────────────────────────────────────────────

    def create_section(self, data: Mapping[str, Any]) -> Record:
        return _created_id(unwrap(self.client.post("/admin/sections", dict(data), requires_auth=True)), "section")

    def update_section(self, section_id: IdLike, data: Mapping[str, Any]) -> Record:
        return unwrap(self.client.put(f"/admin/sections/{section_id}", dict(data), requires_auth=True)) or {}

    def delete_section(self, section_id: IdLike) -> None:
        self.client.delete(f"/admin/sections/{section_id}", requires_auth=True)

    # ─────────────────────────────────────────────────────────────────────────
    # Questions
    # ─────────────────────────────────────────────────────────────────────────

    def create_question(self, data: Mapping[str, Any], image: Optional[PendingImage] = None) -> Record:
        response = self.client.post_form("/admin/questions", data, files={"image": image}, requires_auth=True)
        return _created_id(unwrap(response), "question")

    def update_question(
        self,
        question_id: IdLike,
        data: Mapping[str, Any],
        image: Optional[PendingImage] = None,
    ) -> Record:
        response = self.client.put_form(
            f"/admin/questions/{question_id}", data, files={"image": image}, requires_auth=True,
        )
        return unwrap(response) or {}

    def delete_question(self, question_id: IdLike) -> None:
        self.client.delete(f"/admin/questions/{question_id}", requires_auth=True)

    def upload_question_image(self, question_id: IdLike, image: PendingImage) -> str:
        """Upload an image for a persisted question and return its URL."""
        response = self.client.post_form(
            f"/admin/questions/{question_id}/upload-image", {}, files={"image": image}, requires_auth=True,
        )
        return _image_url(unwrap(response), f"question {question_id}")

    def remove_question_image(self, question_id: IdLike) -> None:
        self.client.delete(f"/admin/questions/{question_id}/remove-image", requires_auth=True)

    # ─────────────────────────────────────────────────────────────────────────
    # Options
    # ─────────────────────────────────────────────────────────────────────────

    def create_option(self, data: Mapping[str, Any], image: Optional[PendingImage] = None) -> Record:
        response = self.client.post_form("/admin/options", data, files={"image": image}, requires_auth=True)
        return _created_id(unwrap(response), "option")

    def update_option(
        self,
        option_id: IdLike,
        data: Mapping[str, Any],
        image: Optional[PendingImage] = None,
    ) -> Record:
        response = self.client.put_form(
            f"/admin/options/{option_id}", data, files={"image": image}, requires_auth=True,
        )
        return unwrap(response) or {}

    def delete_option(self, option_id: IdLike) -> None:
        self.client.delete(f"/admin/options/{option_id}", requires_auth=True)

    def upload_option_image(self, option_id: IdLike, image: PendingImage) -> str:
        response = self.client.post_form(
            f"/admin/options/{option_id}/upload-image", {}, files={"image": image}, requires_auth=True,
        )
        return _image_url(unwrap(response), f"option {option_id}")

    def remove_option_image(self, option_id: IdLike) -> None:
        self.client.delete(f"/admin/options/{option_id}/remove-image", requires_auth=True)


def _image_url(data: Any, what: str) -> str:
    url = data.get("image_url") if isinstance(data, dict) else None
    if not url:
        raise ApiError(None, f"Server did not return an image URL for {what}")
    return str(url)
