"""
Module: api.client

Purpose:
    Thin httpx wrapper for the exam platform's REST API. Adds the bearer
    token, sends JSON or multipart bodies, and turns every non-2xx response or
    transport failure into an ApiError carrying the server's message.

Key Classes:
    - ApiClient: get / post / put / delete / post_form / put_form
    - ApiError: HTTP or network failure
    - AuthTokenMissingError: Mutating call attempted without a token

Dependencies:
    - httpx: Synchronous HTTP client (pluggable transport for tests)

Used By:
    - api.admin_service
    - api.taxonomy_service
"""

from __future__ import annotations

import json
import logging
from datetime import date
from enum import Enum
from typing import Any, Callable, Mapping, Optional

import httpx

from exam_studio.core.models.images import PendingImage, image_mime_type

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
GENERIC_ERROR_MESSAGE = "API request failed"

TokenProvider = Callable[[], Optional[str]]

_MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class ApiError(Exception):
    """
    Raised for any failed API call.

    Attributes:
        status_code: HTTP status, or None for network failures
        message: Server-provided message or a generic fallback
    """

    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"[{self.status_code}] {self.message}"


class AuthTokenMissingError(ApiError):
    """Raised before sending a mutating request when no token is stored."""

    def __init__(self, endpoint: str):
        super().__init__(None, f"Not signed in: no auth token for {endpoint}")
        self.endpoint = endpoint


def encode_form_value(value: Any) -> Optional[str]:
    """
    Encode one multipart/form field.

    Booleans become "true"/"false", lists and dicts JSON, None is skipped.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(list(value) if isinstance(value, tuple) else value)
    return str(value)


def encode_form(data: Mapping[str, Any]) -> dict[str, str]:
    encoded = {}
    for key, value in data.items():
        text = encode_form_value(value)
        if text is not None:
            encoded[key] = text
    return encoded


def encode_json(data: Mapping[str, Any]) -> dict[str, Any]:
    """JSON body for a form call without files; None fields are dropped as in encode_form."""
    encoded = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, tuple):
            value = list(value)
        encoded[key] = value
    return encoded


def _file_part(image: PendingImage) -> tuple[str, bytes, str]:
    return (image.filename, image.path.read_bytes(), image_mime_type(image))


class ApiClient:
    """
    REST client bound to one base URL.

    Args:
        base_url: API root, e.g. "http://localhost:5000/api/v1"
        token_provider: Returns the current bearer token or None
        timeout: Seconds per request (DEFAULT_TIMEOUT when None)
        transport: Optional httpx transport (MockTransport in tests)

    Example:
        >>> client = ApiClient("http://localhost:5000/api/v1", lambda: "token")
        >>> client.get("/taxonomy/categories")  # doctest: +SKIP
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[TokenProvider] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._token_provider = token_provider or (lambda: None)
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout if timeout is not None else DEFAULT_TIMEOUT),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ─────────────────────────────────────────────────────────────────────────
    # Request core
    # ─────────────────────────────────────────────────────────────────────────

    def _auth_headers(self, method: str, endpoint: str, requires_auth: bool) -> dict[str, str]:
        if not requires_auth:
            return {}
        token = self._token_provider()
        if token:
            return {"Authorization": f"Bearer {token}"}
        if method in _MUTATING_METHODS:
            raise AuthTokenMissingError(endpoint)
        logger.warning(f"No auth token for {method} {endpoint}; sending unauthenticated")
        return {}

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        requires_auth: bool = False,
        **kwargs: Any,
    ) -> dict[str, Any]:
        headers = self._auth_headers(method, endpoint, requires_auth)
        logger.debug(f"{method} {endpoint}")

        try:
            response = self._client.request(method, endpoint, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {endpoint} failed: {e}")
            raise ApiError(None, f"Network error: {e}") from e

        try:
            payload = response.json() if response.content else {}
        except ValueError:
            payload = {}

        if not response.is_success:
            message = GENERIC_ERROR_MESSAGE
            if isinstance(payload, dict) and payload.get("message"):
                message = str(payload["message"])
            logger.error(f"{method} {endpoint} → {response.status_code}: {message}")
            raise ApiError(response.status_code, message)

        if not isinstance(payload, dict):
            return {"data": payload}
        return payload

    # ─────────────────────────────────────────────────────────────────────────
    # Verbs
    # ─────────────────────────────────────────────────────────────────────────

    def get(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        requires_auth: bool = False,
    ) -> dict[str, Any]:
        clean = {k: encode_form_value(v) for k, v in (params or {}).items() if v not in (None, "")}
        return self._request("GET", endpoint, params=clean or None, requires_auth=requires_auth)

    def post(self, endpoint: str, body: Any = None, requires_auth: bool = False) -> dict[str, Any]:
        return self._request("POST", endpoint, json=body, requires_auth=requires_auth)

    def put(self, endpoint: str, body: Any = None, requires_auth: bool = False) -> dict[str, Any]:
        return self._request("PUT", endpoint, json=body, requires_auth=requires_auth)

    def delete(self, endpoint: str, requires_auth: bool = False) -> dict[str, Any]:
        return self._request("DELETE", endpoint, requires_auth=requires_auth)

    def _form(
        self,
        method: str,
        endpoint: str,
        data: Mapping[str, Any],
        files: Optional[Mapping[str, Optional[PendingImage]]],
        requires_auth: bool,
    ) -> dict[str, Any]:
        try:
            parts = {name: _file_part(img) for name, img in (files or {}).items() if img is not None}
        except OSError as e:
            raise ApiError(None, f"Cannot read image for upload: {e}") from e
        if not parts:
            return self._request(method, endpoint, json=encode_json(data), requires_auth=requires_auth)
        return self._request(
            method,
            endpoint,
            data=encode_form(data),
            files=parts,
            requires_auth=requires_auth,
        )

    def post_form(
        self,
        endpoint: str,
        data: Mapping[str, Any],
        files: Optional[Mapping[str, Optional[PendingImage]]] = None,
        requires_auth: bool = False,
    ) -> dict[str, Any]:
        """POST a JSON body, or multipart form fields when a file is attached."""
        return self._form("POST", endpoint, data, files, requires_auth)

    def put_form(
        self,
        endpoint: str,
        data: Mapping[str, Any],
        files: Optional[Mapping[str, Optional[PendingImage]]] = None,
        requires_auth: bool = False,
    ) -> dict[str, Any]:
        return self._form("PUT", endpoint, data, files, requires_auth)
