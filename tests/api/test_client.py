"""
Unit Tests for ApiClient

Uses httpx.MockTransport so no request leaves the process.
"""

import json
from datetime import date

import httpx
import pytest

from exam_studio.api.client import (
    GENERIC_ERROR_MESSAGE,
    ApiClient,
    ApiError,
    AuthTokenMissingError,
    encode_form,
    encode_form_value,
)
from exam_studio.core.models import QuestionType, load_pending_image

BASE_URL = "http://api.test/api/v1"


class Recorder:
    """MockTransport handler that records requests and replays a response."""

    def __init__(self, status=200, body=None, content=None):
        self.requests = []
        self.status = status
        self.body = {"success": True, "data": {}} if body is None else body
        self.content = content

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.content is not None:
            return httpx.Response(self.status, content=self.content)
        return httpx.Response(self.status, json=self.body)


def make_client(handler, token="secret"):
    return ApiClient(BASE_URL, lambda: token, transport=httpx.MockTransport(handler))


class TestEncodeForm:
    """Tests for form field encoding."""

    @pytest.mark.parametrize("value,expected", [
        (True, "true"),
        (False, "false"),
        (QuestionType.MULTIPLE, "multiple"),
        (date(2026, 1, 2), "2026-01-02"),
        (("a", "b"), '["a", "b"]'),
        (3.5, "3.5"),
        (None, None),
    ])
    def test_encode_value(self, value, expected):
        assert encode_form_value(value) == expected

    def test_encode_form_when_none_values_then_dropped(self):
        assert encode_form({"title": "Mock", "slug": None, "is_free": True}) == {
            "title": "Mock",
            "is_free": "true",
        }


class TestAuthentication:
    """Tests for bearer token handling."""

    def test_request_when_token_then_bearer_header_sent(self):
        recorder = Recorder()
        with make_client(recorder) as client:
            client.post("/admin/sections", {"name": "A"}, requires_auth=True)

        assert recorder.requests[0].headers["Authorization"] == "Bearer secret"
        assert json.loads(recorder.requests[0].content) == {"name": "A"}

    def test_request_when_auth_not_required_then_no_header(self):
        recorder = Recorder()
        with make_client(recorder) as client:
            client.get("/taxonomy/categories")

        assert "Authorization" not in recorder.requests[0].headers

    def test_mutating_request_when_no_token_then_raises_before_sending(self):
        recorder = Recorder()
        with make_client(recorder, token=None) as client:
            with pytest.raises(AuthTokenMissingError) as exc_info:
                client.delete("/admin/options/4", requires_auth=True)

        assert recorder.requests == []
        assert exc_info.value.endpoint == "/admin/options/4"

    def test_get_when_no_token_then_sent_without_header(self, caplog):
        recorder = Recorder()
        with make_client(recorder, token="") as client:
            client.get("/admin/exams/1", requires_auth=True)

        assert len(recorder.requests) == 1
        assert "Authorization" not in recorder.requests[0].headers
        assert "No auth token" in caplog.text


class TestErrors:
    """Tests for error translation."""

    def test_request_when_server_message_then_api_error_carries_it(self):
        recorder = Recorder(status=422, body={"success": False, "message": "Title already used"})
        with make_client(recorder) as client:
            with pytest.raises(ApiError) as exc_info:
                client.post("/admin/sections", {}, requires_auth=True)

        assert exc_info.value.status_code == 422
        assert exc_info.value.message == "Title already used"
        assert str(exc_info.value) == "[422] Title already used"

    def test_request_when_body_not_json_then_generic_message(self):
        recorder = Recorder(status=500, content=b"<html>Bad gateway</html>")
        with make_client(recorder) as client:
            with pytest.raises(ApiError, match=GENERIC_ERROR_MESSAGE):
                client.get("/admin/exams")

    def test_request_when_transport_fails_then_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with make_client(handler) as client:
            with pytest.raises(ApiError, match="Network error") as exc_info:
                client.get("/admin/exams")
        assert exc_info.value.status_code is None

    def test_request_when_list_payload_then_wrapped(self):
        recorder = Recorder(body=[1, 2])
        with make_client(recorder) as client:
            assert client.get("/anything") == {"data": [1, 2]}

    def test_request_when_empty_body_then_empty_dict(self):
        recorder = Recorder(status=204, content=b"")
        with make_client(recorder) as client:
            assert client.delete("/admin/sections/1", requires_auth=True) == {}


class TestQueryAndForms:
    def test_get_when_empty_params_then_omitted(self):
        recorder = Recorder()
        with make_client(recorder) as client:
            client.get("/admin/exams", params={"page": 2, "search": "", "status": None})

        assert dict(recorder.requests[0].url.params) == {"page": "2"}

    def test_post_form_when_no_files_then_json_body(self):
        recorder = Recorder()
        with make_client(recorder) as client:
            client.post_form(
                "/admin/questions",
                {"text": "Why?", "marks": 2, "is_active": True, "type": QuestionType.SINGLE, "image_url": None},
                requires_auth=True,
            )

        request = recorder.requests[0]
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.content) == {"text": "Why?", "marks": 2, "is_active": True, "type": "single"}

    def test_post_form_when_image_then_multipart_with_file(self, sample_image):
        recorder = Recorder()
        image = load_pending_image(sample_image)
        with make_client(recorder) as client:
            client.post_form("/admin/questions", {"text": "Q"}, files={"image": image, "extra": None})

        request = recorder.requests[0]
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        assert b'filename="sample.png"' in request.content
        assert b'name="extra"' not in request.content

    def test_post_form_when_file_vanished_then_api_error(self, sample_image):
        image = load_pending_image(sample_image)
        sample_image.unlink()
        recorder = Recorder()
        with make_client(recorder) as client:
            with pytest.raises(ApiError, match="Cannot read image"):
                client.post_form("/admin/questions", {}, files={"image": image})
        assert recorder.requests == []
