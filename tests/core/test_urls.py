"""
Unit Tests for URL helpers
"""

import pytest

from exam_studio.core.utils.urls import build_exam_url, slugify


@pytest.mark.parametrize("text,expected", [
    ("SSC CGL Tier 1", "ssc-cgl-tier-1"),
    ("  --Hello,   World!--  ", "hello-world"),
    ("", ""),
])
def test_slugify(text, expected):
    assert slugify(text) == expected


class TestBuildExamUrl:
    def test_build_when_all_parts_then_joined(self):
        assert build_exam_url("Mock 1", "", "ssc", "cgl") == "/ssc/cgl/mock-1"

    def test_build_when_slug_given_then_title_ignored(self):
        assert build_exam_url("Mock 1", "custom", "ssc") == "/ssc/custom"

    def test_build_when_everything_empty_then_empty(self):
        assert build_exam_url("") == ""
