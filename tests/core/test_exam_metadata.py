"""
Unit Tests for ExamMetadata

Tests for the schedule ("anytime") rules and form-style updates.
"""

from datetime import date

import pytest

from exam_studio.core.models import DraftError, ExamDraft, ExamMetadata, ExamStatus, ExamType


class TestAllowAnytime:
    """Tests for the anytime toggle."""

    def test_enable_when_scheduled_then_window_cleared_and_status_anytime(self):
        meta = ExamMetadata(status="ongoing", start_date="2026-02-01", end_date="2026-02-10")
        updated = meta.with_allow_anytime(True)

        assert updated.allow_anytime
        assert updated.status is ExamStatus.ANYTIME
        assert updated.start_date is None and updated.end_date is None

    def test_disable_when_previously_ongoing_then_status_restored(self):
        meta = ExamMetadata(status="ongoing").with_allow_anytime(True).with_allow_anytime(False)

        assert not meta.allow_anytime
        assert meta.status is ExamStatus.ONGOING

    def test_disable_when_no_previous_status_then_upcoming(self):
        meta = ExamMetadata(status=ExamStatus.ANYTIME, allow_anytime=True)
        assert meta.with_allow_anytime(False).status is ExamStatus.UPCOMING

    def test_enable_when_already_anytime_then_unchanged(self):
        meta = ExamMetadata().with_allow_anytime(True)
        assert meta.with_allow_anytime(True) is meta

    def test_schedule_complete_when_anytime_then_true_without_dates(self):
        assert ExamMetadata().with_allow_anytime(True).schedule_complete
        assert not ExamMetadata().schedule_complete


class TestWithField:
    def test_with_field_when_negative_marking_disabled_then_value_zeroed(self):
        meta = ExamMetadata(negative_marking=True, negative_mark_value=0.25)
        assert meta.with_field("negative_marking", False).negative_mark_value == 0

    def test_with_field_when_protected_then_raises(self):
        with pytest.raises(ValueError, match="with_allow_anytime"):
            ExamMetadata().with_field("allow_anytime", True)

    def test_with_field_when_date_string_then_coerced(self):
        meta = ExamMetadata().with_field("start_date", "2026-03-04T10:00:00Z")
        assert meta.start_date == date(2026, 3, 4)

    @pytest.mark.parametrize("name, value", [
        ("start_date", "2026-03-04"),
        ("end_date", date(2026, 3, 10)),
        ("status", ExamStatus.ONGOING),
    ])
    def test_with_field_when_anytime_and_schedule_set_then_raises(self, name, value):
        meta = ExamMetadata().with_allow_anytime(True)

        with pytest.raises(ValueError, match="available anytime"):
            meta.with_field(name, value)

    def test_with_field_when_anytime_and_schedule_left_empty_then_allowed(self):
        meta = ExamMetadata().with_allow_anytime(True)

        assert meta.with_field("start_date", "").start_date is None
        assert meta.with_field("status", "anytime").status is ExamStatus.ANYTIME

    def test_init_when_pass_percentage_out_of_range_then_raises(self):
        with pytest.raises(ValueError, match="pass_percentage"):
            ExamMetadata(pass_percentage=120)

    def test_update_exam_when_invalid_then_draft_error(self):
        with pytest.raises(DraftError):
            ExamDraft().update_exam("no_such_field", 1)


class TestSyllabus:
    def test_add_when_blank_then_ignored(self):
        draft = ExamDraft().add_syllabus_item("  ")
        assert draft.metadata.syllabus == ()

    def test_remove_when_index_valid_then_item_dropped(self):
        draft = ExamDraft().add_syllabus_item("Algebra").add_syllabus_item("Geometry")
        assert draft.remove_syllabus_item(0).metadata.syllabus == ("Geometry",)

    def test_remove_when_index_out_of_range_then_raises(self):
        with pytest.raises(IndexError):
            ExamDraft().remove_syllabus_item(3)


class TestShowInMockTests:
    def test_effective_when_not_past_paper_then_false(self):
        meta = ExamMetadata(exam_type=ExamType.MOCK_TEST, show_in_mock_tests=True)
        assert not meta.effective_show_in_mock_tests

    def test_effective_when_past_paper_then_follows_flag(self):
        meta = ExamMetadata(exam_type="past_paper", show_in_mock_tests=True)
        assert meta.effective_show_in_mock_tests
