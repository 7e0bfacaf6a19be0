"""
Tests for the submission plan and executor.

Runs against the in-memory FakeAdminService from conftest.
"""

from dataclasses import replace

import pytest

from exam_studio.core.models import (
    EntityKind,
    ExamDraft,
    ExamMetadata,
    ExamType,
    PendingImage,
    PersistedId,
    RemoteImage,
    RemovedEntity,
    TemporaryId,
    load_pending_image,
)
from exam_studio.editor.sync import (
    SubmissionOutcome,
    SyncError,
    SyncExecutor,
    build_plan,
    exam_payload,
    option_payload,
    section_payload,
)


def _run(admin, draft, progress=None):
    return SyncExecutor(admin, upload_workers=2, progress=progress).run(draft)


def _create_calls(admin):
    return [name for name in admin.names() if name.startswith("create_")]


class TestPayloads:
    """Tests for request payload builders."""

    def test_exam_payload_when_anytime_then_empty_schedule(self):
        meta = ExamMetadata(title="Mock", start_date="2026-01-01", end_date="2026-01-02").with_allow_anytime(True)
        payload = exam_payload(meta)

        assert payload["status"] == "anytime"
        assert payload["start_date"] == "" and payload["end_date"] == ""
        assert "status_before_anytime" not in payload
        assert "logo" not in payload

    def test_exam_payload_when_not_past_paper_then_mock_flag_false(self):
        meta = ExamMetadata(exam_type=ExamType.SHORT_QUIZ, show_in_mock_tests=True)
        assert exam_payload(meta)["show_in_mock_tests"] is False

    def test_exam_payload_when_past_paper_then_mock_flag_kept(self):
        meta = ExamMetadata(exam_type=ExamType.PAST_PAPER, show_in_mock_tests=True)
        assert exam_payload(meta)["show_in_mock_tests"] is True

    def test_section_payload_when_no_duration_then_omitted(self, valid_draft):
        payload = section_payload(valid_draft.sections[0])

        assert "duration" not in payload
        assert "name_hi" not in payload
        assert payload["total_questions"] == 1

    def test_option_payload_when_built_then_carries_order_and_flag(self, valid_draft):
        option = valid_draft.sections[0].questions[0].options[0]
        assert option_payload(option) == {"option_text": "Paris", "is_correct": True, "option_order": 1}


class TestBuildPlan:
    """Tests for plan ordering."""

    def test_build_when_no_exam_id_then_raises(self, valid_draft):
        with pytest.raises(ValueError, match="exam_id"):
            build_plan(valid_draft)

    def test_build_when_tree_then_depth_first_parents_first(self, valid_draft):
        draft = valid_draft.add_section()
        draft = replace(draft, exam_id=TemporaryId.new("exam"))
        plan = build_plan(draft)

        kinds = [step.kind for step in plan.steps]
        assert kinds == [
            EntityKind.EXAM,
            EntityKind.SECTION, EntityKind.QUESTION, EntityKind.OPTION, EntityKind.OPTION,
            EntityKind.SECTION,
        ]
        assert plan.total == draft.step_count
        assert all(step.is_create for step in plan.steps)

    def test_build_when_removed_then_children_deleted_first(self, valid_draft):
        removed = (
            RemovedEntity(EntityKind.SECTION, PersistedId("s")),
            RemovedEntity(EntityKind.OPTION, PersistedId("o")),
            RemovedEntity(EntityKind.QUESTION, PersistedId("q")),
        )
        draft = replace(valid_draft, exam_id=PersistedId("e"), removed=removed)

        kinds = [r.kind for r in build_plan(draft).deletions]
        assert kinds == [EntityKind.OPTION, EntityKind.QUESTION, EntityKind.SECTION]

    def test_build_when_pending_images_then_uploads_planned(self, valid_draft, sample_image):
        section = valid_draft.sections[0]
        question = section.questions[0]
        image = load_pending_image(sample_image)
        draft = valid_draft.set_question_image(section.id, question.id, image)
        draft = draft.set_option_image(section.id, question.id, question.options[1].id, image)
        draft = draft.set_exam_media("logo", image)
        draft = replace(draft, exam_id=TemporaryId.new("exam"))

        plan = build_plan(draft)

        assert [u.kind for u in plan.uploads] == [EntityKind.QUESTION, EntityKind.OPTION]
        assert plan.steps[0].files == {"logo": image}


class TestExecutor:
    """Tests for running a plan."""

    def test_run_when_new_draft_then_created_in_order(self, fake_admin, valid_draft):
        result = _run(fake_admin, valid_draft)

        assert _create_calls(fake_admin) == [
            "create_exam", "create_section", "create_question", "create_option", "create_option",
        ]
        assert result.outcome is SubmissionOutcome.SUCCESS
        assert result.ok
        assert result.persisted_questions == 1
        assert isinstance(result.draft.exam_id, PersistedId)
        assert all(isinstance(o.id, PersistedId) for _, _, o in result.draft.iter_options())

    def test_run_when_children_created_then_parent_ids_resolved(self, fake_admin, valid_draft):
        result = _run(fake_admin, valid_draft)

        section = result.draft.sections[0]
        question = section.questions[0]
        assert fake_admin.sections[str(section.id)]["exam_id"] == str(result.draft.exam_id)
        assert fake_admin.questions[str(question.id)]["section_id"] == str(section.id)
        assert fake_admin.questions[str(question.id)]["exam_id"] == str(result.draft.exam_id)
        for option in question.options:
            assert fake_admin.options[str(option.id)]["question_id"] == str(question.id)

    def test_run_when_progress_then_monotonic_with_fixed_total(self, fake_admin, valid_draft):
        events = []
        _run(fake_admin, valid_draft, progress=events.append)

        completed = [e.completed for e in events]
        assert {e.total for e in events} == {valid_draft.step_count}
        assert completed == sorted(completed)
        assert completed[0] == 0
        assert max(completed) == valid_draft.step_count

    def test_run_when_repeated_then_no_duplicates(self, fake_admin, valid_draft):
        first = _run(fake_admin, valid_draft)
        fake_admin.calls.clear()

        second = _run(fake_admin, first.draft)

        assert _create_calls(fake_admin) == []
        assert fake_admin.names().count("update_option") == 2
        assert second.draft == first.draft
        assert len(fake_admin.options) == 2

    def test_run_when_step_fails_then_partial_ids_kept(self, fake_admin, valid_draft):
        fake_admin.fail_on("create_option", nth=2)

        with pytest.raises(SyncError) as exc_info:
            _run(fake_admin, valid_draft)

        error = exc_info.value
        partial = error.partial_draft
        options = partial.sections[0].questions[0].options
        assert isinstance(partial.exam_id, PersistedId)
        assert isinstance(options[0].id, PersistedId)
        assert isinstance(options[1].id, TemporaryId)
        assert error.completed == 4
        assert error.step == "Option 2"
        assert "Server exploded" in str(error)

    def test_run_when_resumed_after_failure_then_no_duplicate_creates(self, fake_admin, valid_draft):
        fake_admin.fail_on("create_option", nth=2)
        with pytest.raises(SyncError) as exc_info:
            _run(fake_admin, valid_draft)

        result = _run(fake_admin, exc_info.value.partial_draft)

        assert result.ok
        assert fake_admin.names().count("create_exam") == 1
        assert fake_admin.names().count("create_question") == 1
        assert len(fake_admin.sections) == 1
        assert len(fake_admin.options) == 2

    def test_run_when_logo_pending_then_replaced_by_returned_url(self, fake_admin, valid_draft, sample_image):
        draft = valid_draft.set_exam_media("logo", load_pending_image(sample_image))
        result = _run(fake_admin, draft)

        assert isinstance(result.draft.metadata.logo, RemoteImage)
        assert result.draft.metadata.logo.url.endswith("logo.png")


class TestImagesAndVerification:
    """Tests for the image batch and the count check."""

    @pytest.fixture
    def draft_with_images(self, valid_draft, sample_image):
        section = valid_draft.sections[0]
        question = section.questions[0]
        image = load_pending_image(sample_image)
        draft = valid_draft.set_question_image(section.id, question.id, image)
        return draft.set_option_image(section.id, question.id, question.options[0].id, image)

    def test_run_when_uploads_succeed_then_images_remote(self, fake_admin, draft_with_images):
        result = _run(fake_admin, draft_with_images)
        question = result.draft.sections[0].questions[0]

        assert isinstance(question.image, RemoteImage)
        assert question.image.url == f"https://cdn.test/questions/{question.id}/sample.png"
        assert isinstance(question.options[0].image, RemoteImage)
        assert result.outcome is SubmissionOutcome.SUCCESS

    def test_run_when_upload_fails_then_collected_not_raised(self, fake_admin, draft_with_images):
        fake_admin.fail_on("upload_option_image", status=413, message="File too large")

        result = _run(fake_admin, draft_with_images)

        assert result.outcome is SubmissionOutcome.SUCCESS_WITH_IMAGE_FAILURES
        assert not result.ok
        failure, = result.image_failures
        assert failure.kind is EntityKind.OPTION
        assert failure.message == "File too large"
        option = result.draft.sections[0].questions[0].options[0]
        assert isinstance(option.image, PendingImage)
        assert isinstance(result.draft.sections[0].questions[0].image, RemoteImage)
        assert any("image upload(s) failed" in w for w in result.warnings)

    def test_run_when_server_count_differs_then_count_mismatch(self, fake_admin, valid_draft):
        fake_admin.structure_override = []

        result = _run(fake_admin, valid_draft)

        assert result.outcome is SubmissionOutcome.COUNT_MISMATCH
        assert result.persisted_questions == 0
        assert result.expected_questions == 1

    def test_run_when_verify_fetch_fails_then_warning_only(self, fake_admin, valid_draft):
        fake_admin.structure_error = True

        result = _run(fake_admin, valid_draft)

        assert result.outcome is SubmissionOutcome.SUCCESS
        assert result.persisted_questions is None
        assert "Could not verify the saved question count" in result.warnings


class TestDeletions:
    """Tests for server-side deletion of removed entities."""

    @pytest.fixture
    def saved(self, fake_admin, valid_draft):
        draft = _run(fake_admin, valid_draft).draft
        section = draft.sections[0]
        draft = draft.add_option(section.id, section.questions[0].id)
        draft = _run(fake_admin, draft).draft
        fake_admin.calls.clear()
        return draft

    def test_run_when_option_removed_then_deleted_after_updates(self, fake_admin, saved):
        section = saved.sections[0]
        question = section.questions[0]
        removed_id = question.options[2].id
        draft = saved.remove_option(section.id, question.id, removed_id)

        result = _run(fake_admin, draft)

        names = fake_admin.names()
        assert names.index("delete_option") > max(i for i, n in enumerate(names) if n.startswith("update_"))
        assert str(removed_id) not in fake_admin.options
        assert result.draft.removed == ()

    def test_run_when_already_deleted_then_treated_as_done(self, fake_admin, saved):
        section = saved.sections[0]
        question = section.questions[0]
        draft = saved.remove_option(section.id, question.id, question.options[2].id)
        fake_admin.fail_on("delete_option", status=404, message="Option not found")

        result = _run(fake_admin, draft)

        assert result.ok
        assert result.draft.removed == ()

    def test_run_when_delete_fails_then_pending_deletion_kept(self, fake_admin, saved):
        section = saved.sections[0]
        question = section.questions[0]
        draft = saved.remove_option(section.id, question.id, question.options[2].id)
        draft = draft.remove_section(section.id)
        fake_admin.fail_on("delete_section", status=500)

        with pytest.raises(SyncError) as exc_info:
            _run(fake_admin, draft)

        assert [r.kind for r in exc_info.value.partial_draft.removed] == [EntityKind.SECTION]


def test_run_when_exam_id_missing_then_temporary_assigned(fake_admin):
    result = _run(fake_admin, ExamDraft())

    assert isinstance(result.draft.exam_id, PersistedId)
    assert fake_admin.names()[0] == "create_exam"
