"""Unit tests for EditorWindow."""

from unittest.mock import MagicMock, patch

import pytest
from PySide6.QtWidgets import QMessageBox

from exam_studio.api.client import ApiError
from exam_studio.api.taxonomy_service import Category, Difficulty, Subcategory
from exam_studio.core.models import EntityKind, PersistedId
from exam_studio.editor.autosave import DraftSnapshotStore
from exam_studio.editor.config import EditorConfig
from exam_studio.editor.session import ExamEditorSession
from exam_studio.gui.editor_window import EditorWindow
from exam_studio.gui.widgets.structure_tree import TreeSelection


@pytest.fixture
def make_window(qtbot, fake_admin):
    """Build an EditorWindow around a session using the fake admin service."""

    def factory(draft=None, taxonomy=None):
        session = ExamEditorSession(fake_admin, upload_workers=1, draft=draft)
        window = EditorWindow(session, taxonomy, EditorConfig(autosave_interval_ms=0))
        qtbot.addWidget(window)
        return window

    return factory


def _issues(window):
    return [window.issues.item(i).text() for i in range(window.issues.count())]


class TestEditing:
    """Tests for toolbar editing actions."""

    def test_add_section_when_triggered_then_section_selected(self, make_window):
        window = make_window()

        window.add_section_action.trigger()

        draft = window.session.draft
        assert len(draft.sections) == 1
        assert window.tree.current_selection() == TreeSelection(EntityKind.SECTION, draft.sections[0].id)

    def test_add_question_when_no_section_selected_then_status_message(self, make_window):
        window = make_window()

        window.add_question_action.trigger()

        assert window.session.draft.sections == ()
        assert window.statusBar().currentMessage() == "Select a section first"

    def test_add_question_when_section_selected_then_four_options(self, make_window):
        window = make_window()
        window.add_section_action.trigger()

        window.add_question_action.trigger()

        question = window.session.draft.sections[0].questions[0]
        assert len(question.options) == 4

    def test_remove_option_when_at_minimum_then_refused(self, make_window, valid_draft):
        window = make_window(valid_draft)
        section = valid_draft.sections[0]
        question = section.questions[0]
        window.tree.select(TreeSelection(EntityKind.OPTION, section.id, question.id, question.options[0].id))

        window.remove_action.trigger()

        assert len(window.session.draft.sections[0].questions[0].options) == 2
        assert "at least 2 options" in window.statusBar().currentMessage()

    def test_apply_edit_when_mutation_invalid_then_draft_kept(self, make_window, valid_draft):
        window = make_window(valid_draft)

        window.apply_edit(lambda d: d.update_exam("pass_percentage", 150))

        assert window.session.draft is valid_draft
        assert "pass_percentage" in window.statusBar().currentMessage()


class TestValidationDisplay:
    def test_refresh_when_valid_then_ready_and_publish_enabled(self, make_window, valid_draft):
        window = make_window(valid_draft)

        assert _issues(window) == ["Ready to publish"]
        assert window.publish_action.isEnabled()

    def test_refresh_when_invalid_then_issues_listed_and_publish_disabled(self, make_window):
        window = make_window()

        assert "Add at least one section" in _issues(window)
        assert not window.publish_action.isEnabled()

    def test_bilingual_when_toggled_then_english_section_required(self, make_window, valid_draft):
        section = valid_draft.sections[0]
        window = make_window(valid_draft.update_section(section.id, "language", "hi"))
        assert window.publish_action.isEnabled()

        window.bilingual_action.setChecked(True)

        assert "Add at least one English section" in _issues(window)


class TestSubmission:
    def test_submit_when_saved_then_ids_persisted_and_unlocked(self, make_window, qtbot, valid_draft):
        window = make_window(valid_draft)

        window.submit(publish=False)
        qtbot.waitUntil(lambda: window.progress.format() == "Saved", timeout=5000)

        assert isinstance(window.session.draft.exam_id, PersistedId)
        assert window.save_action.isEnabled()
        assert window.tree.isEnabled()

    def test_submit_when_step_fails_then_error_shown(self, make_window, qtbot, fake_admin, valid_draft):
        fake_admin.fail_on("create_section")
        window = make_window(valid_draft)

        with patch("exam_studio.gui.editor_window.QMessageBox.critical") as critical:
            window.submit(publish=False)
            qtbot.waitUntil(lambda: window.progress.format() == "Failed", timeout=5000)

        critical.assert_called_once()
        assert "Server exploded" in critical.call_args[0][2]
        assert isinstance(window.session.draft.exam_id, PersistedId)


def test_taxonomy_when_loaded_then_categories_offered(make_window, qtbot):
    taxonomy = MagicMock()
    taxonomy.get_categories.return_value = [Category(id="c1", name="Banking", slug="banking")]

    window = make_window(taxonomy=taxonomy)
    combo = window.detail.exam_form.category
    qtbot.waitUntil(lambda: combo.count() == 2, timeout=5000)

    assert combo.itemText(1) == "Banking"


class TestRecovery:
    """Tests for restoring autosaved snapshots."""

    def _window(self, qtbot, fake_admin, store, draft=None):
        session = ExamEditorSession(fake_admin, autosave=store, upload_workers=1, draft=draft)
        window = EditorWindow(session, None, EditorConfig(autosave_interval_ms=0))
        qtbot.addWidget(window)
        return window

    def test_offer_recovery_when_accepted_then_persisted_exam_snapshot_restored(
        self, qtbot, fake_admin, valid_draft, tmp_path
    ):
        store = DraftSnapshotStore(tmp_path / "autosave")
        saved = ExamEditorSession(fake_admin, draft=valid_draft).save_draft().draft
        store.save(saved.update_exam("title", "Unsaved edit"))
        window = self._window(qtbot, fake_admin, store)
        window.session.load(saved.exam_id)

        with patch(
            "exam_studio.gui.editor_window.QMessageBox.question",
            return_value=QMessageBox.StandardButton.Yes,
        ) as question:
            assert window.offer_recovery(str(saved.exam_id))

        assert str(saved.exam_id) in question.call_args[0][2]
        assert window.session.draft.metadata.title == "Unsaved edit"
        assert window.tree.topLevelItem(0).text(0) == "Unsaved edit"

    def test_offer_recovery_when_declined_then_loaded_draft_kept(self, qtbot, fake_admin, valid_draft, tmp_path):
        store = DraftSnapshotStore(tmp_path / "autosave")
        store.save(valid_draft.update_exam("title", "Unsaved edit"))
        window = self._window(qtbot, fake_admin, store, draft=valid_draft)

        with patch(
            "exam_studio.gui.editor_window.QMessageBox.question",
            return_value=QMessageBox.StandardButton.No,
        ):
            assert not window.offer_recovery()

        assert window.session.draft.metadata.title == "Geography Mock 1"

    def test_offer_recovery_when_no_snapshot_then_not_asked(self, qtbot, fake_admin, tmp_path):
        window = self._window(qtbot, fake_admin, DraftSnapshotStore(tmp_path / "autosave"))

        with patch("exam_studio.gui.editor_window.QMessageBox.question") as question:
            assert not window.offer_recovery("exam-9")

        question.assert_not_called()


def test_submit_when_unexpected_error_then_failure_shown_and_unlocked(make_window, qtbot, valid_draft, monkeypatch):
    window = make_window(valid_draft)

    def broken(**kwargs):
        raise TypeError("bad payload")

    monkeypatch.setattr(window.session, "save_draft", broken)

    with patch("exam_studio.gui.editor_window.QMessageBox.critical") as critical:
        window.submit(publish=False)
        qtbot.waitUntil(lambda: window.progress.format() == "Failed", timeout=5000)

    assert "bad payload" in critical.call_args[0][2]
    assert window.save_action.isEnabled()
    assert window.tree.isEnabled()


@pytest.fixture
def taxonomy():
    service = MagicMock()
    service.get_categories.return_value = [Category(id="cat-1", name="General Knowledge")]
    service.get_difficulties.return_value = [Difficulty(id="d1", name="Easy")]
    service.get_subcategories.return_value = [Subcategory(id="sub-1", category_id="cat-1", name="Rivers")]
    return service


class TestTaxonomy:
    """Tests for taxonomy loading and inline creation."""

    def test_load_when_exam_has_category_then_subcategories_and_difficulties_offered(
        self, make_window, qtbot, taxonomy, valid_draft
    ):
        window = make_window(valid_draft, taxonomy=taxonomy)
        form = window.detail.exam_form

        qtbot.waitUntil(lambda: form.subcategory.count() == 2 and form.difficulty.count() == 2, timeout=5000)

        taxonomy.get_subcategories.assert_called_with("cat-1")
        assert form.subcategory.itemText(1) == "Rivers"
        assert form.difficulty.itemText(1) == "Easy"

    def test_create_when_difficulty_named_then_selected_on_exam(self, make_window, qtbot, taxonomy, valid_draft):
        taxonomy.create_difficulty.return_value = Difficulty(id="d9", name="Hard")
        window = make_window(valid_draft, taxonomy=taxonomy)
        qtbot.waitUntil(lambda: window.detail.exam_form.difficulty.count() == 2, timeout=5000)

        with patch("exam_studio.gui.editor_window.QInputDialog.getText", return_value=("Hard ", True)):
            window.create_taxonomy("difficulty")

        taxonomy.create_difficulty.assert_called_once_with("Hard")
        meta = window.session.draft.metadata
        assert (meta.difficulty_id, meta.difficulty) == ("d9", "Hard")

    def test_create_when_subcategory_named_then_created_under_exam_category(
        self, make_window, qtbot, taxonomy, valid_draft
    ):
        taxonomy.create_subcategory.return_value = Subcategory(id="sub-7", category_id="cat-1", name="Lakes")
        window = make_window(valid_draft, taxonomy=taxonomy)
        qtbot.waitUntil(lambda: window.detail.exam_form.subcategory.count() == 2, timeout=5000)

        with patch("exam_studio.gui.editor_window.QInputDialog.getText", return_value=("Lakes", True)):
            window.create_taxonomy("subcategory")

        taxonomy.create_subcategory.assert_called_once_with("cat-1", "Lakes")
        assert window.session.draft.metadata.subcategory_id == "sub-7"

    def test_create_when_subcategory_without_category_then_refused(self, make_window, taxonomy):
        window = make_window(taxonomy=taxonomy)

        with patch("exam_studio.gui.editor_window.QInputDialog.getText") as get_text:
            window.create_taxonomy("subcategory")

        get_text.assert_not_called()
        assert window.statusBar().currentMessage() == "Select a category first"

    def test_create_when_server_rejects_then_warning_and_draft_unchanged(self, make_window, taxonomy, valid_draft):
        taxonomy.create_category.side_effect = ApiError(409, "Category already exists")
        window = make_window(valid_draft, taxonomy=taxonomy)

        with patch("exam_studio.gui.editor_window.QInputDialog.getText", return_value=("Banking", True)), \
                patch("exam_studio.gui.editor_window.QMessageBox.warning") as warning:
            window.create_taxonomy("category")

        assert "Category already exists" in warning.call_args[0][2]
        assert window.session.draft.metadata.category_id == "cat-1"
