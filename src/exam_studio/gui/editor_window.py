"""
Main editor window.

Left: structure tree. Right: detail form for the selected row and the
live validation issue list. Bottom: submission progress and console log.
Submissions run on a QThread and report back through signals.
"""
from __future__ import annotations

import logging
import queue
from typing import Optional

from PySide6.QtCore import Qt, QThread, QTimer, Signal
from PySide6.QtGui import QAction
from PySide6.QtWidgets import (
    QFileDialog, QInputDialog, QListWidget, QMainWindow, QMessageBox,
    QProgressBar, QScrollArea, QSplitter, QToolBar, QVBoxLayout, QWidget,
)

from exam_studio.api.client import ApiError
from exam_studio.api.taxonomy_service import TaxonomyService
from exam_studio.core.models.draft import DraftError, EntityKind
from exam_studio.core.models.images import ImageAttachmentError
from exam_studio.core.models.sections import Language
from exam_studio.editor.config import EditorConfig
from exam_studio.editor.session import (
    ExamEditorSession,
    ImageUploadError,
    SubmissionBlockedError,
    SubmissionInProgressError,
)
from exam_studio.editor.sync import SubmissionOutcome, SubmissionResult, SyncError, SyncProgress
from exam_studio.gui.utils.logging_utils import attach_queue_handler, detach_queue_handler
from exam_studio.gui.widgets.console_widget import ConsoleWidget
from exam_studio.gui.widgets.detail_panel import DetailPanel
from exam_studio.gui.widgets.structure_tree import EXAM_SELECTION, StructureTree, TreeSelection

logger = logging.getLogger(__name__)


class SubmitWorker(QThread):
    """Runs save_draft() or publish() off the GUI thread."""
    progress = Signal(object)
    succeeded = Signal(object)
    failed = Signal(object)

    def __init__(self, session: ExamEditorSession, publish: bool, bilingual: bool = False):
        super().__init__()
        self.session = session
        self.publish = publish
        self.bilingual = bilingual

    def run(self):
        try:
            if self.publish:
                result = self.session.publish(bilingual=self.bilingual, progress=self.progress.emit)
            else:
                result = self.session.save_draft(progress=self.progress.emit)
        except (SyncError, ApiError, SubmissionBlockedError, SubmissionInProgressError) as e:
            self.failed.emit(e)
        except Exception as e:
            logger.exception(f"Submission crashed: {e}")
            self.failed.emit(e)
        else:
            self.succeeded.emit(result)


class TaxonomyWorker(QThread):
    """Background fetch of categories and difficulties for the exam form."""
    categories_loaded = Signal(list)
    difficulties_loaded = Signal(list)

    def __init__(self, taxonomy: TaxonomyService):
        super().__init__()
        self.taxonomy = taxonomy

    def run(self):
        try:
            categories = list(self.taxonomy.get_categories())
        except ApiError as e:
            logger.warning(f"Could not load categories: {e}")
            categories = []
        self.categories_loaded.emit(categories)

        try:
            difficulties = list(self.taxonomy.get_difficulties())
        except ApiError as e:
            logger.warning(f"Could not load difficulties: {e}")
            difficulties = []
        self.difficulties_loaded.emit(difficulties)


class SubcategoryWorker(QThread):
    """Fetch the subcategories of one category."""
    finished_loading = Signal(str, list)

    def __init__(self, taxonomy: TaxonomyService, category_id: str):
        super().__init__()
        self.taxonomy = taxonomy
        self.category_id = category_id

    def run(self):
        try:
            subcategories = list(self.taxonomy.get_subcategories(self.category_id))
        except ApiError as e:
            logger.warning(f"Could not load subcategories for category {self.category_id}: {e}")
            subcategories = []
        self.finished_loading.emit(self.category_id, subcategories)


class EditorWindow(QMainWindow):
    def __init__(
        self,
        session: ExamEditorSession,
        taxonomy: Optional[TaxonomyService] = None,
        config: Optional[EditorConfig] = None,
    ):
        super().__init__()
        self.session = session
        self.taxonomy = taxonomy
        self.config = config or EditorConfig()
        self._worker: Optional[SubmitWorker] = None
        self._background: list[QThread] = []

        self.setWindowTitle("Exam Studio")
        self.resize(1280, 860)

        self._build_actions()
        self._build_layout()

        # Log capture (drained on the GUI thread)
        self.log_queue: queue.Queue = queue.Queue()
        self._log_handler = attach_queue_handler(self.log_queue, "exam_studio")
        self.log_timer = QTimer(self)
        self.log_timer.timeout.connect(self._drain_log_queue)
        self.log_timer.start(100)

        self.autosave_timer = QTimer(self)
        self.autosave_timer.timeout.connect(self.session.autosave_now)
        if self.config.autosave_interval_ms:
            self.autosave_timer.start(self.config.autosave_interval_ms)

        self.tree.selection_changed.connect(self._on_selection)
        self.detail.edit_requested.connect(self.apply_edit)
        self.detail.attach_image_requested.connect(self._attach_image)
        self.detail.clear_image_requested.connect(self._clear_image)
        self.detail.subcategories_requested.connect(self._load_subcategories)
        self.detail.taxonomy_create_requested.connect(self.create_taxonomy)

        if self.taxonomy is not None:
            worker = TaxonomyWorker(self.taxonomy)
            worker.categories_loaded.connect(self.detail.exam_form.set_categories)
            worker.difficulties_loaded.connect(self.detail.exam_form.set_difficulties)
            self._start_background(worker)
        self.refresh()

    # ─────────────────────────────────────────────────────────────────────────
    # Layout
    # ─────────────────────────────────────────────────────────────────────────

    def _build_actions(self):
        toolbar = QToolBar("Editor")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        def action(text, slot, checkable=False):
            act = QAction(text, self)
            act.setCheckable(checkable)
            if not checkable:
                act.triggered.connect(slot)
            toolbar.addAction(act)
            return act

        self.new_action = action("New", self.new_exam)
        self.open_action = action("Open...", self.open_exam)
        toolbar.addSeparator()
        self.add_section_action = action("Add Section", lambda: self.add_section(Language.ENGLISH))
        self.add_hindi_section_action = action("Add Hindi Section", lambda: self.add_section(Language.HINDI))
        self.add_question_action = action("Add Question", self.add_question)
        self.add_option_action = action("Add Option", self.add_option)
        self.remove_action = action("Remove", self.remove_selected)
        toolbar.addSeparator()
        self.bilingual_action = action("Bilingual checks", None, checkable=True)
        self.bilingual_action.toggled.connect(lambda _: self.refresh())
        self.save_action = action("Save Draft", lambda: self.submit(publish=False))
        self.publish_action = action("Publish", lambda: self.submit(publish=True))

        self._edit_actions = [
            self.new_action, self.open_action, self.add_section_action,
            self.add_hindi_section_action, self.add_question_action, self.add_option_action,
            self.remove_action, self.save_action, self.publish_action,
        ]

    def _build_layout(self):
        self.tree = StructureTree()
        self.detail = DetailPanel()
        detail_scroll = QScrollArea()
        detail_scroll.setWidgetResizable(True)
        detail_scroll.setWidget(self.detail)

        self.issues = QListWidget()
        self.issues.setMaximumHeight(160)

        right = QWidget()
        right_layout = QVBoxLayout(right)
        right_layout.setContentsMargins(0, 0, 0, 0)
        right_layout.addWidget(detail_scroll, 1)
        right_layout.addWidget(self.issues)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.addWidget(self.tree)
        splitter.addWidget(right)
        splitter.setStretchFactor(1, 1)

        self.progress = QProgressBar()
        self.progress.setTextVisible(True)
        self.progress.setFormat("Idle")
        self.progress.setValue(0)
        self.console = ConsoleWidget()
        self.console.setMaximumHeight(180)

        central = QWidget()
        layout = QVBoxLayout(central)
        layout.addWidget(splitter, 1)
        layout.addWidget(self.progress)
        layout.addWidget(self.console)
        self.setCentralWidget(central)

    # ─────────────────────────────────────────────────────────────────────────
    # Rendering
    # ─────────────────────────────────────────────────────────────────────────

    def refresh(self):
        draft = self.session.draft
        report = self.session.validate(bilingual=self.bilingual_action.isChecked())
        self.tree.set_draft(draft, report)

        self.issues.clear()
        if report.is_valid:
            self.issues.addItem("Ready to publish")
        else:
            self.issues.addItems(list(report.violations))
        self.publish_action.setEnabled(report.is_valid and not self.session.is_submitting)

    def _on_selection(self, selection: TreeSelection):
        try:
            self.detail.show_selection(self.session.draft, selection)
        except DraftError:
            self.detail.show_selection(self.session.draft, EXAM_SELECTION)

    def _drain_log_queue(self):
        while True:
            try:
                msg = self.log_queue.get_nowait()
                if isinstance(msg, tuple) and len(msg) == 2:
                    text, level = msg
                    self.console.append_log(level, text)
                else:
                    self.console.append_log("INFO", str(msg))
                self.log_queue.task_done()
            except queue.Empty:
                break

    # ─────────────────────────────────────────────────────────────────────────
    # Editing
    # ─────────────────────────────────────────────────────────────────────────

    def apply_edit(self, mutation):
        if self.session.is_submitting:
            return
        try:
            self.session.edit(mutation)
        except (DraftError, ValueError, IndexError) as e:
            self.statusBar().showMessage(str(e), 5000)
            logger.warning(f"Edit rejected: {e}")
        self.refresh()

    def new_exam(self):
        self.session.new()
        self.refresh()

    def open_exam(self):
        exam_id, ok = QInputDialog.getText(self, "Open exam", "Exam id:")
        if not ok or not exam_id.strip():
            return
        try:
            self.session.load(exam_id.strip())
        except ApiError as e:
            QMessageBox.warning(self, "Open exam", f"Failed to load exam data: {e}")
            return
        self.offer_recovery(exam_id.strip())
        self.refresh()

    def offer_recovery(self, exam_id: Optional[str] = None) -> bool:
        """Ask whether to restore the autosaved snapshot for an exam, if there is one."""
        key = self.session.recoverable_key(exam_id)
        if key is None:
            return False
        what = f"exam {exam_id}" if exam_id else "the unsaved exam"
        answer = QMessageBox.question(self, "Exam Studio", f"Recover unsaved changes to {what} from your last session?")
        if answer != QMessageBox.StandardButton.Yes:
            return False
        recovered = self.session.recover(key) is not None
        self.refresh()
        return recovered

    # ─────────────────────────────────────────────────────────────────────────
    # Taxonomy
    # ─────────────────────────────────────────────────────────────────────────

    def _start_background(self, worker: QThread) -> None:
        self._background = [w for w in self._background if w.isRunning()]
        self._background.append(worker)
        worker.start()

    def _load_subcategories(self, category_id: str):
        if self.taxonomy is None or not category_id:
            return
        worker = SubcategoryWorker(self.taxonomy, category_id)
        worker.finished_loading.connect(self.detail.exam_form.set_subcategories)
        self._start_background(worker)

    def create_taxonomy(self, kind: str):
        """Create a category, subcategory or difficulty and select it on the exam."""
        if self.taxonomy is None:
            self.statusBar().showMessage("Taxonomy service unavailable", 5000)
            return
        category_id = self.session.draft.metadata.category_id
        if kind == "subcategory" and not category_id:
            self.statusBar().showMessage("Select a category first", 5000)
            return
        name, ok = QInputDialog.getText(self, f"New {kind}", "Name:")
        name = name.strip()
        if not ok or not name:
            return

        form = self.detail.exam_form
        try:
            if kind == "category":
                created = self.taxonomy.create_category(name)
                form.add_category(created)
            elif kind == "subcategory":
                created = self.taxonomy.create_subcategory(category_id, name)
                form.add_subcategory(created)
            else:
                created = self.taxonomy.create_difficulty(name)
                form.add_difficulty(created)
        except ApiError as e:
            QMessageBox.warning(self, f"New {kind}", f"Could not create {kind}: {e}")
            return
        self.statusBar().showMessage(f"Created {kind} {created.name!r}", 5000)

    # ─────────────────────────────────────────────────────────────────────────
    # Structure
    # ─────────────────────────────────────────────────────────────────────────

    def add_section(self, language: Language):
        self.apply_edit(lambda d: d.add_section(language))
        self.tree.select(TreeSelection(EntityKind.SECTION, self.session.draft.sections[-1].id))

    def add_question(self):
        sel = self.tree.current_selection()
        if sel.section_id is None:
            self.statusBar().showMessage("Select a section first", 4000)
            return
        self.apply_edit(lambda d: d.add_question(sel.section_id))

    def add_option(self):
        sel = self.tree.current_selection()
        if sel.question_id is None:
            self.statusBar().showMessage("Select a question first", 4000)
            return
        self.apply_edit(lambda d: d.add_option(sel.section_id, sel.question_id))

    def remove_selected(self):
        sel = self.tree.current_selection()
        draft = self.session.draft
        if sel.kind is EntityKind.SECTION:
            self.apply_edit(lambda d: d.remove_section(sel.section_id))
        elif sel.kind is EntityKind.QUESTION:
            self.apply_edit(lambda d: d.remove_question(sel.section_id, sel.question_id))
        elif sel.kind is EntityKind.OPTION:
            if not draft.can_remove_option(sel.section_id, sel.question_id):
                self.statusBar().showMessage("A question needs at least 2 options", 4000)
                return
            self.apply_edit(lambda d: d.remove_option(sel.section_id, sel.question_id, sel.option_id))

    def _attach_image(self, sel: TreeSelection):
        path, _ = QFileDialog.getOpenFileName(
            self, "Attach image", "", "Images (*.png *.jpg *.jpeg *.gif *.webp)"
        )
        if not path:
            return
        try:
            if sel.kind is EntityKind.QUESTION:
                self.session.attach_question_image(sel.section_id, sel.question_id, path)
            else:
                self.session.attach_option_image(sel.section_id, sel.question_id, sel.option_id, path)
        except (ImageAttachmentError, ImageUploadError) as e:
            QMessageBox.warning(self, "Image", str(e))
        self.refresh()

    def _clear_image(self, sel: TreeSelection):
        try:
            if sel.kind is EntityKind.QUESTION:
                self.session.clear_question_image(sel.section_id, sel.question_id)
            else:
                self.session.clear_option_image(sel.section_id, sel.question_id, sel.option_id)
        except ImageUploadError as e:
            QMessageBox.warning(self, "Image", str(e))
        self.refresh()

    # ─────────────────────────────────────────────────────────────────────────
    # Submission
    # ─────────────────────────────────────────────────────────────────────────

    def submit(self, publish: bool):
        if self._worker is not None and self._worker.isRunning():
            return
        self._set_locked(True)
        self.progress.setFormat("Starting...")
        self._worker = SubmitWorker(self.session, publish, self.bilingual_action.isChecked())
        self._worker.progress.connect(self._on_progress)
        self._worker.succeeded.connect(self._on_submitted)
        self._worker.failed.connect(self._on_submit_failed)
        self._worker.start()

    def _set_locked(self, locked: bool):
        for act in self._edit_actions:
            act.setEnabled(not locked)
        self.tree.setEnabled(not locked)
        self.detail.setEnabled(not locked)

    def _on_progress(self, progress: SyncProgress):
        self.progress.setMaximum(max(progress.total, 1))
        self.progress.setValue(progress.completed)
        self.progress.setFormat(f"{progress.message} (%v/%m)")

    def _on_submitted(self, result: SubmissionResult):
        self._set_locked(False)
        self.progress.setFormat("Saved")
        self.refresh()
        if result.outcome is SubmissionOutcome.SUCCESS:
            self.statusBar().showMessage("Exam saved with all sections and questions", 5000)
        else:
            QMessageBox.warning(self, "Saved with warnings", "\n".join(result.warnings))

    def _on_submit_failed(self, error: Exception):
        self._set_locked(False)
        self.progress.setFormat("Failed")
        self.refresh()
        if isinstance(error, SubmissionBlockedError):
            QMessageBox.information(self, "Cannot publish", str(error))
        else:
            QMessageBox.critical(self, "Save failed", f"{error}\n\nFix the problem and save again.")

    def closeEvent(self, event):
        self.session.autosave_now()
        self.log_timer.stop()
        for worker in self._background:
            worker.wait(2000)
        detach_queue_handler(self._log_handler, "exam_studio")
        super().closeEvent(event)
