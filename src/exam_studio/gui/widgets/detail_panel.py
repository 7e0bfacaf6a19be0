"""
Detail forms for the row selected in the structure tree.

Forms never touch the draft directly: every change is emitted as a pure
mutation (ExamDraft -> ExamDraft) through `edit_requested`, and image
buttons ask the window to go through the session.
"""
from __future__ import annotations

from typing import Callable, Optional

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QCheckBox, QComboBox, QDoubleSpinBox, QFormLayout, QHBoxLayout, QLabel,
    QLineEdit, QPushButton, QSpinBox, QStackedWidget, QWidget,
)

from exam_studio.api.taxonomy_service import Category, Difficulty, Subcategory
from exam_studio.core.models.draft import EntityKind, ExamDraft
from exam_studio.core.models.exam import ExamMetadata, ExamStatus, ExamType
from exam_studio.core.models.questions import QuestionDifficulty, QuestionType
from exam_studio.core.utils.urls import build_exam_url
from exam_studio.gui.widgets.structure_tree import TreeSelection

Mutation = Callable[[ExamDraft], ExamDraft]

NO_SELECTION = "(none)"


def _spin(maximum: int = 100000) -> QSpinBox:
    box = QSpinBox()
    box.setRange(0, maximum)
    return box


def _dspin(maximum: float = 100000.0) -> QDoubleSpinBox:
    box = QDoubleSpinBox()
    box.setRange(0.0, maximum)
    box.setDecimals(2)
    return box


def _enum_combo(enum_cls) -> QComboBox:
    combo = QComboBox()
    for member in enum_cls:
        combo.addItem(member.value.replace("_", " ").title(), member.value)
    return combo


def _select_data(combo: QComboBox, value) -> None:
    index = combo.findData(value)
    combo.setCurrentIndex(max(index, 0))


def _image_text(image, requires: bool) -> str:
    if image is None:
        return "Image required" if requires else "No image"
    if image.is_pending:
        return f"Pending upload: {image.filename}"
    return image.url


class _Form(QWidget):
    """Base form: tracks population so programmatic updates emit nothing."""

    def __init__(self, panel: "DetailPanel"):
        super().__init__()
        self.panel = panel
        self.form_layout = QFormLayout(self)
        self._loading = False

    def emit(self, mutation: Mutation) -> None:
        if not self._loading:
            self.panel.edit_requested.emit(mutation)


def _combo_row(combo: QComboBox, button: QPushButton) -> QHBoxLayout:
    row = QHBoxLayout()
    row.addWidget(combo, 1)
    row.addWidget(button)
    return row


class ExamForm(_Form):
    def __init__(self, panel: "DetailPanel"):
        super().__init__(panel)
        self._meta: Optional[ExamMetadata] = None
        self._category_slugs: dict[str, str] = {}
        self._subcategory_slugs: dict[str, str] = {}
        self._subcategories_for: Optional[str] = None

        self.title = QLineEdit()
        self.description = QLineEdit()
        self.slug = QLineEdit()
        self.url_preview = QLabel()
        self.category = QComboBox()
        self.new_category = QPushButton("New...")
        self.subcategory = QComboBox()
        self.new_subcategory = QPushButton("New...")
        self.difficulty = QComboBox()
        self.new_difficulty = QPushButton("New...")
        for combo in (self.category, self.subcategory, self.difficulty):
            combo.addItem(NO_SELECTION, "")
        self.duration = _spin()
        self.total_marks = _dspin()
        self.total_questions = _spin()
        self.sync_totals = QPushButton("Sync totals from sections")
        self.exam_type = _enum_combo(ExamType)
        self.show_in_mock_tests = QCheckBox("Show in mock tests")
        self.allow_anytime = QCheckBox("Available anytime")
        self.status = _enum_combo(ExamStatus)
        self.start_date = QLineEdit()
        self.start_date.setPlaceholderText("YYYY-MM-DD")
        self.end_date = QLineEdit()
        self.end_date.setPlaceholderText("YYYY-MM-DD")
        self.pass_percentage = _dspin(100.0)
        self.is_free = QCheckBox("Free")
        self.price = _dspin()
        self.negative_marking = QCheckBox("Negative marking")
        self.negative_mark_value = _dspin(100.0)
        self.syllabus_entry = QLineEdit()
        self.syllabus_entry.setPlaceholderText("Add syllabus topic and press Enter")
        self.syllabus_list = QLabel()
        self.syllabus_list.setWordWrap(True)

        for label, widget in (
            ("Title", self.title), ("Description", self.description), ("Slug", self.slug),
            ("Public URL", self.url_preview),
            ("Category", _combo_row(self.category, self.new_category)),
            ("Subcategory", _combo_row(self.subcategory, self.new_subcategory)),
            ("Difficulty", _combo_row(self.difficulty, self.new_difficulty)),
            ("Duration (min)", self.duration), ("Total marks", self.total_marks),
            ("Total questions", self.total_questions), ("", self.sync_totals),
            ("Type", self.exam_type), ("", self.show_in_mock_tests), ("", self.allow_anytime),
            ("Status", self.status), ("Start date", self.start_date), ("End date", self.end_date),
            ("Pass %", self.pass_percentage), ("", self.is_free), ("Price", self.price),
            ("", self.negative_marking), ("Negative mark", self.negative_mark_value),
            ("Syllabus", self.syllabus_entry), ("", self.syllabus_list),
        ):
            self.form_layout.addRow(label, widget)

        self._connect_text(self.title, "title")
        self._connect_text(self.description, "description")
        self._connect_text(self.slug, "slug")
        self._connect_text(self.start_date, "start_date")
        self._connect_text(self.end_date, "end_date")
        self._connect_value(self.duration, "duration")
        self._connect_value(self.total_marks, "total_marks")
        self._connect_value(self.total_questions, "total_questions")
        self._connect_value(self.pass_percentage, "pass_percentage")
        self._connect_value(self.price, "price")
        self._connect_value(self.negative_mark_value, "negative_mark_value")
        self._connect_check(self.show_in_mock_tests, "show_in_mock_tests")
        self._connect_check(self.is_free, "is_free")
        self._connect_check(self.negative_marking, "negative_marking")
        self.exam_type.currentIndexChanged.connect(
            lambda _: self.emit(lambda d: d.update_exam("exam_type", self.exam_type.currentData()))
        )
        self.status.currentIndexChanged.connect(
            lambda _: self.emit(lambda d: d.update_exam("status", self.status.currentData()))
        )
        self.allow_anytime.toggled.connect(
            lambda checked: self.emit(lambda d: d.set_allow_anytime(checked))
        )
        self.category.currentIndexChanged.connect(self._on_category)
        self.subcategory.currentIndexChanged.connect(self._on_subcategory)
        self.difficulty.currentIndexChanged.connect(self._on_difficulty)
        for button, kind in (
            (self.new_category, "category"),
            (self.new_subcategory, "subcategory"),
            (self.new_difficulty, "difficulty"),
        ):
            button.clicked.connect(lambda _=False, k=kind: self.panel.taxonomy_create_requested.emit(k))
        self.sync_totals.clicked.connect(lambda: self.emit(lambda d: d.with_derived_totals()))
        self.syllabus_entry.returnPressed.connect(self._on_syllabus)

    def _connect_text(self, edit: QLineEdit, name: str) -> None:
        edit.editingFinished.connect(lambda: self.emit(lambda d: d.update_exam(name, edit.text())))

    def _connect_value(self, box, name: str) -> None:
        box.valueChanged.connect(lambda value: self.emit(lambda d: d.update_exam(name, value)))

    def _connect_check(self, box: QCheckBox, name: str) -> None:
        box.toggled.connect(lambda checked: self.emit(lambda d: d.update_exam(name, checked)))

    def _on_category(self, _index: int) -> None:
        if self._loading:
            return
        category_id = self.category.currentData() or ""
        name = self.category.currentText() if category_id else ""
        # A subcategory belongs to one category
        self.emit(lambda d: (
            d.update_exam("category_id", category_id)
            .update_exam("category", name)
            .update_exam("subcategory_id", "")
            .update_exam("subcategory", "")
        ))
        self._request_subcategories(category_id)

    def _on_subcategory(self, _index: int) -> None:
        subcategory_id = self.subcategory.currentData() or ""
        name = self.subcategory.currentText() if subcategory_id else ""
        self.emit(lambda d: d.update_exam("subcategory_id", subcategory_id).update_exam("subcategory", name))

    def _on_difficulty(self, _index: int) -> None:
        difficulty_id = self.difficulty.currentData() or ""
        name = self.difficulty.currentText() if difficulty_id else ""
        self.emit(lambda d: d.update_exam("difficulty_id", difficulty_id).update_exam("difficulty", name))

    def _on_syllabus(self) -> None:
        text = self.syllabus_entry.text()
        self.syllabus_entry.clear()
        self.emit(lambda d: d.add_syllabus_item(text))

    def _selected(self, field_name: str) -> str:
        return getattr(self._meta, field_name) if self._meta is not None else ""

    def _fill(self, combo: QComboBox, items, selected: str) -> None:
        was_loading = self._loading
        self._loading = True
        try:
            combo.clear()
            combo.addItem(NO_SELECTION, "")
            for item in items:
                combo.addItem(item.name, item.id)
            _select_data(combo, selected)
        finally:
            self._loading = was_loading

    def _request_subcategories(self, category_id: str) -> None:
        if category_id == self._subcategories_for:
            return
        self._subcategories_for = category_id
        self._fill(self.subcategory, [], "")
        self.subcategory.setEnabled(bool(category_id))
        self.new_subcategory.setEnabled(bool(category_id))
        if category_id:
            self.panel.subcategories_requested.emit(category_id)

    def set_categories(self, categories: list[Category]) -> None:
        self._category_slugs = {c.id: c.slug for c in categories}
        self._fill(self.category, categories, self._selected("category_id"))

    def set_subcategories(self, category_id: str, subcategories: list[Subcategory]) -> None:
        """Fill the subcategory list; replies for a category no longer selected are dropped."""
        if category_id != self._subcategories_for:
            return
        self._subcategory_slugs = {s.id: s.slug for s in subcategories}
        self._fill(self.subcategory, subcategories, self._selected("subcategory_id"))

    def set_difficulties(self, difficulties: list[Difficulty]) -> None:
        self._fill(self.difficulty, difficulties, self._selected("difficulty_id"))

    def add_category(self, category: Category) -> None:
        """Append a newly created category and select it."""
        self._category_slugs[category.id] = category.slug
        self.category.addItem(category.name, category.id)
        self.category.setCurrentIndex(self.category.count() - 1)

    def add_subcategory(self, subcategory: Subcategory) -> None:
        if subcategory.category_id != self._subcategories_for:
            return
        self._subcategory_slugs[subcategory.id] = subcategory.slug
        self.subcategory.addItem(subcategory.name, subcategory.id)
        self.subcategory.setCurrentIndex(self.subcategory.count() - 1)

    def add_difficulty(self, difficulty: Difficulty) -> None:
        self.difficulty.addItem(difficulty.name, difficulty.id)
        self.difficulty.setCurrentIndex(self.difficulty.count() - 1)

    def populate(self, draft: ExamDraft) -> None:
        meta = draft.metadata
        self._meta = meta
        self._loading = True
        try:
            self._request_subcategories(meta.category_id)
            self.title.setText(meta.title)
            self.description.setText(meta.description)
            self.slug.setText(meta.slug)
            self.url_preview.setText(build_exam_url(
                meta.title, meta.slug, self._category_slugs.get(meta.category_id),
                self._subcategory_slugs.get(meta.subcategory_id),
            ) or "-")
            _select_data(self.category, meta.category_id)
            _select_data(self.subcategory, meta.subcategory_id)
            _select_data(self.difficulty, meta.difficulty_id)
            self.duration.setValue(meta.duration)
            self.total_marks.setValue(meta.total_marks)
            self.total_questions.setValue(meta.total_questions)
            _select_data(self.exam_type, meta.exam_type.value)
            self.show_in_mock_tests.setChecked(meta.show_in_mock_tests)
            self.show_in_mock_tests.setEnabled(meta.exam_type is ExamType.PAST_PAPER)
            self.allow_anytime.setChecked(meta.allow_anytime)
            _select_data(self.status, meta.status.value)
            self.status.setEnabled(not meta.allow_anytime)
            self.start_date.setText(meta.start_date.isoformat() if meta.start_date else "")
            self.end_date.setText(meta.end_date.isoformat() if meta.end_date else "")
            self.start_date.setEnabled(not meta.allow_anytime)
            self.end_date.setEnabled(not meta.allow_anytime)
            self.pass_percentage.setValue(meta.pass_percentage)
            self.is_free.setChecked(meta.is_free)
            self.price.setValue(meta.price)
            self.price.setEnabled(not meta.is_free)
            self.negative_marking.setChecked(meta.negative_marking)
            self.negative_mark_value.setValue(meta.negative_mark_value)
            self.negative_mark_value.setEnabled(meta.negative_marking)
            self.syllabus_list.setText(
                "\n".join(f"{i + 1}. {item}" for i, item in enumerate(meta.syllabus)) or "-"
            )
        finally:
            self._loading = False


class SectionForm(_Form):
    def __init__(self, panel: "DetailPanel"):
        super().__init__(panel)
        self.selection: Optional[TreeSelection] = None
        self.name = QLineEdit()
        self.name_hi = QLineEdit()
        self.marks_per_question = _dspin()
        self.duration = _spin()
        self.section_order = _spin()
        self.section_order.setMinimum(1)
        self.summary = QLabel()

        for label, widget in (
            ("Name", self.name), ("Name (Hindi)", self.name_hi),
            ("Marks per question", self.marks_per_question), ("Duration (min)", self.duration),
            ("Order", self.section_order), ("", self.summary),
        ):
            self.form_layout.addRow(label, widget)

        for edit, name in ((self.name, "name"), (self.name_hi, "name_hi")):
            edit.editingFinished.connect(
                lambda e=edit, n=name: self._update(n, e.text())
            )
        for box, name in (
            (self.marks_per_question, "marks_per_question"),
            (self.duration, "duration"),
            (self.section_order, "section_order"),
        ):
            box.valueChanged.connect(lambda value, n=name: self._update(n, value))

    def _update(self, name: str, value) -> None:
        section_id = self.selection.section_id
        self.emit(lambda d: d.update_section(section_id, name, value))

    def populate(self, draft: ExamDraft, selection: TreeSelection) -> None:
        self.selection = selection
        section = draft.get_section(selection.section_id)
        self._loading = True
        try:
            self.name.setText(section.name)
            self.name_hi.setText(section.name_hi)
            self.marks_per_question.setValue(section.marks_per_question)
            self.duration.setValue(section.duration)
            self.section_order.setValue(section.section_order)
            self.summary.setText(
                f"{section.total_questions} questions, {section.total_marks:g} marks, "
                f"language: {section.language.value}"
            )
        finally:
            self._loading = False


class QuestionForm(_Form):
    def __init__(self, panel: "DetailPanel"):
        super().__init__(panel)
        self.selection: Optional[TreeSelection] = None
        self.type = _enum_combo(QuestionType)
        self.difficulty = _enum_combo(QuestionDifficulty)
        self.text = QLineEdit()
        self.text_hi = QLineEdit()
        self.marks = _dspin()
        self.negative_marks = _dspin()
        self.explanation = QLineEdit()
        self.explanation_hi = QLineEdit()
        self.image_label = QLabel()
        self.image_label.setWordWrap(True)

        image_row = QHBoxLayout()
        self.attach_image = QPushButton("Attach image...")
        self.clear_image = QPushButton("Remove image")
        self.ignore_image = QPushButton("Ignore image requirement")
        for button in (self.attach_image, self.clear_image, self.ignore_image):
            image_row.addWidget(button)

        for label, widget in (
            ("Type", self.type), ("Difficulty", self.difficulty), ("Text", self.text),
            ("Text (Hindi)", self.text_hi), ("Marks", self.marks),
            ("Negative marks", self.negative_marks), ("Explanation", self.explanation),
            ("Explanation (Hindi)", self.explanation_hi), ("Image", self.image_label),
        ):
            self.form_layout.addRow(label, widget)
        self.form_layout.addRow("", image_row)

        for edit, name in (
            (self.text, "text"), (self.text_hi, "text_hi"),
            (self.explanation, "explanation"), (self.explanation_hi, "explanation_hi"),
        ):
            edit.editingFinished.connect(lambda e=edit, n=name: self._update(n, e.text()))
        for box, name in ((self.marks, "marks"), (self.negative_marks, "negative_marks")):
            box.valueChanged.connect(lambda value, n=name: self._update(n, value))
        self.type.currentIndexChanged.connect(lambda _: self._update("type", self.type.currentData()))
        self.difficulty.currentIndexChanged.connect(
            lambda _: self._update("difficulty", self.difficulty.currentData())
        )
        self.attach_image.clicked.connect(lambda: panel.attach_image_requested.emit(self.selection))
        self.clear_image.clicked.connect(lambda: panel.clear_image_requested.emit(self.selection))
        self.ignore_image.clicked.connect(self._ignore)

    def _update(self, name: str, value) -> None:
        sel = self.selection
        self.emit(lambda d: d.update_question(sel.section_id, sel.question_id, name, value))

    def _ignore(self) -> None:
        sel = self.selection
        self.emit(lambda d: d.ignore_image_requirement(sel.section_id, sel.question_id))

    def populate(self, draft: ExamDraft, selection: TreeSelection) -> None:
        self.selection = selection
        question = draft.get_question(selection.section_id, selection.question_id)
        self._loading = True
        try:
            _select_data(self.type, question.type.value)
            _select_data(self.difficulty, question.difficulty.value)
            self.text.setText(question.text)
            self.text_hi.setText(question.text_hi)
            self.marks.setValue(question.marks)
            self.negative_marks.setValue(question.negative_marks)
            self.explanation.setText(question.explanation)
            self.explanation_hi.setText(question.explanation_hi)
            self.image_label.setText(_image_text(question.image, question.requires_image))
            self.clear_image.setEnabled(question.image is not None)
            self.ignore_image.setEnabled(question.missing_required_image)
        finally:
            self._loading = False


class OptionForm(_Form):
    def __init__(self, panel: "DetailPanel"):
        super().__init__(panel)
        self.selection: Optional[TreeSelection] = None
        self.option_text = QLineEdit()
        self.option_text_hi = QLineEdit()
        self.correct = QPushButton("Mark correct")
        self.image_label = QLabel()
        self.image_label.setWordWrap(True)

        image_row = QHBoxLayout()
        self.attach_image = QPushButton("Attach image...")
        self.clear_image = QPushButton("Remove image")
        self.ignore_image = QPushButton("Ignore image requirement")
        for button in (self.attach_image, self.clear_image, self.ignore_image):
            image_row.addWidget(button)

        self.form_layout.addRow("Text", self.option_text)
        self.form_layout.addRow("Text (Hindi)", self.option_text_hi)
        self.form_layout.addRow("", self.correct)
        self.form_layout.addRow("Image", self.image_label)
        self.form_layout.addRow("", image_row)

        for edit, name in ((self.option_text, "option_text"), (self.option_text_hi, "option_text_hi")):
            edit.editingFinished.connect(lambda e=edit, n=name: self._update(n, e.text()))
        self.correct.clicked.connect(self._mark_correct)
        self.attach_image.clicked.connect(lambda: panel.attach_image_requested.emit(self.selection))
        self.clear_image.clicked.connect(lambda: panel.clear_image_requested.emit(self.selection))
        self.ignore_image.clicked.connect(self._ignore)

    def _update(self, name: str, value) -> None:
        sel = self.selection
        self.emit(lambda d: d.update_option(sel.section_id, sel.question_id, sel.option_id, name, value))

    def _mark_correct(self) -> None:
        sel = self.selection
        self.emit(lambda d: d.set_correct_answer(sel.section_id, sel.question_id, sel.option_id))

    def _ignore(self) -> None:
        sel = self.selection
        self.emit(lambda d: d.ignore_image_requirement(sel.section_id, sel.question_id, sel.option_id))

    def populate(self, draft: ExamDraft, selection: TreeSelection) -> None:
        self.selection = selection
        question = draft.get_question(selection.section_id, selection.question_id)
        option = draft.get_option(selection.section_id, selection.question_id, selection.option_id)
        self._loading = True
        try:
            self.option_text.setText(option.option_text)
            self.option_text_hi.setText(option.option_text_hi)
            if question.type.single_answer:
                self.correct.setText("Correct answer" if option.is_correct else "Mark correct")
            else:
                self.correct.setText("Unmark correct" if option.is_correct else "Mark correct")
            self.image_label.setText(_image_text(option.image, option.requires_image))
            self.clear_image.setEnabled(option.image is not None)
            self.ignore_image.setEnabled(option.missing_required_image)
        finally:
            self._loading = False


class DetailPanel(QStackedWidget):
    edit_requested = Signal(object)
    attach_image_requested = Signal(object)
    clear_image_requested = Signal(object)
    subcategories_requested = Signal(str)
    taxonomy_create_requested = Signal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.exam_form = ExamForm(self)
        self.section_form = SectionForm(self)
        self.question_form = QuestionForm(self)
        self.option_form = OptionForm(self)
        self._forms = {
            EntityKind.EXAM: self.exam_form,
            EntityKind.SECTION: self.section_form,
            EntityKind.QUESTION: self.question_form,
            EntityKind.OPTION: self.option_form,
        }
        for form in self._forms.values():
            self.addWidget(form)

    def show_selection(self, draft: ExamDraft, selection: TreeSelection) -> None:
        form = self._forms[selection.kind]
        if selection.kind is EntityKind.EXAM:
            form.populate(draft)
        else:
            form.populate(draft, selection)
        self.setCurrentWidget(form)
