"""
Tree view of the exam: Exam → Sections → Questions → Options.

Rows with validation issues are tinted and carry the messages as tooltips.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QBrush, QColor
from PySide6.QtWidgets import QTreeWidget, QTreeWidgetItem

from exam_studio.core.models.draft import EntityKind, ExamDraft
from exam_studio.core.models.ids import EntityId
from exam_studio.core.validation import ValidationReport, question_key, section_key
from exam_studio.gui.styles import Colors


@dataclass(frozen=True)
class TreeSelection:
    """What a tree row points at. Ids below the row's kind are None."""

    kind: EntityKind
    section_id: Optional[EntityId] = None
    question_id: Optional[EntityId] = None
    option_id: Optional[EntityId] = None


EXAM_SELECTION = TreeSelection(EntityKind.EXAM)


def _mark(item: QTreeWidgetItem, issues: tuple[str, ...]) -> None:
    if not issues:
        return
    item.setForeground(0, QBrush(QColor(Colors.ERROR)))
    item.setToolTip(0, "\n".join(issues))


class StructureTree(QTreeWidget):
    selection_changed = Signal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setHeaderLabels(["Exam structure"])
        self.setMinimumWidth(280)
        self._rebuilding = False
        self.currentItemChanged.connect(self._on_current_changed)

    def current_selection(self) -> TreeSelection:
        item = self.currentItem()
        if item is None:
            return EXAM_SELECTION
        return item.data(0, Qt.ItemDataRole.UserRole)

    def set_draft(self, draft: ExamDraft, report: Optional[ValidationReport] = None) -> None:
        """Rebuild the tree, keeping the current row when it still exists."""
        previous = self.current_selection()
        report = report or ValidationReport()

        self._rebuilding = True
        try:
            self.clear()
            title = draft.metadata.title or "Untitled exam"
            root = QTreeWidgetItem([title])
            root.setData(0, Qt.ItemDataRole.UserRole, EXAM_SELECTION)
            self.addTopLevelItem(root)
            restore = root

            for section in draft.sections:
                label = section.display_name or f"Section {section.section_order}"
                lang = " [hi]" if section.language.value == "hi" else ""
                s_item = QTreeWidgetItem([f"{label}{lang} ({section.total_questions} questions)"])
                s_sel = TreeSelection(EntityKind.SECTION, section.id)
                s_item.setData(0, Qt.ItemDataRole.UserRole, s_sel)
                _mark(s_item, report.for_key(section_key(section)))
                root.addChild(s_item)
                if s_sel == previous:
                    restore = s_item

                for q_num, question in enumerate(section.questions, start=1):
                    text = question.text or question.text_hi or "Untitled"
                    q_item = QTreeWidgetItem([f"Q{q_num}. {text[:50]}"])
                    q_sel = TreeSelection(EntityKind.QUESTION, section.id, question.id)
                    q_item.setData(0, Qt.ItemDataRole.UserRole, q_sel)
                    _mark(q_item, report.for_key(question_key(section, question)))
                    s_item.addChild(q_item)
                    if q_sel == previous:
                        restore = q_item

                    for option in question.options:
                        tick = "✓ " if option.is_correct else ""
                        o_text = option.option_text or option.option_text_hi or "(empty)"
                        o_item = QTreeWidgetItem([f"{tick}{option.option_order}. {o_text[:40]}"])
                        o_sel = TreeSelection(EntityKind.OPTION, section.id, question.id, option.id)
                        o_item.setData(0, Qt.ItemDataRole.UserRole, o_sel)
                        q_item.addChild(o_item)
                        if o_sel == previous:
                            restore = o_item

            self.expandToDepth(1)
            self.setCurrentItem(restore)
        finally:
            self._rebuilding = False
        self.selection_changed.emit(self.current_selection())

    def select(self, selection: TreeSelection) -> None:
        for item in self._iter_items():
            if item.data(0, Qt.ItemDataRole.UserRole) == selection:
                self.setCurrentItem(item)
                return

    def _iter_items(self):
        stack = [self.topLevelItem(i) for i in range(self.topLevelItemCount())]
        while stack:
            item = stack.pop()
            yield item
            stack.extend(item.child(i) for i in range(item.childCount()))

    def _on_current_changed(self, current, previous):
        if self._rebuilding or current is None:
            return
        self.selection_changed.emit(current.data(0, Qt.ItemDataRole.UserRole))
