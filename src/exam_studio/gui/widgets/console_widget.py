"""
Console widget for displaying logs.
"""
from typing import Set
from datetime import datetime
from PySide6.QtWidgets import (
    QGroupBox, QVBoxLayout, QPlainTextEdit, QMenu, QApplication, QSizePolicy
)
from PySide6.QtGui import QFont, QTextCursor, QColor, QTextCharFormat
from PySide6.QtCore import Slot

from exam_studio.gui.styles import Colors


# Log levels hidden from the console; INFO is noisy during submission
CONSOLE_SUPPRESSED_LEVELS: Set[str] = set()
MAX_LINES = 1000


class ConsoleWidget(QGroupBox):
    def __init__(self, parent=None):
        super().__init__("Console Log", parent)

        # Can be overridden per instance: console.suppressed_levels = {"info"}
        self.suppressed_levels: Set[str] = CONSOLE_SUPPRESSED_LEVELS.copy()

        self.setMinimumHeight(40)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.text_edit = QPlainTextEdit()
        self.text_edit.setReadOnly(True)
        self.text_edit.setLineWrapMode(QPlainTextEdit.LineWrapMode.WidgetWidth)
        self.text_edit.setFont(QFont("Menlo"))
        layout.addWidget(self.text_edit)

        self.format_info = QTextCharFormat()
        self.format_info.setForeground(QColor(Colors.TEXT_PRIMARY))

        self.format_error = QTextCharFormat()
        self.format_error.setForeground(QColor(Colors.ERROR))

        self.format_warning = QTextCharFormat()
        self.format_warning.setForeground(QColor(Colors.WARNING))

        self.format_success = QTextCharFormat()
        self.format_success.setForeground(QColor(Colors.SUCCESS))

    @Slot(str, str)
    def append_log(self, level: str, message: str):
        """Appends a log message with color coding based on level."""
        if level.lower() in self.suppressed_levels:
            return

        cursor = self.text_edit.textCursor()
        cursor.movePosition(QTextCursor.End)

        fmt = self.format_info
        if level.lower() in ("error", "critical"):
            fmt = self.format_error
        elif level.lower() in ("warning", "warn"):
            fmt = self.format_warning
        elif level.lower() in ("success", "ok"):
            fmt = self.format_success

        timestamp = datetime.now().strftime("%H:%M:%S")
        cursor.insertText(f"[{timestamp}] [{level.upper()}] {message}\n", fmt)

        self.text_edit.setTextCursor(cursor)
        self.text_edit.ensureCursorVisible()

        doc = self.text_edit.document()
        if doc.lineCount() > MAX_LINES:
            cursor = self.text_edit.textCursor()
            cursor.movePosition(QTextCursor.Start)
            cursor.movePosition(QTextCursor.Down, QTextCursor.KeepAnchor, doc.lineCount() - MAX_LINES)
            cursor.removeSelectedText()

    def text(self) -> str:
        return self.text_edit.toPlainText()

    def clear(self):
        self.text_edit.clear()

    def contextMenuEvent(self, event):
        menu = QMenu(self)
        copy_all_action = menu.addAction("Copy All")
        menu.addSeparator()
        clear_action = menu.addAction("Clear")

        action = menu.exec(event.globalPos())
        if action == copy_all_action:
            QApplication.clipboard().setText(self.text())
        elif action == clear_action:
            self.clear()
