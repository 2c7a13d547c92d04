"""
Read-only G-code source panel with theme-colored syntax highlighting.
"""
from PySide6.QtWidgets import QPlainTextEdit, QWidget, QTextEdit
from PySide6.QtGui import (QColor, QTextFormat, QPainter, QFont, QSyntaxHighlighter,
                          QTextCharFormat, QPalette, QTextCursor)
from PySide6.QtCore import Qt, QRect, Signal, QSize
from config.viewer_config import Theme

KEYWORD_LETTERS = "GMFST"
OFFSET_LETTERS = "IJKR"
LABEL_LETTERS = "NO"
NUMBER_CHARS = "0123456789.+-"


def _qcolor(color):
    return QColor(*color)


class GCodeHighlighter(QSyntaxHighlighter):
    """G-code syntax highlighter using the configured theme."""

    def __init__(self, document, theme: Theme):
        super().__init__(document)

        def char_format(color, italic=False):
            fmt = QTextCharFormat()
            fmt.setForeground(_qcolor(color))
            fmt.setFontItalic(italic)
            return fmt

        self.keyword_format = char_format(theme.code_keyword)
        self.keyword_format.setFontWeight(QFont.Weight.Bold)
        self.number_format = char_format(theme.code_number)
        self.comment_format = char_format(theme.code_comment, italic=True)
        self.label_format = char_format(theme.code_label)
        self.offset_format = char_format(theme.code_axis)
        self.axis_formats = {
            'X': char_format(theme.axis_x),
            'Y': char_format(theme.axis_y),
            'Z': char_format(theme.axis_z),
        }

    def letter_format(self, letter):
        if letter in self.axis_formats:
            return self.axis_formats[letter]
        if letter in OFFSET_LETTERS:
            return self.offset_format
        if letter in LABEL_LETTERS:
            return self.label_format
        return self.keyword_format

    def highlightBlock(self, text):
        """Apply syntax highlighting to a block of text."""
        i = 0
        length = len(text)

        while i < length:
            ch = text[i]

            # Handle comments (semicolon or parentheses)
            if ch == ';':
                self.setFormat(i, length - i, self.comment_format)
                break
            if ch == '(':
                start = i
                while i < length and text[i] != ')':
                    i += 1
                if i < length:
                    i += 1
                self.setFormat(start, i - start, self.comment_format)
                continue

            if ch.isascii() and ch.isalpha():
                self.setFormat(i, 1, self.letter_format(ch.upper()))
                i += 1
                value_start = i
                while i < length and text[i] in NUMBER_CHARS:
                    i += 1
                if i > value_start:
                    self.setFormat(value_start, i - value_start, self.number_format)
                continue

            i += 1


class LineNumberArea(QWidget):
    """Line number area widget for the editor."""

    def __init__(self, editor):
        super().__init__(editor)
        self.editor = editor

    def sizeHint(self):
        return QSize(self.editor.lineNumberAreaWidth(), 0)

    def paintEvent(self, event):
        self.editor.lineNumberAreaPaintEvent(event)


class Editor(QPlainTextEdit):
    """
    Source panel for the loaded file.

    The selected line range is drawn with the grid color. Mouse selections
    are reported through lineRangeSelected as 0-based (first, last, cursor).
    """

    lineRangeSelected = Signal(int, int, int)

    def __init__(self, theme: Theme, show_line_numbers=False, parent=None):
        super().__init__(parent)
        self.theme = theme
        self.show_line_numbers = show_line_numbers
        self.setReadOnly(True)
        self.setFocusPolicy(Qt.NoFocus)

        self.apply_theme()
        self.lineNumberArea = LineNumberArea(self)
        self.lineNumberArea.setVisible(show_line_numbers)
        self.setup_editor()

        self.highlighter = GCodeHighlighter(self.document(), theme)

        self.blockCountChanged.connect(self.updateLineNumberAreaWidth)
        self.updateRequest.connect(self.updateLineNumberArea)
        self.selectionChanged.connect(self.on_selection_changed)

    def apply_theme(self):
        palette = self.palette()
        palette.setColor(QPalette.Base, _qcolor(self.theme.background))
        palette.setColor(QPalette.Text, _qcolor(self.theme.foreground))
        palette.setColor(QPalette.Highlight, _qcolor(self.theme.grid))
        palette.setColor(QPalette.HighlightedText, _qcolor(self.theme.foreground))
        self.setPalette(palette)

    def setup_editor(self):
        """Configure the editor appearance and behavior."""
        self.setLineWrapMode(QPlainTextEdit.NoWrap)

        font = QFont("Consolas", 11)
        if not font.exactMatch():
            font = QFont("Courier New", 11)
        font.setStyleHint(QFont.StyleHint.Monospace)
        font.setFixedPitch(True)
        self.setFont(font)

        self.updateLineNumberAreaWidth(0)

    def set_lines(self, lines):
        self.setPlainText("\n".join(lines))

    def visible_line_count(self):
        """Number of whole lines that fit in the panel."""
        return max(self.viewport().height() // max(self.fontMetrics().height(), 1), 1)

    def show_selection(self, first, last, cursor_line):
        """Highlight lines first..last (0-based) and keep cursor_line in view."""
        selections = []
        block = self.document().findBlockByNumber(first)
        while block.isValid() and block.blockNumber() <= last:
            selection = QTextEdit.ExtraSelection()
            selection.format.setBackground(_qcolor(self.theme.grid))
            selection.format.setProperty(QTextFormat.FullWidthSelection, True)
            selection.cursor = QTextCursor(block)
            selections.append(selection)
            block = block.next()
        self.setExtraSelections(selections)

        block = self.document().findBlockByNumber(cursor_line)
        if block.isValid():
            self.blockSignals(True)
            self.setTextCursor(QTextCursor(block))
            self.blockSignals(False)
            self.ensureCursorVisible()

    def on_selection_changed(self):
        """Report the lines covered by a mouse selection."""
        cursor = self.textCursor()
        if not cursor.hasSelection():
            line = cursor.blockNumber()
            self.lineRangeSelected.emit(line, line, line)
            return

        document = self.document()
        start_block = document.findBlock(cursor.selectionStart())
        end_pos = cursor.selectionEnd()
        end_block = document.findBlock(end_pos)

        # A selection ending at the start of a line does not include it
        if end_pos == end_block.position() and end_block.previous().isValid():
            end_block = end_block.previous()

        first = start_block.blockNumber()
        last = max(end_block.blockNumber(), first)
        cursor_line = document.findBlock(cursor.position()).blockNumber()
        self.lineRangeSelected.emit(first, last, min(max(cursor_line, first), last))

    # Line number area methods
    def lineNumberAreaWidth(self):
        """Calculate the width needed for line numbers."""
        if not self.show_line_numbers:
            return 0
        digits = max(len(str(self.blockCount())), 2)
        return 6 + self.fontMetrics().horizontalAdvance('9') * digits

    def updateLineNumberAreaWidth(self, _):
        self.setViewportMargins(self.lineNumberAreaWidth(), 0, 0, 0)

    def updateLineNumberArea(self, rect, dy):
        """Update the line number area when scrolling."""
        if dy:
            self.lineNumberArea.scroll(0, dy)
        else:
            self.lineNumberArea.update(0, rect.y(), self.lineNumberArea.width(), rect.height())

        if rect.contains(self.viewport().rect()):
            self.updateLineNumberAreaWidth(0)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        cr = self.contentsRect()
        self.lineNumberArea.setGeometry(QRect(cr.left(), cr.top(), self.lineNumberAreaWidth(), cr.height()))

    def lineNumberAreaPaintEvent(self, event):
        """Paint the line number area."""
        painter = QPainter(self.lineNumberArea)
        painter.fillRect(event.rect(), _qcolor(self.theme.status_bg))
        painter.setPen(_qcolor(self.theme.code_label))

        block = self.firstVisibleBlock()
        block_number = block.blockNumber()
        top = self.blockBoundingGeometry(block).translated(self.contentOffset()).top()
        bottom = top + self.blockBoundingRect(block).height()

        while block.isValid() and top <= event.rect().bottom():
            if block.isVisible() and bottom >= event.rect().top():
                painter.drawText(0, int(top), self.lineNumberArea.width() - 3,
                                 self.fontMetrics().height(), Qt.AlignRight, str(block_number + 1))

            block = block.next()
            top = bottom
            bottom = top + self.blockBoundingRect(block).height()
            block_number += 1
