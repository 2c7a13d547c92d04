"""
The main window for the toolpath viewer.
Toolpath viewport and source panel side by side, a status line below.
"""
import logging
from PySide6.QtWidgets import QMainWindow, QWidget, QVBoxLayout, QSplitter, QLabel
from PySide6.QtCore import Qt, QTimer, QElapsedTimer
from PySide6.QtGui import QFont, QKeySequence, QShortcut
from config.viewer_config import Action, format_color
from .editor import Editor
from .viewport import Viewport
from .view_state import ViewerSession

log = logging.getLogger(__name__)

PLAYBACK_INTERVAL_MS = 16

HELP_LABELS = {
    Action.QUIT: "Quit",
    Action.PAN_LEFT: "Pan left",
    Action.PAN_RIGHT: "Pan right",
    Action.PAN_UP: "Pan up",
    Action.PAN_DOWN: "Pan down",
    Action.ZOOM_IN: "Zoom in",
    Action.ZOOM_OUT: "Zoom out",
    Action.ROTATE_LEFT: "Rotate left",
    Action.ROTATE_RIGHT: "Rotate right",
    Action.ROTATE_UP: "Rotate up",
    Action.ROTATE_DOWN: "Rotate down",
    Action.FIT: "Fit view",
    Action.RESET_VIEW: "Reset view",
    Action.TOGGLE_PLAYBACK: "Play / pause",
    Action.TOGGLE_FOCUS: "Switch focus",
    Action.LINE_UP: "Line up",
    Action.LINE_DOWN: "Line down",
    Action.PAGE_UP: "Page up",
    Action.PAGE_DOWN: "Page down",
    Action.TOGGLE_PROJECTION: "Ortho / perspective",
    Action.TOGGLE_HELP: "Help",
    Action.TOGGLE_VISUAL: "Visual selection",
}


class MainWindow(QMainWindow):
    def __init__(self, session: ViewerSession):
        super().__init__()
        self.session = session
        self.setWindowTitle(f"nc-view - {session.file_path.name}")

        self.playback_timer = QTimer(self)
        self.playback_timer.setInterval(PLAYBACK_INTERVAL_MS)
        self.playback_timer.timeout.connect(self.on_playback_tick)
        self.playback_clock = QElapsedTimer()

        self.setup_ui()
        self.setup_shortcuts()
        self.connect_signals()
        self.setGeometry(100, 100, 1400, 900)
        self.refresh()

    def setup_ui(self):
        """Set up the user interface."""
        theme = self.session.config.theme
        main_widget = QWidget()
        self.setCentralWidget(main_widget)
        main_layout = QVBoxLayout(main_widget)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        workspace_splitter = QSplitter(Qt.Horizontal)
        main_layout.addWidget(workspace_splitter)

        self.viewport = Viewport(self.session)
        workspace_splitter.addWidget(self.viewport)

        self.editor = Editor(theme, self.session.config.ui.show_line_numbers)
        self.editor.set_lines(self.session.file_lines)
        workspace_splitter.addWidget(self.editor)
        workspace_splitter.setSizes([910, 490])

        self.status_label = QLabel()
        self.status_label.setFont(QFont("Courier", 9))
        self.status_label.setStyleSheet(
            f"QLabel {{ color: {format_color(theme.status_fg)}; "
            f"background-color: {format_color(theme.status_bg)}; padding: 2px 6px; }}"
        )
        main_layout.addWidget(self.status_label)

        self.help_label = QLabel(self.help_text(), self.viewport)
        self.help_label.setFont(QFont("Courier", 10))
        self.help_label.setStyleSheet(
            f"QLabel {{ color: {format_color(theme.foreground)}; "
            f"background-color: {format_color(theme.status_bg)}; "
            f"border: 1px solid {format_color(theme.grid)}; padding: 8px; }}"
        )
        self.help_label.adjustSize()
        self.help_label.move(12, 12)
        self.help_label.setVisible(False)

    def setup_shortcuts(self):
        """Bind every configured key to its action."""
        self.shortcuts = []
        for action, key in self.session.config.keys.items():
            shortcut = QShortcut(QKeySequence(key), self)
            shortcut.setContext(Qt.ApplicationShortcut)
            shortcut.activated.connect(lambda action=action: self.on_action(action))
            self.shortcuts.append(shortcut)

    def connect_signals(self):
        self.editor.lineRangeSelected.connect(self.on_editor_selection)
        self.viewport.viewChanged.connect(self.refresh)

    def help_text(self):
        keys = self.session.config.keys
        rows = [f"{keys[action]:>8}  {label}" for action, label in HELP_LABELS.items()]
        return "\n".join(["Key bindings", ""] + rows)

    def on_action(self, action: Action):
        log.debug("Action %s", action.value)
        if action == Action.QUIT and not self.session.show_help:
            self.close()
            return

        self.session.apply_action(action)
        if self.session.playback.playing and not self.playback_timer.isActive():
            self.playback_clock.start()
            self.playback_timer.start()
        self.refresh()

    def on_playback_tick(self):
        elapsed = self.playback_clock.restart() / 1000.0
        self.session.tick(elapsed)
        if not self.session.playback.playing:
            self.playback_timer.stop()
        self.refresh()

    def on_editor_selection(self, first, last, cursor_line):
        """Mirror a mouse selection in the source panel into the session."""
        panel = self.session.file_panel
        panel.selected = cursor_line
        panel.anchor = first if cursor_line == last else last
        panel.visual = first != last
        self.refresh()

    def refresh(self):
        """Push session state to the widgets."""
        panel = self.session.file_panel
        panel.view_height = self.editor.visible_line_count()
        panel.ensure_visible()

        first, last = self.session.selection()
        self.editor.show_selection(first, last, panel.selected)
        self.help_label.setVisible(self.session.show_help)
        self.status_label.setText(self.session.status_line())
        self.viewport.update()

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.refresh()
