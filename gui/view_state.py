"""
Viewer state that does not depend on Qt.
Camera, source panel selection and playback, plus the mapping from the
selected source lines to the slice of segments the viewport draws.
"""
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple
from config.viewer_config import Action, Color, ViewerConfig
from core.geometry import Bounds2, Toolpath, Vec2, Vec3
from utils.projection import ProjectionMode, ProjectionParams, ViewAngles, project_point

ZOOM_STEP = 1.1
MIN_ZOOM = 0.05
ROTATE_STEP = math.radians(5.0)

# Rapid moves are drawn dimmer than feed moves.
RAPID_FADE = 0.7


class PanelFocus(Enum):
    VIEWPORT = "view"
    FILE = "file"


@dataclass
class ViewState:
    """Camera pose. Angles are in radians."""
    pan: Vec2 = Vec2(0.0, 0.0)
    zoom: float = 1.0
    yaw: float = 0.0
    pitch: float = 0.0
    projection: ProjectionMode = ProjectionMode.PERSPECTIVE

    @classmethod
    def from_config(cls, config: ViewerConfig) -> 'ViewState':
        return cls(
            yaw=math.radians(config.projection.yaw_deg),
            pitch=math.radians(config.projection.pitch_deg),
            projection=config.projection.mode,
        )

    def angles(self) -> ViewAngles:
        return ViewAngles(self.yaw, self.pitch)

    def zoom_in(self):
        self.zoom *= ZOOM_STEP

    def zoom_out(self):
        self.zoom = max(self.zoom / ZOOM_STEP, MIN_ZOOM)

    def fit(self):
        self.pan = Vec2(0.0, 0.0)
        self.zoom = 1.0


@dataclass
class ViewMetrics:
    """Visible window of the projected plane, computed on each repaint."""
    center: Vec2
    half_w: float
    half_h: float
    camera_distance: float
    target: Vec3

    def projection_params(self, view: ViewState) -> ProjectionParams:
        return ProjectionParams(view.projection, view.angles(), self.camera_distance, self.target)


class FilePanelState:
    """
    Cursor and selection in the source panel.

    Lines are 0-based. Visual mode selects everything between the anchor and
    the cursor; it starts enabled with the anchor on the first line and the
    cursor on the last, so the whole file is shown on load.
    """

    def __init__(self, total_lines: int):
        self.focus = PanelFocus.VIEWPORT
        self.selected = max(total_lines - 1, 0)
        self.scroll = 0
        self.view_height = 0
        self.visual = total_lines > 0
        self.anchor = 0

    def toggle_focus(self):
        if self.focus is PanelFocus.VIEWPORT:
            self.focus = PanelFocus.FILE
        else:
            self.focus = PanelFocus.VIEWPORT

    def toggle_visual(self):
        if self.visual:
            self.visual = False
        else:
            self.visual = True
            self.anchor = self.selected

    def move_selection(self, delta: int, total: int):
        if total == 0:
            self.selected = 0
            self.scroll = 0
            return
        self.selected = min(max(self.selected + delta, 0), total - 1)
        self.ensure_visible()

    def page_selection(self, direction: int, total: int):
        self.move_selection(direction * max(self.view_height, 1), total)

    def ensure_visible(self):
        """Scroll so the cursor line is inside the visible window."""
        if self.view_height == 0:
            return
        if self.selected < self.scroll:
            self.scroll = self.selected
        elif self.selected >= self.scroll + self.view_height:
            self.scroll = self.selected + 1 - self.view_height

    def selection_range(self, total: int) -> Tuple[int, int]:
        if total == 0:
            return 0, 0
        if self.visual:
            return min(self.anchor, self.selected), max(self.anchor, self.selected)
        return self.selected, self.selected


class PlaybackState:
    """
    Progressive reveal of the selected segments.

    position counts segments shown so far. Reaching the end stops playback
    and deactivates it, which shows the full range again.
    """

    def __init__(self, speed: float):
        self.active = False
        self.playing = False
        self.position = 0.0
        self.speed = speed

    def toggle(self, total: int):
        if not self.active:
            self.active = True
            self.playing = True
            if self.position >= total:
                self.position = 0.0
            return

        if self.playing:
            self.playing = False
        else:
            if self.position >= total:
                self.position = 0.0
            self.playing = True

    def tick(self, delta_seconds: float, total: int):
        if not self.playing:
            return
        self.position += delta_seconds * self.speed
        if self.position >= total:
            self.position = float(total)
            self.playing = False
            self.active = False

    def visible_segments(self, total: int) -> int:
        if not self.active:
            return total
        return min(int(math.floor(self.position)), total)

    @property
    def label(self) -> str:
        if not self.active:
            return "off"
        return "play" if self.playing else "pause"


def visible_segment_range(toolpath: Toolpath, selection: Tuple[int, int],
                          playback: Optional[PlaybackState] = None) -> Tuple[int, int]:
    """
    Segment slice to draw for a 0-based inclusive line selection.

    During playback only the first visible_segments() of the slice are kept.
    """
    start, end = toolpath.segments_for_lines(*selection)
    length = end - start
    if playback is not None and playback.active:
        length = playback.visible_segments(length)
    return start, start + length


def segment_fade(index: int, total: int) -> float:
    """Brightness of the index-th drawn segment; the newest is 1.0."""
    if total <= 1:
        return 1.0
    t = index / (total - 1)
    return t ** 0.6


def fade_color(base: Color, background: Color, t: float) -> Color:
    """Blend from background (t=0) to base (t=1)."""
    t = min(max(t, 0.0), 1.0)
    return tuple(int(round(bg + (fg - bg) * t)) for fg, bg in zip(base, background))


def projected_bounds(toolpath: Toolpath, view: ViewState) -> Tuple[Bounds2, float, Vec3]:
    """
    Screen-plane bounds of the toolpath box, with the camera distance and
    target used to project it.
    """
    bounds = Bounds2()
    if not toolpath.bounds.initialized:
        bounds.include(Vec2(-1.0, -1.0))
        bounds.include(Vec2(1.0, 1.0))
        return bounds, 10.0, Vec3(0.0, 0.0, 0.0)

    size = toolpath.bounds.size()
    max_dim = max(size.x, size.y, size.z, 1.0)
    camera_distance = max_dim * 2.5
    target = toolpath.bounds.center()
    params = ProjectionParams(view.projection, view.angles(), camera_distance, target)
    for corner in toolpath.bounds.corners():
        bounds.include(project_point(corner, params))
    return bounds, camera_distance, target


def compute_view_metrics(toolpath: Toolpath, view: ViewState, width: int, height: int) -> ViewMetrics:
    """Fit the projected toolpath into a width x height area, keeping its aspect."""
    base, camera_distance, target = projected_bounds(toolpath, view)
    half_w = base.width() * 0.5 / view.zoom
    half_h = base.height() * 0.5 / view.zoom
    if half_w < 1e-6:
        half_w = 1.0
    if half_h < 1e-6:
        half_h = 1.0

    aspect = width / height if height > 0 else 1.0
    if half_w / half_h > aspect:
        half_h = half_w / aspect
    else:
        half_w = half_h * aspect

    return ViewMetrics(base.center() + view.pan, half_w, half_h, camera_distance, target)


@dataclass
class ViewerSession:
    """
    Everything the viewer window shows, driven by configured actions.

    While the help overlay is open only TOGGLE_HELP and QUIT are handled,
    and both just close it.
    """
    config: ViewerConfig
    toolpath: Toolpath
    file_path: Path
    file_lines: List[str]
    view: ViewState = field(init=False)
    initial_view: ViewState = field(init=False)
    file_panel: FilePanelState = field(init=False)
    playback: PlaybackState = field(init=False)
    last_metrics: Optional[ViewMetrics] = None
    show_help: bool = False

    def __post_init__(self):
        self.view = ViewState.from_config(self.config)
        self.initial_view = replace(self.view)
        self.file_panel = FilePanelState(len(self.file_lines))
        self.playback = PlaybackState(self.config.animation.speed_segments_per_sec)

    def apply_action(self, action: Action):
        if self.show_help:
            if action in (Action.TOGGLE_HELP, Action.QUIT):
                self.show_help = False
            return

        total_lines = len(self.file_lines)
        in_file = self.file_panel.focus is PanelFocus.FILE

        if action == Action.PAN_LEFT:
            self._pan(-1.0, 0.0)
        elif action == Action.PAN_RIGHT:
            self._pan(1.0, 0.0)
        elif action == Action.PAN_UP:
            self._pan(0.0, 1.0)
        elif action == Action.PAN_DOWN:
            self._pan(0.0, -1.0)
        elif action == Action.ZOOM_IN:
            self.view.zoom_in()
        elif action == Action.ZOOM_OUT:
            self.view.zoom_out()
        elif action == Action.ROTATE_LEFT:
            self.view.yaw -= ROTATE_STEP
        elif action == Action.ROTATE_RIGHT:
            self.view.yaw += ROTATE_STEP
        elif action == Action.ROTATE_UP:
            self.view.pitch += ROTATE_STEP
        elif action == Action.ROTATE_DOWN:
            self.view.pitch -= ROTATE_STEP
        elif action == Action.FIT:
            self.view.fit()
        elif action == Action.RESET_VIEW:
            self.view = replace(self.initial_view)
        elif action == Action.TOGGLE_PROJECTION:
            self.view.projection = self.view.projection.toggled()
        elif action == Action.TOGGLE_PLAYBACK:
            self.playback.toggle(len(self.toolpath.segments))
        elif action == Action.TOGGLE_HELP:
            self.show_help = True
        elif action == Action.TOGGLE_FOCUS:
            self.file_panel.toggle_focus()
        elif action == Action.TOGGLE_VISUAL and in_file:
            self.file_panel.toggle_visual()
        elif action == Action.LINE_UP and in_file:
            self.file_panel.move_selection(-1, total_lines)
        elif action == Action.LINE_DOWN and in_file:
            self.file_panel.move_selection(1, total_lines)
        elif action == Action.PAGE_UP and in_file:
            self.file_panel.page_selection(-1, total_lines)
        elif action == Action.PAGE_DOWN and in_file:
            self.file_panel.page_selection(1, total_lines)

    def tick(self, delta_seconds: float):
        self.playback.tick(delta_seconds, len(self.toolpath.segments))

    def selection(self) -> Tuple[int, int]:
        return self.file_panel.selection_range(len(self.file_lines))

    def visible_segment_range(self) -> Tuple[int, int]:
        return visible_segment_range(self.toolpath, self.selection(), self.playback)

    def visible_segment_count(self) -> int:
        start, end = self.visible_segment_range()
        return end - start

    def update_metrics(self, width: int, height: int) -> ViewMetrics:
        self.last_metrics = compute_view_metrics(self.toolpath, self.view, width, height)
        return self.last_metrics

    def status_line(self) -> str:
        first, last = self.selection()
        mode = "visual" if self.file_panel.visual else "single"
        return (f"{self.file_path.name or '<stdin>'} | sel:{first + 1}-{last + 1} | {mode}"
                f" | seg:{self.visible_segment_count()}/{len(self.toolpath.segments)}"
                f" | zoom:{self.view.zoom:.2f} | {self.view.projection.short_name}"
                f" | {self.playback.label} | {self.file_panel.focus.value}")

    def _pan(self, dx: float, dy: float):
        if self.last_metrics is None:
            step_x = step_y = 1.0
        else:
            step_x = max(self.last_metrics.half_w * 0.1, 0.1)
            step_y = max(self.last_metrics.half_h * 0.1, 0.1)
        self.view.pan = self.view.pan + Vec2(step_x * dx, step_y * dy)
