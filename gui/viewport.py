"""
OpenGL viewport for rendering the toolpath.

Points are projected on the CPU with the session camera, then drawn in an
orthographic window over the projected plane.
"""
import math
from PySide6.QtOpenGLWidgets import QOpenGLWidget
from PySide6.QtCore import Qt, QPoint, Signal
from OpenGL.GL import *
from core.geometry import MoveKind, Vec3
from utils.projection import project_point
from .view_state import RAPID_FADE, ViewerSession, fade_color, segment_fade


def _rgb(color):
    return tuple(channel / 255.0 for channel in color)


class Viewport(QOpenGLWidget):
    """2D view of the projected toolpath with a ground grid and axes."""

    viewChanged = Signal()

    def __init__(self, session: ViewerSession, parent=None):
        super().__init__(parent)
        self.session = session
        self.last_pos = QPoint()
        self.setFocusPolicy(Qt.StrongFocus)

    def initializeGL(self):
        """Setup OpenGL context."""
        glClearColor(*_rgb(self.session.config.theme.background), 1.0)
        glDisable(GL_DEPTH_TEST)
        glEnable(GL_LINE_SMOOTH)
        glEnable(GL_BLEND)
        glBlendFunc(GL_SRC_ALPHA, GL_ONE_MINUS_SRC_ALPHA)

    def resizeGL(self, w, h):
        glViewport(0, 0, w, h)

    def paintGL(self):
        """Main render loop."""
        metrics = self.session.update_metrics(self.width(), self.height())
        params = metrics.projection_params(self.session.view)

        glClear(GL_COLOR_BUFFER_BIT)
        glMatrixMode(GL_PROJECTION)
        glLoadIdentity()
        glOrtho(metrics.center.x - metrics.half_w, metrics.center.x + metrics.half_w,
                metrics.center.y - metrics.half_h, metrics.center.y + metrics.half_h,
                -1.0, 1.0)
        glMatrixMode(GL_MODELVIEW)
        glLoadIdentity()

        self.draw_plane(params)
        self.draw_grid(params)
        self.draw_axes(params)
        self.draw_toolpath(params)

    def draw_plane(self, params):
        """Shade the toolpath footprint at its lowest Z."""
        bounds = self.session.toolpath.bounds
        if not bounds.initialized:
            return
        theme = self.session.config.theme
        z = bounds.min.z
        corners = [
            Vec3(bounds.min.x, bounds.min.y, z),
            Vec3(bounds.max.x, bounds.min.y, z),
            Vec3(bounds.max.x, bounds.max.y, z),
            Vec3(bounds.min.x, bounds.max.y, z),
        ]
        glColor3f(*_rgb(fade_color(theme.grid, theme.background, 0.25)))
        glBegin(GL_QUADS)
        for corner in corners:
            point = project_point(corner, params)
            glVertex2f(point.x, point.y)
        glEnd()

    def draw_grid(self, params):
        """Draw reference grid on the Y=0 plane."""
        bounds = self.session.toolpath.bounds
        if not bounds.initialized:
            return

        size = bounds.size()
        step = max(max(size.x, size.z, 1.0) / 10.0, 1.0)
        start_x = math.floor(bounds.min.x / step) * step
        end_x = math.ceil(bounds.max.x / step) * step
        start_z = math.floor(bounds.min.z / step) * step
        end_z = math.ceil(bounds.max.z / step) * step

        lines = []
        x = start_x
        while x <= end_x:
            lines.append((Vec3(x, 0.0, start_z), Vec3(x, 0.0, end_z)))
            x += step
        z = start_z
        while z <= end_z:
            lines.append((Vec3(start_x, 0.0, z), Vec3(end_x, 0.0, z)))
            z += step

        glLineWidth(1.0)
        glColor3f(*_rgb(self.session.config.theme.grid))
        glBegin(GL_LINES)
        for start, end in lines:
            self._vertex(start, params)
            self._vertex(end, params)
        glEnd()

    def draw_axes(self, params):
        """Draw coordinate axes from the origin."""
        theme = self.session.config.theme
        size = self.session.toolpath.bounds.size()
        axis_len = max(size.x, size.y, size.z, 1.0) * 0.4
        origin = Vec3(0.0, 0.0, 0.0)

        glLineWidth(3.0)
        glBegin(GL_LINES)
        for color, end in ((theme.axis_x, Vec3(axis_len, 0.0, 0.0)),
                           (theme.axis_y, Vec3(0.0, axis_len, 0.0)),
                           (theme.axis_z, Vec3(0.0, 0.0, axis_len))):
            glColor3f(*_rgb(color))
            self._vertex(origin, params)
            self._vertex(end, params)
        glEnd()

    def draw_toolpath(self, params):
        """Draw the visible segments, older ones faded toward the background."""
        theme = self.session.config.theme
        start_idx, end_idx = self.session.visible_segment_range()
        total_visible = end_idx - start_idx
        segments = self.session.toolpath.segments[start_idx:end_idx]

        for idx, segment in enumerate(segments):
            fade = segment_fade(idx, total_visible)
            if segment.kind == MoveKind.RAPID:
                color = fade_color(theme.path_rapid, theme.background, fade * RAPID_FADE)
                self.draw_dashed_line(segment.start, segment.end, _rgb(color), params)
            else:
                color = fade_color(theme.path_feed, theme.background, fade)
                self.draw_solid_line(segment.start, segment.end, _rgb(color), params)

    def draw_solid_line(self, start, end, color, params):
        glLineWidth(2.0)
        glColor3f(*color)
        glBegin(GL_LINES)
        self._vertex(start, params)
        self._vertex(end, params)
        glEnd()

    def draw_dashed_line(self, start, end, color, params):
        """Draw a dashed line for rapid moves."""
        glLineWidth(1.5)
        glColor3f(*color)

        glLineStipple(1, 0xAAAA)
        glEnable(GL_LINE_STIPPLE)

        glBegin(GL_LINES)
        self._vertex(start, params)
        self._vertex(end, params)
        glEnd()

        glDisable(GL_LINE_STIPPLE)

    def _vertex(self, point, params):
        projected = project_point(point, params)
        glVertex2f(projected.x, projected.y)

    def mousePressEvent(self, event):
        """Handle mouse press for camera control."""
        self.last_pos = event.pos()

    def mouseMoveEvent(self, event):
        """Left drag rotates the camera."""
        dx = event.pos().x() - self.last_pos.x()
        dy = event.pos().y() - self.last_pos.y()

        if event.buttons() & Qt.LeftButton:
            view = self.session.view
            view.yaw += math.radians(dx * 0.5)
            view.pitch -= math.radians(dy * 0.5)
            self.viewChanged.emit()
            self.update()

        self.last_pos = event.pos()

    def wheelEvent(self, event):
        """Handle mouse wheel for zooming."""
        if event.angleDelta().y() > 0:
            self.session.view.zoom_in()
        elif event.angleDelta().y() < 0:
            self.session.view.zoom_out()
        self.viewChanged.emit()
        self.update()
