"""Tests for gui/view_state.py."""
import math
from pathlib import Path

import pytest

from config.viewer_config import Action, ViewerConfig
from core.geometry import Vec2
from core.interpreter import parse_text
from gui.view_state import (MIN_ZOOM, FilePanelState, PanelFocus, PlaybackState,
                            ViewerSession, compute_view_metrics, fade_color,
                            projected_bounds, segment_fade, visible_segment_range)
from utils.projection import ProjectionMode

SOURCE = ["G0 X1", "G1 Y1", "(comment)", "G1 X0 Y0"]


@pytest.fixture
def session():
    return ViewerSession(
        config=ViewerConfig(),
        toolpath=parse_text("\n".join(SOURCE)),
        file_path=Path("/tmp/part.nc"),
        file_lines=list(SOURCE),
    )


class TestFilePanelState:
    """Tests for source panel cursor and selection."""

    def test_initial_selection_covers_file(self):
        panel = FilePanelState(5)
        assert panel.focus == PanelFocus.VIEWPORT
        assert panel.selected == 4
        assert panel.visual
        assert panel.selection_range(5) == (0, 4)

    def test_empty_file(self):
        panel = FilePanelState(0)
        assert not panel.visual
        assert panel.selection_range(0) == (0, 0)
        panel.move_selection(1, 0)
        assert panel.selected == 0

    def test_move_clamps(self):
        panel = FilePanelState(3)
        panel.move_selection(5, 3)
        assert panel.selected == 2
        panel.move_selection(-10, 3)
        assert panel.selected == 0

    def test_toggle_visual_anchors_at_cursor(self):
        panel = FilePanelState(10)
        panel.toggle_visual()
        assert not panel.visual
        assert panel.selection_range(10) == (9, 9)
        panel.move_selection(-3, 10)
        panel.toggle_visual()
        assert panel.anchor == 6
        panel.move_selection(-2, 10)
        assert panel.selection_range(10) == (4, 6)

    def test_paging_and_scroll(self):
        panel = FilePanelState(20)
        panel.view_height = 5
        panel.move_selection(-19, 20)
        assert (panel.selected, panel.scroll) == (0, 0)
        panel.page_selection(1, 20)
        panel.page_selection(1, 20)
        assert panel.selected == 10
        assert panel.scroll == 6
        panel.page_selection(-1, 20)
        assert (panel.selected, panel.scroll) == (5, 5)

    def test_page_without_height_moves_one_line(self):
        panel = FilePanelState(20)
        panel.page_selection(-1, 20)
        assert panel.selected == 18


class TestPlaybackState:
    """Tests for progressive playback."""

    def test_inactive_shows_everything(self):
        playback = PlaybackState(800.0)
        assert playback.visible_segments(40) == 40
        assert playback.label == "off"
        playback.tick(1.0, 40)
        assert playback.position == 0.0

    def test_play_pause_and_finish(self):
        playback = PlaybackState(100.0)
        playback.toggle(50)
        assert playback.active and playback.playing
        assert playback.visible_segments(50) == 0

        playback.tick(0.255, 50)
        assert playback.visible_segments(50) == 25

        playback.toggle(50)
        assert playback.label == "pause"
        playback.tick(1.0, 50)
        assert playback.visible_segments(50) == 25

        playback.toggle(50)
        playback.tick(1.0, 50)
        assert not playback.active and not playback.playing
        assert playback.position == 50.0
        assert playback.visible_segments(50) == 50

    def test_restart_after_finish(self):
        playback = PlaybackState(100.0)
        playback.toggle(10)
        playback.tick(1.0, 10)
        playback.toggle(10)
        assert playback.position == 0.0
        assert playback.playing


class TestVisibleRange:
    """Tests for mapping selections to segments."""

    def test_selection_maps_to_segments(self):
        toolpath = parse_text("\n".join(SOURCE))
        assert visible_segment_range(toolpath, (0, 3)) == (0, 3)
        assert visible_segment_range(toolpath, (1, 2)) == (1, 2)
        assert visible_segment_range(toolpath, (2, 2)) == (2, 2)
        assert visible_segment_range(toolpath, (3, 3)) == (2, 3)

    def test_playback_limits_range(self):
        toolpath = parse_text("\n".join(SOURCE))
        playback = PlaybackState(100.0)
        playback.toggle(3)
        playback.tick(0.02, 3)
        assert visible_segment_range(toolpath, (1, 3), playback) == (1, 3)
        playback.position = 1.5
        assert visible_segment_range(toolpath, (1, 3), playback) == (1, 2)

    def test_empty_toolpath(self):
        assert visible_segment_range(parse_text(""), (0, 0)) == (0, 0)


class TestFading:
    """Tests for segment color fading."""

    def test_segment_fade(self):
        assert segment_fade(0, 1) == 1.0
        assert segment_fade(0, 5) == 0.0
        assert segment_fade(4, 5) == 1.0
        assert segment_fade(2, 5) == pytest.approx(0.5 ** 0.6)

    def test_fade_color(self):
        assert fade_color((200, 100, 0), (0, 0, 0), 0.25) == (50, 25, 0)
        assert fade_color((200, 100, 0), (10, 10, 10), 2.0) == (200, 100, 0)
        assert fade_color((200, 100, 0), (10, 10, 10), -1.0) == (10, 10, 10)


class TestViewMetrics:
    """Tests for fitting the projected toolpath to the window."""

    def test_empty_toolpath_uses_unit_box(self, session):
        bounds, distance, _ = projected_bounds(parse_text(""), session.view)
        assert (bounds.width(), bounds.height()) == (2.0, 2.0)
        assert distance == 10.0

    def test_aspect_is_preserved(self, session):
        metrics = compute_view_metrics(session.toolpath, session.view, 200, 100)
        assert metrics.half_w / metrics.half_h == pytest.approx(2.0)

    def test_zoom_shrinks_window(self, session):
        before = compute_view_metrics(session.toolpath, session.view, 100, 100)
        session.view.zoom = 2.0
        after = compute_view_metrics(session.toolpath, session.view, 100, 100)
        assert after.half_w == pytest.approx(before.half_w / 2.0)


class TestViewerSession:
    """Tests for action handling and the status line."""

    def test_initial_view_from_config(self, session):
        assert session.view.yaw == pytest.approx(math.radians(-45.0))
        assert session.view.pitch == pytest.approx(math.radians(70.0))
        assert session.view.projection == ProjectionMode.PERSPECTIVE

    def test_status_line(self, session):
        assert session.status_line() == (
            "part.nc | sel:1-4 | visual | seg:3/3 | zoom:1.00 | persp | off | view"
        )

    def test_zoom(self, session):
        session.apply_action(Action.ZOOM_IN)
        assert session.view.zoom == pytest.approx(1.1)
        for _ in range(100):
            session.apply_action(Action.ZOOM_OUT)
        assert session.view.zoom == MIN_ZOOM

    def test_rotate_and_reset(self, session):
        yaw = session.view.yaw
        session.apply_action(Action.ROTATE_RIGHT)
        session.apply_action(Action.ROTATE_UP)
        session.apply_action(Action.TOGGLE_PROJECTION)
        assert session.view.yaw == pytest.approx(yaw + math.radians(5.0))
        assert session.view.projection == ProjectionMode.ORTHOGRAPHIC
        session.apply_action(Action.RESET_VIEW)
        assert session.view == session.initial_view
        assert session.view is not session.initial_view

    def test_pan_steps(self, session):
        session.apply_action(Action.PAN_RIGHT)
        assert session.view.pan == Vec2(1.0, 0.0)
        metrics = session.update_metrics(400, 400)
        session.apply_action(Action.PAN_DOWN)
        assert session.view.pan.y == pytest.approx(-max(metrics.half_h * 0.1, 0.1))
        session.apply_action(Action.FIT)
        assert session.view.pan == Vec2(0.0, 0.0)
        assert session.view.zoom == 1.0

    def test_line_actions_need_file_focus(self, session):
        session.apply_action(Action.LINE_UP)
        assert session.file_panel.selected == 3
        session.apply_action(Action.TOGGLE_FOCUS)
        session.apply_action(Action.LINE_UP)
        assert session.file_panel.selected == 2
        assert session.selection() == (0, 2)
        session.apply_action(Action.TOGGLE_VISUAL)
        assert session.selection() == (2, 2)
        assert session.visible_segment_range() == (2, 2)
        assert "| single |" in session.status_line()
        assert session.status_line().endswith("| file")

    def test_help_blocks_other_actions(self, session):
        session.apply_action(Action.TOGGLE_HELP)
        assert session.show_help
        session.apply_action(Action.ZOOM_IN)
        assert session.view.zoom == 1.0
        session.apply_action(Action.QUIT)
        assert not session.show_help

    def test_playback_through_session(self, session):
        session.apply_action(Action.TOGGLE_PLAYBACK)
        assert session.visible_segment_count() == 0
        assert "| play |" in session.status_line()
        session.tick(0.003)
        assert session.visible_segment_count() == 2
        session.tick(1.0)
        assert session.visible_segment_count() == 3
        assert "| off |" in session.status_line()
