"""Tests for utils/geometry.py arc solving and rasterization."""
import math

import pytest

from core.geometry import MoveKind, Vec3
from core.machine_state import Plane
from utils.errors import (ArcCenterMissing, ArcDegenerate, ArcError,
                          ArcRadiusTooSmall, ErrorType)
from utils.geometry import (ARC_SEGMENT_LENGTH, TAU, arc_center, arc_to_segments,
                            force_direction, select_center)


def approx_vec(vec, x, y, z, tol=1e-9):
    return (abs(vec.x - x) < tol and abs(vec.y - y) < tol and abs(vec.z - z) < tol)


class TestCenterFromOffsets:
    """Tests for I/J/K arc centers."""

    def test_xy_offsets(self):
        center = arc_center(Vec3(0, 0, 0), Vec3(10, 0, 0), {'I': 5.0, 'J': 0.0},
                            None, Plane.XY, clockwise=True)
        assert approx_vec(center, 5, 0, 0)

    def test_xz_offsets_use_i_and_k(self):
        center = arc_center(Vec3(0, 2, 0), Vec3(2, 2, 0), {'I': 1.0, 'K': 1.0},
                            None, Plane.XZ, clockwise=False)
        assert approx_vec(center, 1, 2, 1)

    def test_offsets_win_over_radius(self):
        center = arc_center(Vec3(0, 0, 0), Vec3(10, 0, 0), {'I': 5.0},
                            50.0, Plane.XY, clockwise=True)
        assert approx_vec(center, 5, 0, 0)

    def test_zero_offsets_are_missing(self):
        with pytest.raises(ArcCenterMissing):
            arc_center(Vec3(0, 0, 0), Vec3(10, 0, 0), {'I': 0.0, 'J': 0.0},
                       None, Plane.XY, clockwise=True)

    def test_offsets_outside_the_plane_are_missing(self):
        with pytest.raises(ArcCenterMissing):
            arc_center(Vec3(0, 0, 0), Vec3(10, 0, 0), {'J': 3.0},
                       None, Plane.XZ, clockwise=True)

    def test_no_offsets_and_no_radius(self):
        with pytest.raises(ArcCenterMissing) as excinfo:
            arc_center(Vec3(0, 0, 0), Vec3(10, 0, 0), {}, None, Plane.XY, clockwise=True)
        assert isinstance(excinfo.value, ArcError)
        assert excinfo.value.error_type == ErrorType.SEMANTIC


class TestCenterFromRadius:
    """Tests for R-format arc centers."""

    def test_semicircle(self):
        center = arc_center(Vec3(0, 0, 0), Vec3(10, 0, 0), {}, 5.0, Plane.XY, clockwise=True)
        assert approx_vec(center, 5, 0, 0)

    def test_negative_radius_semicircle_gives_same_center(self):
        center = arc_center(Vec3(0, 0, 0), Vec3(10, 0, 0), {}, -5.0, Plane.XY, clockwise=True)
        assert approx_vec(center, 5, 0, 0)

    def test_positive_radius_selects_short_arc(self):
        center = arc_center(Vec3(0, 0, 0), Vec3(10, 0, 0), {}, 10.0, Plane.XY, clockwise=True)
        assert approx_vec(center, 5, -math.sqrt(75.0), 0)

    def test_negative_radius_selects_long_arc(self):
        center = arc_center(Vec3(0, 0, 0), Vec3(10, 0, 0), {}, -10.0, Plane.XY, clockwise=True)
        assert approx_vec(center, 5, math.sqrt(75.0), 0)

    def test_direction_flips_short_arc_side(self):
        center = arc_center(Vec3(0, 0, 0), Vec3(10, 0, 0), {}, 10.0, Plane.XY, clockwise=False)
        assert approx_vec(center, 5, math.sqrt(75.0), 0)

    def test_radius_center_keeps_normal_axis_from_start(self):
        center = arc_center(Vec3(0, 0, 3), Vec3(10, 0, 7), {}, 5.0, Plane.XY, clockwise=True)
        assert approx_vec(center, 5, 0, 3)

    def test_coincident_endpoints(self):
        with pytest.raises(ArcDegenerate):
            arc_center(Vec3(1, 1, 0), Vec3(1, 1, 5), {}, 5.0, Plane.XY, clockwise=True)

    def test_radius_too_small(self):
        with pytest.raises(ArcRadiusTooSmall):
            arc_center(Vec3(0, 0, 0), Vec3(10, 0, 0), {}, 4.0, Plane.XY, clockwise=True)


class TestSweepHelpers:
    """Tests for direction forcing and center selection."""

    def test_force_direction_zero_sweep_is_full_turn(self):
        assert force_direction(0.0, clockwise=True) == -TAU
        assert force_direction(0.0, clockwise=False) == TAU

    def test_force_direction_keeps_matching_sign(self):
        assert force_direction(-1.0, clockwise=True) == -1.0
        assert force_direction(1.0, clockwise=False) == 1.0

    def test_force_direction_wraps_opposite_sign(self):
        assert force_direction(1.0, clockwise=True) == pytest.approx(1.0 - TAU)
        assert force_direction(-1.0, clockwise=False) == pytest.approx(TAU - 1.0)

    def test_select_center(self):
        assert select_center(1.0, 5.0, large=False)
        assert not select_center(1.0, 5.0, large=True)
        assert not select_center(5.0, -1.0, large=False)

    def test_select_center_half_turn_counts_as_small(self):
        assert select_center(math.pi, 4.0, large=False)
        assert not select_center(math.pi, 4.0, large=True)


class TestArcToSegments:
    """Tests for arc rasterization."""

    def test_quarter_circle(self):
        start = Vec3(10, 0, 0)
        end = Vec3(0, 10, 0)
        segments = arc_to_segments(start, end, Vec3(0, 0, 0), False, Plane.XY)

        expected = math.ceil(10 * math.pi / 2 / ARC_SEGMENT_LENGTH)
        assert len(segments) == expected
        assert segments[0].start == start
        assert segments[-1].end == end
        for segment in segments:
            assert segment.kind == MoveKind.FEED
            assert math.hypot(segment.end.x, segment.end.y) == pytest.approx(10.0)
            assert segment.end.y >= 0.0 and segment.end.x >= -1e-9

    def test_segments_are_chained(self):
        segments = arc_to_segments(Vec3(10, 0, 0), Vec3(-10, 0, 0), Vec3(0, 0, 0), True, Plane.XY)
        for prev, segment in zip(segments, segments[1:]):
            assert prev.end == segment.start
        # Clockwise from +X to -X passes below the center
        assert min(segment.end.y for segment in segments) < -9.9

    def test_segments_never_exceed_nominal_length(self):
        segments = arc_to_segments(Vec3(3, 0, 0), Vec3(0, 3, 0), Vec3(0, 0, 0), False, Plane.XY)
        assert all(segment.length() <= ARC_SEGMENT_LENGTH + 1e-9 for segment in segments)

    def test_full_circle_when_end_equals_start(self):
        start = Vec3(10, 0, 0)
        segments = arc_to_segments(start, start, Vec3(0, 0, 0), False, Plane.XY)
        assert len(segments) == math.ceil(TAU * 10 / ARC_SEGMENT_LENGTH)
        assert segments[-1].end == start

    def test_helix_interpolates_normal_axis(self):
        segments = arc_to_segments(Vec3(10, 0, 0), Vec3(0, 10, 4), Vec3(0, 0, 0), False, Plane.XY)
        zs = [segment.end.z for segment in segments]
        assert zs == sorted(zs)
        assert zs[-1] == 4
        mid = len(segments) // 2
        assert segments[mid - 1].end.z == pytest.approx(4.0 * mid / len(segments))

    def test_yz_plane_keeps_x(self):
        start = Vec3(7, 0, 0)
        end = Vec3(7, 0, 2)
        center = Vec3(7, 0, 1)
        segments = arc_to_segments(start, end, center, True, Plane.YZ)
        assert segments
        for segment in segments:
            assert segment.end.x == pytest.approx(7.0)
            assert math.hypot(segment.end.y, segment.end.z - 1.0) == pytest.approx(1.0)

    def test_tiny_arc_is_single_segment(self):
        segments = arc_to_segments(Vec3(1, 0, 0), Vec3(0.99995, 0.01, 0), Vec3(0, 0, 0),
                                   False, Plane.XY)
        assert len(segments) == 1

    def test_zero_radius_produces_nothing(self):
        assert arc_to_segments(Vec3(1, 1, 0), Vec3(2, 2, 0), Vec3(1, 1, 0), False, Plane.XY) == []
