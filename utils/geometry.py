"""
Utility functions for geometric calculations, primarily for arcs.

Arc centers are solved either from I/J/K offsets or from a radius, and
solved arcs are broken into short feed segments for display.
"""
import math
from typing import List, Mapping, Optional, Tuple
from core.geometry import LineSegment, MoveKind, Vec3
from core.machine_state import Plane
from utils.errors import ArcCenterMissing, ArcDegenerate, ArcRadiusTooSmall

TAU = 2.0 * math.pi

# Maximum arc length covered by one rasterized segment (mm).
ARC_SEGMENT_LENGTH = 0.5

CHORD_EPSILON = 1e-9
RADIUS_EPSILON = 1e-6


def arc_center(start: Vec3, end: Vec3, offsets: Mapping[str, float],
               radius: Optional[float], plane: Plane, clockwise: bool) -> Vec3:
    """
    Find the center of an arc move.

    offsets holds whichever of I/J/K appeared on the line. When any offset is
    present the center is taken from them, otherwise from radius.
    """
    if offsets:
        return arc_center_from_offsets(start, offsets, plane)
    if radius is not None:
        return arc_center_from_radius(start, end, radius, plane, clockwise)
    raise ArcCenterMissing("arc center offsets missing (IJK or R)")


def arc_center_from_offsets(start: Vec3, offsets: Mapping[str, float], plane: Plane) -> Vec3:
    """Center = start shifted by the offsets of the active plane's two axes."""
    first_letter, second_letter = plane.offset_letters
    sa, sb = plane.project(start)
    center = plane.unproject(
        sa + offsets.get(first_letter, 0.0),
        sb + offsets.get(second_letter, 0.0),
        start
    )
    if center == start:
        raise ArcCenterMissing("arc center offsets missing")
    return center


def arc_center_from_radius(start: Vec3, end: Vec3, radius: float,
                           plane: Plane, clockwise: bool) -> Vec3:
    """
    Solve the center of an R-format arc.

    A chord and a radius give two candidate centers. A positive radius
    selects the arc sweeping at most half a turn, a negative radius the
    one sweeping more.
    """
    sx, sy = plane.project(start)
    ex, ey = plane.project(end)
    dx = ex - sx
    dy = ey - sy
    chord = math.hypot(dx, dy)
    if chord < CHORD_EPSILON:
        raise ArcDegenerate("arc radius with coincident endpoints")

    r_abs = abs(radius)
    if chord > 2.0 * r_abs + CHORD_EPSILON:
        raise ArcRadiusTooSmall("arc radius too small for chord")

    first, second = candidate_centers(sx, sy, ex, ey, r_abs)
    sweep1 = sweep_for_center(sx, sy, ex, ey, first[0], first[1], clockwise)
    sweep2 = sweep_for_center(sx, sy, ex, ey, second[0], second[1], clockwise)

    cx, cy = first if select_center(sweep1, sweep2, large=radius < 0.0) else second
    return plane.unproject(cx, cy, start)


def candidate_centers(sx: float, sy: float, ex: float, ey: float,
                      r_abs: float) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """The two circle centers through both points, left of the chord first."""
    dx = ex - sx
    dy = ey - sy
    chord = math.hypot(dx, dy)
    mid_x = (sx + ex) * 0.5
    mid_y = (sy + ey) * 0.5

    h_sq = r_abs * r_abs - (chord * 0.5) ** 2
    h = math.sqrt(h_sq) if h_sq > 0.0 else 0.0
    perp_x = -dy / chord
    perp_y = dx / chord

    return ((mid_x + perp_x * h, mid_y + perp_y * h),
            (mid_x - perp_x * h, mid_y - perp_y * h))


def sweep_for_center(sx: float, sy: float, ex: float, ey: float,
                     cx: float, cy: float, clockwise: bool) -> float:
    """
    Signed angle from start to end around the center.

    Clockwise sweeps are negative and counter-clockwise sweeps positive;
    coincident angles give a full turn.
    """
    start_angle = math.atan2(sy - cy, sx - cx)
    end_angle = math.atan2(ey - cy, ex - cx)
    return force_direction(end_angle - start_angle, clockwise)


def force_direction(sweep: float, clockwise: bool) -> float:
    if clockwise:
        if sweep >= 0.0:
            sweep -= TAU
    elif sweep <= 0.0:
        sweep += TAU
    return sweep


def select_center(sweep1: float, sweep2: float, large: bool) -> bool:
    """
    Return True to pick the first candidate.

    Sweeps of exactly half a turn count as small.
    """
    s1 = abs(sweep1)
    s2 = abs(sweep2)
    if large:
        if s1 > math.pi and s2 <= math.pi:
            return True
        if s2 > math.pi and s1 <= math.pi:
            return False
        return s1 >= s2
    if s1 <= math.pi and s2 > math.pi:
        return True
    if s2 <= math.pi and s1 > math.pi:
        return False
    return s1 <= s2


def arc_to_segments(start: Vec3, end: Vec3, center: Vec3,
                    clockwise: bool, plane: Plane) -> List[LineSegment]:
    """
    Rasterize an arc into chained feed segments.

    Each segment covers at most ARC_SEGMENT_LENGTH of arc; the axis normal
    to the plane is interpolated linearly (helical moves). The last segment
    ends exactly on end.
    """
    sx, sy = plane.project(start)
    ex, ey = plane.project(end)
    cx, cy = plane.project(center)

    radius = math.hypot(sx - cx, sy - cy)
    if radius < RADIUS_EPSILON:
        return []

    start_angle = math.atan2(sy - cy, sx - cx)
    end_angle = math.atan2(ey - cy, ex - cx)
    sweep = force_direction(end_angle - start_angle, clockwise)

    arc_length = radius * abs(sweep)
    steps = max(1, math.ceil(arc_length / ARC_SEGMENT_LENGTH))

    _, _, normal_axis = plane.axes
    normal_start = getattr(start, normal_axis)
    normal_end = getattr(end, normal_axis)

    segments = []
    prev = start
    for step in range(1, steps + 1):
        if step == steps:
            point = end
        else:
            t = step / steps
            angle = start_angle + sweep * t
            point = plane.unproject(
                cx + radius * math.cos(angle),
                cy + radius * math.sin(angle),
                start,
                normal_start + (normal_end - normal_start) * t
            )
        segments.append(LineSegment(prev, point, MoveKind.FEED))
        prev = point

    return segments
