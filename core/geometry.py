"""
Geometry management for the toolpath.
Holds the points, segments and bounds produced by parsing, and the
accumulator that keeps segments, statistics and the per-line index in step.
"""
import math
from dataclasses import dataclass, field
from typing import List, Tuple
from enum import Enum


class MoveKind(Enum):
    RAPID = "rapid"
    FEED = "feed"


@dataclass(frozen=True)
class Vec2:
    """Represents a 2D point."""
    x: float
    y: float

    def __add__(self, other: 'Vec2') -> 'Vec2':
        return Vec2(self.x + other.x, self.y + other.y)


@dataclass(frozen=True)
class Vec3:
    """Represents a 3D point."""
    x: float
    y: float
    z: float

    def __add__(self, other: 'Vec3') -> 'Vec3':
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: 'Vec3') -> 'Vec3':
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scale: float) -> 'Vec3':
        return Vec3(self.x * scale, self.y * scale, self.z * scale)

    def to_list(self) -> List[float]:
        """Convert to list format."""
        return [self.x, self.y, self.z]

    def distance_to(self, other: 'Vec3') -> float:
        """Calculate distance to another point."""
        dx = self.x - other.x
        dy = self.y - other.y
        dz = self.z - other.z
        return math.sqrt(dx*dx + dy*dy + dz*dz)


ORIGIN = Vec3(0.0, 0.0, 0.0)


@dataclass(frozen=True)
class LineSegment:
    """A straight piece of the toolpath. Arcs are emitted as runs of these."""
    start: Vec3
    end: Vec3
    kind: MoveKind

    def length(self) -> float:
        return self.start.distance_to(self.end)


class Bounds2:
    """Running 2D min/max, undefined until the first point is included."""

    def __init__(self):
        self.min = Vec2(0.0, 0.0)
        self.max = Vec2(0.0, 0.0)
        self.initialized = False

    def include(self, point: Vec2):
        if not self.initialized:
            self.min = point
            self.max = point
            self.initialized = True
            return
        self.min = Vec2(min(self.min.x, point.x), min(self.min.y, point.y))
        self.max = Vec2(max(self.max.x, point.x), max(self.max.y, point.y))

    def center(self) -> Vec2:
        return Vec2((self.min.x + self.max.x) * 0.5, (self.min.y + self.max.y) * 0.5)

    def width(self) -> float:
        return self.max.x - self.min.x

    def height(self) -> float:
        return self.max.y - self.min.y


class Bounds3:
    """Running 3D min/max, undefined until the first point is included."""

    def __init__(self):
        self.min = ORIGIN
        self.max = ORIGIN
        self.initialized = False

    def include(self, point: Vec3):
        """Widen the box to contain point."""
        if not self.initialized:
            self.min = point
            self.max = point
            self.initialized = True
            return
        self.min = Vec3(
            min(self.min.x, point.x),
            min(self.min.y, point.y),
            min(self.min.z, point.z)
        )
        self.max = Vec3(
            max(self.max.x, point.x),
            max(self.max.y, point.y),
            max(self.max.z, point.z)
        )

    def size(self) -> Vec3:
        return self.max - self.min

    def center(self) -> Vec3:
        return (self.min + self.max) * 0.5

    def corners(self) -> List[Vec3]:
        """The eight corners of the box."""
        lo, hi = self.min, self.max
        return [Vec3(x, y, z)
                for z in (lo.z, hi.z)
                for y in (lo.y, hi.y)
                for x in (lo.x, hi.x)]


@dataclass
class ToolpathStats:
    line_count: int = 0
    segment_count: int = 0
    rapid_moves: int = 0
    feed_moves: int = 0
    arc_moves: int = 0


@dataclass
class Toolpath:
    """
    Parse result handed to the viewer.

    line_segment_ends[n] is the number of segments emitted up to and
    including source line n + 1.
    """
    segments: List[LineSegment]
    bounds: Bounds3
    stats: ToolpathStats
    line_segment_ends: List[int] = field(default_factory=list)

    def segments_for_lines(self, first_line: int, last_line: int) -> Tuple[int, int]:
        """
        Map an inclusive range of 0-based source lines to a segment slice.

        Lines past the end of the index are clamped to the last line.
        """
        total = len(self.segments)
        ends = self.line_segment_ends
        if total == 0:
            return 0, 0
        if not ends:
            return 0, total
        max_line = len(ends) - 1
        first_line = min(max(first_line, 0), max_line)
        last_line = min(max(last_line, 0), max_line)
        start = 0 if first_line == 0 else ends[first_line - 1]
        end = min(ends[last_line], total)
        return start, max(start, end)

    def total_length(self) -> float:
        return sum(segment.length() for segment in self.segments)


class ToolpathAccumulator:
    """Collects segments, statistics, bounds and the per-line segment index."""

    def __init__(self):
        self.segments: List[LineSegment] = []
        self.bounds = Bounds3()
        self.stats = ToolpathStats()
        self.line_segment_ends: List[int] = []

    def add_linear_move(self, start: Vec3, end: Vec3, kind: MoveKind):
        """Record a single rapid or feed segment."""
        self._append(LineSegment(start, end, kind))
        if kind == MoveKind.RAPID:
            self.stats.rapid_moves += 1
        else:
            self.stats.feed_moves += 1

    def add_arc_move(self, segments: List[LineSegment]):
        """Record a rasterized arc. An arc also counts as a feed move."""
        for segment in segments:
            self._append(segment)
        self.stats.arc_moves += 1
        self.stats.feed_moves += 1

    def end_line(self):
        """Close the current source line in the per-line index."""
        self.stats.line_count += 1
        self.line_segment_ends.append(len(self.segments))

    def finish(self) -> Toolpath:
        self.stats.segment_count = len(self.segments)
        return Toolpath(
            segments=self.segments,
            bounds=self.bounds,
            stats=self.stats,
            line_segment_ends=self.line_segment_ends
        )

    def _append(self, segment: LineSegment):
        self.segments.append(segment)
        self.bounds.include(segment.start)
        self.bounds.include(segment.end)
