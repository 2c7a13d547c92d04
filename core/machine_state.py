"""
Modal state for the toolpath interpreter.
Tracks position, plane, units and distance/motion modes across lines.
"""
from dataclasses import dataclass
from typing import Optional, Tuple
from enum import Enum
from core.geometry import Vec3, ORIGIN


class Plane(Enum):
    XY = "G17"
    XZ = "G18"
    YZ = "G19"

    @property
    def axes(self) -> Tuple[str, str, str]:
        """(first in-plane axis, second in-plane axis, out-of-plane axis)."""
        return PLANE_AXES[self]

    @property
    def offset_letters(self) -> Tuple[str, str]:
        """Arc center offset letters for the two in-plane axes."""
        return PLANE_OFFSET_LETTERS[self]

    def project(self, point: Vec3) -> Tuple[float, float]:
        first, second, _ = self.axes
        return getattr(point, first), getattr(point, second)

    def unproject(self, a: float, b: float, base: Vec3, normal: Optional[float] = None) -> Vec3:
        """
        Build a point with in-plane coordinates (a, b).

        The out-of-plane coordinate comes from normal, or from base when
        normal is None.
        """
        first, second, third = self.axes
        coords = {'x': base.x, 'y': base.y, 'z': base.z}
        coords[first] = a
        coords[second] = b
        if normal is not None:
            coords[third] = normal
        return Vec3(**coords)


PLANE_AXES = {
    Plane.XY: ('x', 'y', 'z'),
    Plane.XZ: ('x', 'z', 'y'),
    Plane.YZ: ('y', 'z', 'x'),
}

PLANE_OFFSET_LETTERS = {
    Plane.XY: ('I', 'J'),
    Plane.XZ: ('I', 'K'),
    Plane.YZ: ('J', 'K'),
}


class DistanceMode(Enum):
    ABSOLUTE = "G90"
    RELATIVE = "G91"


class MotionMode(Enum):
    RAPID = "G0"
    FEED = "G1"
    ARC_CW = "G2"
    ARC_CCW = "G3"

    @property
    def is_arc(self) -> bool:
        return self in (MotionMode.ARC_CW, MotionMode.ARC_CCW)


MM_PER_INCH = 25.4


@dataclass
class ModalState:
    """Parser context that persists across lines until explicitly changed."""
    position: Vec3 = ORIGIN
    units_scale: float = 1.0
    distance_mode: DistanceMode = DistanceMode.ABSOLUTE
    plane: Plane = Plane.XY
    motion_mode: MotionMode = MotionMode.RAPID

    def apply_g_code(self, code: int) -> Optional[MotionMode]:
        """
        Update the modal group selected by a G-code number.

        Returns the motion mode when the code selects one, otherwise None.
        Codes outside the supported set are ignored.
        """
        motion = G_MOTION_CODES.get(code)
        if motion is not None:
            self.motion_mode = motion
            return motion

        if code in G_PLANE_CODES:
            self.plane = G_PLANE_CODES[code]
        elif code == 20:
            self.units_scale = MM_PER_INCH
        elif code == 21:
            self.units_scale = 1.0
        elif code == 90:
            self.distance_mode = DistanceMode.ABSOLUTE
        elif code == 91:
            self.distance_mode = DistanceMode.RELATIVE
        return None

    def resolve_target(self, x: Optional[float], y: Optional[float],
                       z: Optional[float]) -> Vec3:
        """
        Compute the end point of a move from this line's axis words.

        Absolute mode replaces an axis, relative mode adds to it; axes
        without a word keep their current value.
        """
        start = self.position
        return Vec3(
            self._apply_axis(start.x, x),
            self._apply_axis(start.y, y),
            self._apply_axis(start.z, z)
        )

    def _apply_axis(self, current: float, value: Optional[float]) -> float:
        if value is None:
            return current
        if self.distance_mode == DistanceMode.ABSOLUTE:
            return value
        return current + value

    def get_state_summary(self) -> dict:
        """Get a summary of the current modal state for display."""
        return {
            'position': self.position.to_list(),
            'units': 'in' if self.units_scale == MM_PER_INCH else 'mm',
            'distance': self.distance_mode.value,
            'plane': self.plane.value,
            'motion': self.motion_mode.value
        }


G_MOTION_CODES = {
    0: MotionMode.RAPID,
    1: MotionMode.FEED,
    2: MotionMode.ARC_CW,
    3: MotionMode.ARC_CCW,
}

G_PLANE_CODES = {
    17: Plane.XY,
    18: Plane.XZ,
    19: Plane.YZ,
}
