"""
Camera projection of toolpath points onto the view plane.
"""
import math
from dataclasses import dataclass
from enum import Enum
from core.geometry import Vec2, Vec3


class ProjectionMode(Enum):
    ORTHOGRAPHIC = "orthographic"
    PERSPECTIVE = "perspective"

    @classmethod
    def parse(cls, raw: str) -> 'ProjectionMode':
        """Accept the full names and the short forms ortho/persp."""
        name = raw.strip().lower()
        if name in ("orthographic", "ortho"):
            return cls.ORTHOGRAPHIC
        if name in ("perspective", "persp"):
            return cls.PERSPECTIVE
        raise ValueError(f"unknown projection mode: {name}")

    @property
    def short_name(self) -> str:
        return "ortho" if self is ProjectionMode.ORTHOGRAPHIC else "persp"

    def toggled(self) -> 'ProjectionMode':
        if self is ProjectionMode.ORTHOGRAPHIC:
            return ProjectionMode.PERSPECTIVE
        return ProjectionMode.ORTHOGRAPHIC


@dataclass(frozen=True)
class ViewAngles:
    yaw: float
    pitch: float


@dataclass(frozen=True)
class ProjectionParams:
    mode: ProjectionMode
    angles: ViewAngles
    camera_distance: float
    target: Vec3


def rotate_point(point: Vec3, angles: ViewAngles) -> Vec3:
    """Yaw about Z, then pitch about X."""
    sy, cy = math.sin(angles.yaw), math.cos(angles.yaw)
    sp, cp = math.sin(angles.pitch), math.cos(angles.pitch)

    x1 = point.x * cy - point.y * sy
    y1 = point.x * sy + point.y * cy
    z1 = point.z

    y2 = y1 * cp - z1 * sp
    z2 = y1 * sp + z1 * cp
    return Vec3(x1, y2, z2)


def project_point(point: Vec3, params: ProjectionParams) -> Vec2:
    rotated = rotate_point(point - params.target, params.angles)
    if params.mode is ProjectionMode.ORTHOGRAPHIC:
        return Vec2(rotated.x, rotated.y)

    denom = params.camera_distance + rotated.z
    # Points on the camera plane would divide by zero.
    factor = 1.0 if abs(denom) < 1e-6 else params.camera_distance / denom
    return Vec2(rotated.x * factor, rotated.y * factor)
