"""Geometry primitives: points, rotations and rigid transforms.

These are host-side value types. They are immutable so a scene can be shared
freely while a render is in flight; coordinates are converted to single
precision only when they are uploaded to Taichi fields.

Angles are expressed in degrees everywhere at the public interface.

Example:
    >>> from meshtracer.geometry.primitives import Point3, Rotation, Transform
    >>> t = Transform(translation=Point3(1.0, 0.0, 0.0))
    >>> t.apply(Point3(0.0, 2.0, 0.0))
    Point3(x=1.0, y=2.0, z=0.0)
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt


@dataclass(frozen=True)
class Point3:
    """A position (or vector) with x, y, z coordinates.

    Attributes:
        x: X coordinate.
        y: Y coordinate.
        z: Z coordinate.
    """

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y
        yield self.z

    def __add__(self, other: Point3) -> Point3:
        return Point3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Point3) -> Point3:
        return Point3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __neg__(self) -> Point3:
        return Point3(-self.x, -self.y, -self.z)

    def __mul__(self, scalar: float) -> Point3:
        return Point3(self.x * scalar, self.y * scalar, self.z * scalar)

    __rmul__ = __mul__

    def as_tuple(self) -> tuple[float, float, float]:
        """Return the coordinates as a plain tuple."""
        return (self.x, self.y, self.z)

    @classmethod
    def from_sequence(cls, values: tuple[float, float, float] | list[float]) -> Point3:
        """Build a point from any three-element sequence."""
        x, y, z = values
        return cls(float(x), float(y), float(z))


ORIGIN = Point3(0.0, 0.0, 0.0)


@dataclass(frozen=True)
class Rotation:
    """An orientation given as pitch, yaw and roll angles in degrees.

    Pitch turns about the X axis, yaw about the Y axis and roll about the
    Z axis (the camera's forward axis). The composed matrix applies roll
    first, then pitch, then yaw.

    Attributes:
        pitch: Rotation about X in degrees.
        yaw: Rotation about Y in degrees.
        roll: Rotation about Z in degrees.
    """

    pitch: float = 0.0
    yaw: float = 0.0
    roll: float = 0.0

    def is_identity(self) -> bool:
        """Check whether all three angles are zero."""
        return self.pitch == 0.0 and self.yaw == 0.0 and self.roll == 0.0

    def matrix(self) -> npt.NDArray[np.float64]:
        """Compute the 3x3 rotation matrix Ry(yaw) @ Rx(pitch) @ Rz(roll).

        Returns:
            A NumPy array of shape (3, 3).
        """
        p = math.radians(self.pitch)
        y = math.radians(self.yaw)
        r = math.radians(self.roll)

        rx = np.array(
            [
                [1.0, 0.0, 0.0],
                [0.0, math.cos(p), -math.sin(p)],
                [0.0, math.sin(p), math.cos(p)],
            ]
        )
        ry = np.array(
            [
                [math.cos(y), 0.0, math.sin(y)],
                [0.0, 1.0, 0.0],
                [-math.sin(y), 0.0, math.cos(y)],
            ]
        )
        rz = np.array(
            [
                [math.cos(r), -math.sin(r), 0.0],
                [math.sin(r), math.cos(r), 0.0],
                [0.0, 0.0, 1.0],
            ]
        )
        return ry @ rx @ rz


def rotate_point(matrix: npt.NDArray[np.float64], point: Point3) -> Point3:
    """Apply a 3x3 matrix to a point."""
    rotated = matrix @ np.array(point.as_tuple(), dtype=np.float64)
    return Point3(float(rotated[0]), float(rotated[1]), float(rotated[2]))


@dataclass(frozen=True)
class Transform:
    """A rigid-body placement: a rotation followed by a translation.

    Attributes:
        rotation: Orientation of the object about its own origin.
        translation: Offset of the object origin in world space.
    """

    rotation: Rotation = field(default_factory=Rotation)
    translation: Point3 = ORIGIN

    def apply(self, point: Point3, apply_rotation: bool = False) -> Point3:
        """Map an object-space point to world space.

        Args:
            point: The object-space point.
            apply_rotation: Rotate about the object origin before translating.
                Off by default, in which case only the translation is used.

        Returns:
            The world-space point.
        """
        if apply_rotation and not self.rotation.is_identity():
            point = rotate_point(self.rotation.matrix(), point)
        return point + self.translation
