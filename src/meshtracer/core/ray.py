"""Ray value type and vector helpers for Taichi kernels.

The host-side Ray is an immutable origin/direction pair built once per pixel
query. Inside kernels a ray is carried as two vec3 values, which is what the
intersection functions take.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from meshtracer.core.ray import Ray
    >>> from meshtracer.geometry.primitives import Point3
    >>> ray = Ray(origin=Point3(0.0, 0.0, -1.0), direction=Point3(0.0, 0.0, 1.0))
    >>> ray.at(1.0)
    Point3(x=0.0, y=0.0, z=0.0)
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

import taichi as ti
import taichi.math as tm

if TYPE_CHECKING:
    from meshtracer.geometry.primitives import Point3

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@dataclass(frozen=True)
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray.
        direction: The direction of the ray. It is not normalized; distances
            returned by intersection tests are in units of this vector.
    """

    origin: "Point3"
    direction: "Point3"

    def at(self, t: float) -> "Point3":
        """Compute the point origin + t * direction."""
        return self.origin + self.direction * t


def to_vec3(point: "Point3") -> vec3:
    """Convert a host-side point to a Taichi vec3 for kernel arguments."""
    return vec3(point.x, point.y, point.z)


@ti.func
def ray_at(origin: vec3, direction: vec3, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        origin: The ray origin.
        direction: The ray direction.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point origin + t * direction.
    """
    return origin + t * direction


@ti.func
def safe_inverse(direction: vec3) -> vec3:
    """Component-wise reciprocal of a direction for slab tests.

    Components that are (nearly) zero map to a large finite value instead of
    infinity so that 0 * inf never produces NaN in the slab computation.

    Args:
        direction: The ray direction.

    Returns:
        The component-wise inverse direction.
    """
    return vec3(
        1.0 / direction.x if ti.abs(direction.x) > 1e-8 else 1e8,
        1.0 / direction.y if ti.abs(direction.y) > 1e-8 else 1e8,
        1.0 / direction.z if ti.abs(direction.z) > 1e-8 else 1e8,
    )
