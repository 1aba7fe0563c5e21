"""Triangle primitive with ray-triangle intersection.

A triangle is three vertices in a single coordinate space. Intersection uses
the Moller-Trumbore algorithm:

1. Solve origin + t * direction = v1 + u * (v2 - v1) + v * (v3 - v1)
   with Cramer's rule, where det is the triple product of the edges and
   the ray direction.
2. Reject the ray if det is (nearly) zero relative to the edge and direction
   lengths: the ray is parallel to the plane or the triangle has zero area.
   The tolerance scales with the triangle, so small triangles still hit.
3. Reject the hit if the barycentric coordinates fall outside the triangle
   or if t is negative (the triangle lies behind the ray origin).

A distance of exactly zero is a valid hit. Triangles are two-sided unless
backface culling is requested, in which case a negative determinant (the
ray sees the clockwise side) is a miss.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from meshtracer.core.ray import Ray
    >>> from meshtracer.geometry.primitives import Point3
    >>> from meshtracer.geometry.triangle import Triangle
    >>> tri = Triangle(Point3(0, 0, 0), Point3(0, 1, 0), Point3(1, 1, 0))
    >>> tri.intersect(Ray(Point3(0.25, 0.5, -1.0), Point3(0.0, 0.0, 1.0)))
    (1.0, Point3(x=0.25, y=0.5, z=0.0))
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from meshtracer.core.ray import Ray, ray_at, to_vec3
from meshtracer.geometry.primitives import Point3, Transform, rotate_point

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Relative determinant threshold: |det| must exceed this fraction of
# |edge1| * |edge2| * |direction| for the ray to count as non-parallel
TRIANGLE_EPSILON = 1e-6


@dataclass(frozen=True)
class Triangle:
    """Three vertices in one coordinate space.

    No degeneracy check is performed. A zero-area triangle is accepted and is
    simply never hit.

    Attributes:
        v1: First vertex.
        v2: Second vertex.
        v3: Third vertex.
    """

    v1: Point3
    v2: Point3
    v3: Point3

    def vertices(self) -> tuple[Point3, Point3, Point3]:
        """Return the three vertices in order."""
        return (self.v1, self.v2, self.v3)

    def as_array(self) -> npt.NDArray[np.float32]:
        """Return the vertices as a (3, 3) float32 array, one row per vertex."""
        return np.array([v.as_tuple() for v in self.vertices()], dtype=np.float32)

    def translated(self, offset: Point3) -> "Triangle":
        """Return a copy with every vertex moved by offset."""
        return Triangle(self.v1 + offset, self.v2 + offset, self.v3 + offset)

    def transformed(self, transform: Transform, apply_rotation: bool = False) -> "Triangle":
        """Return a copy mapped through a rigid transform.

        Args:
            transform: The placement to apply.
            apply_rotation: Rotate about the object origin before translating.

        Returns:
            The transformed triangle.
        """
        if not apply_rotation or transform.rotation.is_identity():
            return self.translated(transform.translation)
        matrix = transform.rotation.matrix()
        v1, v2, v3 = (rotate_point(matrix, v) for v in self.vertices())
        return Triangle(v1, v2, v3).translated(transform.translation)

    def area(self) -> float:
        """Compute the surface area of the triangle."""
        verts = self.as_array().astype(np.float64)
        return float(0.5 * np.linalg.norm(np.cross(verts[1] - verts[0], verts[2] - verts[0])))

    def is_degenerate(self) -> bool:
        """Check whether the triangle has zero area (coincident or collinear vertices)."""
        return self.area() == 0.0

    def intersect(self, ray: Ray, cull_backfaces: bool = False) -> tuple[float, Point3] | None:
        """Intersect a ray with this triangle.

        Runs the same Taichi routine the render kernels use, so results are
        computed in single precision.

        Args:
            ray: The ray, in the same space as the triangle.
            cull_backfaces: Treat hits on the back side as misses.

        Returns:
            (distance, hit_point) for a hit, or None for a miss.
        """
        _probe_triangle(
            to_vec3(ray.origin),
            to_vec3(ray.direction),
            to_vec3(self.v1),
            to_vec3(self.v2),
            to_vec3(self.v3),
            int(cull_backfaces),
        )
        if _probe_hit[None] == 0:
            return None
        p = _probe_point[None]
        return float(_probe_t[None]), Point3(float(p[0]), float(p[1]), float(p[2]))


@ti.dataclass
class TriangleHit:
    """Result of a ray-triangle test.

    Attributes:
        hit: 1 if the ray hit the triangle, 0 otherwise.
        t: Distance along the ray direction. Only valid if hit == 1.
        point: origin + t * direction. Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3


@ti.func
def hit_triangle(
    ray_origin: vec3,
    ray_direction: vec3,
    v1: vec3,
    v2: vec3,
    v3: vec3,
    cull_backfaces: ti.i32,
) -> TriangleHit:
    """Test for ray-triangle intersection (Moller-Trumbore).

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        v1: First vertex.
        v2: Second vertex.
        v3: Third vertex.
        cull_backfaces: 1 to reject hits where the determinant is negative.

    Returns:
        A TriangleHit. Check the hit field to determine if intersection occurred.
    """
    edge1 = v2 - v1
    edge2 = v3 - v1
    p = tm.cross(ray_direction, edge2)
    det = tm.dot(edge1, p)

    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)

    tolerance = TRIANGLE_EPSILON * tm.length(edge1) * tm.length(edge2) * tm.length(ray_direction)

    facing = 0
    if det > tolerance:
        facing = 1
    elif det < -tolerance and cull_backfaces == 0:
        facing = 1

    if facing == 1:
        inv_det = 1.0 / det
        s = ray_origin - v1
        bary_u = tm.dot(s, p) * inv_det
        if bary_u >= 0.0 and bary_u <= 1.0:
            q = tm.cross(s, edge1)
            bary_v = tm.dot(ray_direction, q) * inv_det
            if bary_v >= 0.0 and bary_u + bary_v <= 1.0:
                t = tm.dot(edge2, q) * inv_det
                # Behind the origin is a miss; t == 0 is on the surface
                if t >= 0.0:
                    did_hit = 1
                    hit_t = t
                    hit_point = ray_at(ray_origin, ray_direction, t)

    return TriangleHit(hit=did_hit, t=hit_t, point=hit_point)


# Probe storage for Python-scope queries
_probe_hit = ti.field(dtype=ti.i32, shape=())
_probe_t = ti.field(dtype=ti.f32, shape=())
_probe_point = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _probe_triangle(
    ray_origin: vec3,
    ray_direction: vec3,
    v1: vec3,
    v2: vec3,
    v3: vec3,
    cull_backfaces: ti.i32,
):
    """Run hit_triangle once and store the result in the probe fields."""
    rec = hit_triangle(ray_origin, ray_direction, v1, v2, v3, cull_backfaces)
    _probe_hit[None] = rec.hit
    _probe_t[None] = rec.t
    _probe_point[None] = rec.point
