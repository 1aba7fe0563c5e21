"""Unit tests for ray-triangle intersection.

Tests cover:
- Hits inside the triangle with distance and point
- Misses outside the triangle, parallel rays and degenerate triangles
- Rays whose triangle lies behind the origin
- Distance zero counted as a hit
- Two-sided hits and optional backface culling
- The Taichi function used directly from a kernel
"""

import pytest
import taichi as ti


def _ray(origin, direction):
    from meshtracer.core.ray import Ray
    from meshtracer.geometry.primitives import Point3

    return Ray(Point3(*origin), Point3(*direction))


class TestTriangleIntersect:
    """Tests for Triangle.intersect()."""

    def test_hit_inside(self, reference_triangle):
        hit = reference_triangle.intersect(_ray((0.0, 0.0, -1.0), (0.25, 0.5, 1.0)))

        assert hit is not None
        distance, point = hit
        assert distance == pytest.approx(1.0)
        assert point.as_tuple() == pytest.approx((0.25, 0.5, 0.0), abs=1e-6)

    def test_miss_outside(self, reference_triangle):
        # (0.5, 0.25) lies on the other side of the x == y edge
        assert reference_triangle.intersect(_ray((0.0, 0.0, -1.0), (0.5, 0.25, 1.0))) is None

    def test_miss_parallel(self, reference_triangle):
        assert reference_triangle.intersect(_ray((0.0, 0.0, -1.0), (1.0, 0.0, 0.0))) is None

    def test_degenerate_never_hits(self):
        from meshtracer.geometry.primitives import Point3
        from meshtracer.geometry.triangle import Triangle

        collinear = Triangle(Point3(0.0, 0.0, 0.0), Point3(1.0, 1.0, 0.0), Point3(2.0, 2.0, 0.0))
        coincident = Triangle(Point3(0.5, 0.5, 0.0), Point3(0.5, 0.5, 0.0), Point3(0.5, 0.5, 0.0))

        for tri in (collinear, coincident):
            assert tri.is_degenerate()
            for direction in ((1.0, 1.0, 1.0), (0.5, 0.5, 1.0), (0.0, 0.0, 1.0)):
                assert tri.intersect(_ray((0.0, 0.0, -1.0), direction)) is None

    def test_small_triangle_hits(self):
        from meshtracer.geometry.primitives import Point3
        from meshtracer.geometry.triangle import Triangle

        tri = Triangle(Point3(0.0, 0.0, 0.0), Point3(1e-4, 0.0, 0.0), Point3(0.0, 1e-4, 0.0))
        assert not tri.is_degenerate()

        hit = tri.intersect(_ray((2e-5, 2e-5, -1.0), (0.0, 0.0, 1.0)))
        assert hit is not None
        distance, point = hit
        assert distance == pytest.approx(1.0)
        assert point.as_tuple() == pytest.approx((2e-5, 2e-5, 0.0), abs=1e-6)

        # Outside the small triangle is still a miss
        assert tri.intersect(_ray((1e-4, 1e-4, -1.0), (0.0, 0.0, 1.0))) is None

    def test_small_degenerate_never_hits(self):
        from meshtracer.geometry.primitives import Point3
        from meshtracer.geometry.triangle import Triangle

        tri = Triangle(Point3(0.0, 0.0, 0.0), Point3(1e-4, 1e-4, 0.0), Point3(2e-4, 2e-4, 0.0))
        assert tri.is_degenerate()
        assert tri.intersect(_ray((1e-4, 1e-4, -1.0), (0.0, 0.0, 1.0))) is None

    def test_behind_origin_is_miss(self, reference_triangle):
        # The plane z = 0 is at t = -1 from z = 1 moving toward +z
        assert reference_triangle.intersect(_ray((0.0, 0.0, 1.0), (0.25, 0.5, 1.0))) is None

    def test_zero_distance_is_hit(self, reference_triangle):
        hit = reference_triangle.intersect(_ray((0.25, 0.5, 0.0), (0.0, 0.0, 1.0)))

        assert hit is not None
        assert hit[0] == 0.0

    def test_hit_on_edge(self, reference_triangle):
        # The edge from (0,0,0) to (0,1,0) has barycentric v == 0
        assert reference_triangle.intersect(_ray((0.0, 0.5, -1.0), (0.0, 0.0, 1.0))) is not None

    def test_unnormalized_direction_scales_distance(self, reference_triangle):
        hit = reference_triangle.intersect(_ray((0.25, 0.5, -1.0), (0.0, 0.0, 2.0)))

        assert hit is not None
        assert hit[0] == pytest.approx(0.5)

    def test_two_sided_by_default(self, reference_triangle):
        ray = _ray((0.25, 0.5, 1.0), (0.0, 0.0, -1.0))
        assert reference_triangle.intersect(ray) is not None

    def test_backface_culling(self, reference_triangle):
        back = _ray((0.25, 0.5, 1.0), (0.0, 0.0, -1.0))
        front = _ray((0.25, 0.5, -1.0), (0.0, 0.0, 1.0))

        assert reference_triangle.intersect(back, cull_backfaces=True) is None
        assert reference_triangle.intersect(front, cull_backfaces=True) is not None


class TestTriangleGeometry:
    """Tests for host-side triangle helpers."""

    def test_area(self, reference_triangle):
        assert reference_triangle.area() == pytest.approx(0.5)
        assert not reference_triangle.is_degenerate()

    def test_as_array(self, reference_triangle):
        arr = reference_triangle.as_array()
        assert arr.shape == (3, 3)
        assert arr.dtype.name == "float32"
        assert arr[2].tolist() == [1.0, 1.0, 0.0]

    def test_translated(self, reference_triangle):
        from meshtracer.geometry.primitives import Point3

        moved = reference_triangle.translated(Point3(1.0, 0.0, -2.0))
        assert moved.v1 == Point3(1.0, 0.0, -2.0)
        assert moved.v3 == Point3(2.0, 1.0, -2.0)

    def test_transformed_ignores_rotation_unless_applied(self, reference_triangle):
        from meshtracer.geometry.primitives import Point3, Rotation, Transform

        transform = Transform(rotation=Rotation(roll=90.0), translation=Point3(0.0, 0.0, 1.0))

        plain = reference_triangle.transformed(transform)
        assert plain == reference_triangle.translated(Point3(0.0, 0.0, 1.0))

        rotated = reference_triangle.transformed(transform, apply_rotation=True)
        # Roll 90 maps (0, 1, 0) to (-1, 0, 0)
        assert rotated.v2.as_tuple() == pytest.approx((-1.0, 0.0, 1.0), abs=1e-12)


class TestHitTriangleKernel:
    """Tests for the hit_triangle Taichi function."""

    def test_hit_triangle_in_kernel(self):
        from meshtracer.geometry.triangle import hit_triangle, vec3

        result_hit = ti.field(dtype=ti.i32, shape=())
        result_t = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            rec = hit_triangle(
                vec3(0.0, 0.0, -1.0),
                vec3(0.25, 0.5, 1.0),
                vec3(0.0, 0.0, 0.0),
                vec3(0.0, 1.0, 0.0),
                vec3(1.0, 1.0, 0.0),
                0,
            )
            result_hit[None] = rec.hit
            result_t[None] = rec.t

        test_kernel()
        assert result_hit[None] == 1
        assert result_t[None] == pytest.approx(1.0)
