"""Unit tests for spatial indices.

Tests cover:
- find_hit() for both hit policies on LinearScan and BoundingVolumeHierarchy
- Mapping flat triangle indices back to (mesh, triangle) pairs
- Re-activation when another index replaced the device data
- Linear scan and BVH agreeing on randomized scenes
- Capacity errors at construction
"""

import numpy as np
import pytest

from meshtracer.errors import SceneCapacityError


def _plane_mesh(z, count=1):
    """A mesh of count identical large triangles in the plane z."""
    from meshtracer.geometry.mesh import Mesh
    from meshtracer.geometry.primitives import Point3
    from meshtracer.geometry.triangle import Triangle

    tri = Triangle(Point3(-10.0, -10.0, z), Point3(-10.0, 30.0, z), Point3(30.0, -10.0, z))
    return Mesh([tri] * count)


def _forward_ray():
    from meshtracer.core.ray import Ray
    from meshtracer.geometry.primitives import Point3

    return Ray(Point3(0.0, 0.0, -1.0), Point3(0.0, 0.0, 1.0))


def _random_scene(n=200, seed=3):
    """Small random triangles in front of a camera at (0, 0, -1)."""
    from meshtracer.geometry.mesh import Mesh
    from meshtracer.geometry.primitives import Point3
    from meshtracer.geometry.triangle import Triangle
    from meshtracer.scene.scene import Scene

    rng = np.random.default_rng(seed)
    centers = np.column_stack(
        [rng.uniform(0.0, 3.0, n), rng.uniform(0.0, 3.0, n), rng.uniform(1.0, 3.0, n)]
    )
    offsets = rng.uniform(-0.4, 0.4, size=(n, 3, 3))
    triangles = [
        Triangle(*(Point3(*(centers[i] + offsets[i, k]).tolist()) for k in range(3))) for i in range(n)
    ]
    # Split across meshes so mesh/triangle mapping is exercised
    return Scene([Mesh(triangles[:50]), Mesh(), Mesh(triangles[50:120]), Mesh(triangles[120:])])


@pytest.fixture(params=["linear", "bvh"])
def index_cls(request):
    from meshtracer.scene.index import BoundingVolumeHierarchy, LinearScan

    return LinearScan if request.param == "linear" else BoundingVolumeHierarchy


class TestFindHit:
    """Tests for SpatialIndex.find_hit()."""

    def test_first_hit_and_nearest_hit(self, index_cls):
        from meshtracer.scene.intersection import HitPolicy
        from meshtracer.scene.scene import Scene

        scene = Scene([_plane_mesh(2.0), _plane_mesh(1.0)])
        index = index_cls(scene)

        first = index.find_hit(_forward_ray())
        nearest = index.find_hit(_forward_ray(), HitPolicy.NEAREST_HIT)

        assert (first.mesh_index, first.triangle_index) == (0, 0)
        assert first.distance == pytest.approx(3.0)
        assert first.point.as_tuple() == pytest.approx((0.0, 0.0, 2.0))
        assert (nearest.mesh_index, nearest.triangle_index) == (1, 0)
        assert nearest.distance == pytest.approx(2.0)

    def test_miss_returns_none(self, index_cls):
        from meshtracer.core.ray import Ray
        from meshtracer.geometry.primitives import Point3
        from meshtracer.scene.scene import Scene

        index = index_cls(Scene([_plane_mesh(1.0)]))
        assert index.find_hit(Ray(Point3(0.0, 0.0, -1.0), Point3(0.0, 0.0, -1.0))) is None

    def test_empty_scene(self, index_cls):
        from meshtracer.scene.intersection import HitPolicy
        from meshtracer.scene.scene import Scene

        index = index_cls(Scene())
        assert index.triangle_count == 0
        for policy in HitPolicy:
            assert index.find_hit(_forward_ray(), policy) is None

    def test_backface_culling(self, index_cls):
        from meshtracer.core.ray import Ray
        from meshtracer.geometry.primitives import Point3
        from meshtracer.scene.scene import Scene

        index = index_cls(Scene([_plane_mesh(1.0)]))
        backward = Ray(Point3(0.0, 0.0, 5.0), Point3(0.0, 0.0, -1.0))

        assert index.find_hit(backward) is not None
        assert index.find_hit(backward, cull_backfaces=True) is None

    def test_locates_triangle_inside_mesh(self, index_cls):
        from meshtracer.geometry.mesh import Mesh
        from meshtracer.scene.intersection import HitPolicy
        from meshtracer.scene.scene import Scene

        # Mesh 1 is empty; mesh 2 holds the nearest plane as its third triangle
        near = _plane_mesh(0.5)
        mesh2 = Mesh(_plane_mesh(4.0, 2).triangles + near.triangles)
        scene = Scene([_plane_mesh(3.0, 3), Mesh(), mesh2])

        hit = index_cls(scene).find_hit(_forward_ray(), HitPolicy.NEAREST_HIT)
        assert (hit.mesh_index, hit.triangle_index) == (2, 2)

    def test_mesh_translation_is_applied(self, index_cls):
        from meshtracer.geometry.mesh import Mesh
        from meshtracer.geometry.primitives import Point3, Transform
        from meshtracer.scene.scene import Scene

        mesh = Mesh(_plane_mesh(1.0).triangles, Transform(translation=Point3(0.0, 0.0, 2.0)))
        hit = index_cls(Scene([mesh])).find_hit(_forward_ray())
        assert hit.distance == pytest.approx(4.0)


class TestActivation:
    """Tests for sharing the device storage between indices."""

    def test_reactivates_after_other_index(self):
        from meshtracer.scene.index import BoundingVolumeHierarchy, LinearScan
        from meshtracer.scene.scene import Scene

        near = LinearScan(Scene([_plane_mesh(1.0)]))
        far = BoundingVolumeHierarchy(Scene([_plane_mesh(5.0)]))

        assert near.find_hit(_forward_ray()).distance == pytest.approx(2.0)
        assert near.is_active()

        assert far.find_hit(_forward_ray()).distance == pytest.approx(6.0)
        assert far.is_active()
        assert not near.is_active()

        assert near.find_hit(_forward_ray()).distance == pytest.approx(2.0)

    def test_clear_scene_deactivates(self):
        from meshtracer.scene.index import LinearScan
        from meshtracer.scene.intersection import clear_scene
        from meshtracer.scene.scene import Scene

        index = LinearScan(Scene([_plane_mesh(1.0)]))
        index.activate()
        clear_scene()

        assert not index.is_active()
        assert index.find_hit(_forward_ray()) is not None


class TestLinearScanMatchesBVH:
    """The two strategies must agree hit for hit."""

    @pytest.mark.parametrize("policy_name", ["FIRST_HIT", "NEAREST_HIT"])
    def test_random_scene(self, policy_name):
        from meshtracer.camera.camera import Camera
        from meshtracer.geometry.primitives import Point3
        from meshtracer.scene.index import BoundingVolumeHierarchy, LinearScan
        from meshtracer.scene.intersection import HitPolicy

        policy = HitPolicy[policy_name]
        scene = _random_scene()
        camera = Camera(origin=Point3(0.0, 0.0, -1.0))
        linear = LinearScan(scene)
        bvh = BoundingVolumeHierarchy(scene, leaf_size=2)

        hits = 0
        for u in np.linspace(0.0, 0.99, 12):
            for v in np.linspace(0.0, 0.99, 12):
                ray = camera.ray_for(float(u), float(v))
                expected = linear.find_hit(ray, policy)
                actual = bvh.find_hit(ray, policy)
                if expected is None:
                    assert actual is None
                    continue
                hits += 1
                assert (actual.mesh_index, actual.triangle_index) == (
                    expected.mesh_index,
                    expected.triangle_index,
                )
                assert actual.distance == pytest.approx(expected.distance, rel=1e-5)
        assert hits > 0


class TestMakeSpatialIndex:
    """Tests for the index factory and construction errors."""

    def test_factory(self):
        from meshtracer.scene.index import BoundingVolumeHierarchy, LinearScan, make_spatial_index
        from meshtracer.scene.intersection import SpatialIndexKind
        from meshtracer.scene.scene import Scene

        scene = Scene([_plane_mesh(1.0)])
        assert type(make_spatial_index(SpatialIndexKind.LINEAR_SCAN, scene)) is LinearScan
        assert type(make_spatial_index(SpatialIndexKind.BVH, scene)) is BoundingVolumeHierarchy
        assert type(make_spatial_index(1, scene)) is BoundingVolumeHierarchy

    def test_factory_rejects_unknown_kind(self):
        from meshtracer.scene.index import make_spatial_index
        from meshtracer.scene.scene import Scene

        with pytest.raises(ValueError):
            make_spatial_index(7, Scene())

    def test_too_many_triangles(self):
        from meshtracer.scene.index import LinearScan
        from meshtracer.scene.intersection import MAX_TRIANGLES
        from meshtracer.scene.scene import Scene

        scene = Scene([_plane_mesh(1.0, MAX_TRIANGLES + 1)])
        with pytest.raises(SceneCapacityError):
            LinearScan(scene)
