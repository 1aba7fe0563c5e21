"""Unit tests for meshes and the scene container.

Tests cover:
- World-space triangles derived from the mesh transform
- Vectorized vertex arrays matching the per-triangle path
- Scene ordering, triangle counts and flattened arrays
"""

import numpy as np
import pytest


def _unit_triangles():
    from meshtracer.geometry.primitives import Point3
    from meshtracer.geometry.triangle import Triangle

    return [
        Triangle(Point3(0.0, 0.0, 0.0), Point3(0.0, 1.0, 0.0), Point3(1.0, 1.0, 0.0)),
        Triangle(Point3(1.0, 0.0, 2.0), Point3(1.0, 1.0, 2.0), Point3(2.0, 1.0, 3.0)),
    ]


class TestMesh:
    """Tests for Mesh."""

    def test_list_is_stored_as_tuple(self):
        from meshtracer.geometry.mesh import Mesh

        mesh = Mesh(_unit_triangles())
        assert isinstance(mesh.triangles, tuple)
        assert len(mesh) == 2

    def test_default_transform_is_identity(self):
        from meshtracer.geometry.mesh import Mesh

        mesh = Mesh(_unit_triangles())
        assert mesh.world_triangles() == mesh.triangles

    def test_world_triangles_are_translated(self):
        from meshtracer.geometry.mesh import Mesh
        from meshtracer.geometry.primitives import Point3, Transform

        offset = Point3(0.5, -1.0, 3.0)
        mesh = Mesh(_unit_triangles(), Transform(translation=offset))

        world = mesh.world_triangles()
        assert world == tuple(tri.translated(offset) for tri in mesh.triangles)
        # Object-space triangles are untouched
        assert mesh.triangles == tuple(_unit_triangles())

    def test_rotation_ignored_unless_applied(self):
        from meshtracer.geometry.mesh import Mesh
        from meshtracer.geometry.primitives import Point3, Rotation, Transform

        mesh = Mesh(_unit_triangles(), Transform(Rotation(yaw=90.0), Point3(1.0, 0.0, 0.0)))

        assert mesh.world_triangles() == Mesh(_unit_triangles(), Transform(translation=Point3(1.0, 0.0, 0.0))).world_triangles()
        rotated = mesh.world_triangles(apply_rotation=True)
        # Yaw 90 maps (1, 0, 2) to (2, 0, -1), then translate by (1, 0, 0)
        assert rotated[1].v1.as_tuple() == pytest.approx((3.0, 0.0, -1.0), abs=1e-12)

    @pytest.mark.parametrize("apply_rotation", [False, True])
    def test_vertex_arrays_match_world_triangles(self, apply_rotation):
        from meshtracer.geometry.mesh import Mesh
        from meshtracer.geometry.primitives import Point3, Rotation, Transform

        mesh = Mesh(
            _unit_triangles(),
            Transform(Rotation(pitch=10.0, yaw=20.0, roll=30.0), Point3(0.25, 0.5, -2.0)),
        )

        v1, v2, v3 = mesh.world_vertex_arrays(apply_rotation)
        world = mesh.world_triangles(apply_rotation)

        assert v1.shape == (2, 3)
        assert v1.dtype == np.float32
        for i, tri in enumerate(world):
            assert np.allclose(v1[i], tri.v1.as_tuple(), atol=1e-6)
            assert np.allclose(v2[i], tri.v2.as_tuple(), atol=1e-6)
            assert np.allclose(v3[i], tri.v3.as_tuple(), atol=1e-6)

    def test_empty_mesh_arrays(self):
        from meshtracer.geometry.mesh import Mesh

        v1, v2, v3 = Mesh().world_vertex_arrays()
        assert v1.shape == (0, 3)
        assert v2.shape == (0, 3)
        assert v3.shape == (0, 3)


class TestScene:
    """Tests for Scene."""

    def test_empty_scene(self):
        from meshtracer.scene.scene import Scene

        scene = Scene()
        assert len(scene) == 0
        assert scene.triangle_count == 0

        v1, v2, v3, mesh_ids = scene.world_vertex_arrays()
        assert v1.shape == (0, 3)
        assert mesh_ids.shape == (0,)

    def test_with_mesh_returns_new_scene(self):
        from meshtracer.geometry.mesh import Mesh
        from meshtracer.scene.scene import Scene

        scene = Scene()
        bigger = scene.with_mesh(Mesh(_unit_triangles()))

        assert len(scene) == 0
        assert len(bigger) == 1
        assert bigger.triangle_count == 2

    def test_traversal_order(self):
        from meshtracer.geometry.mesh import Mesh
        from meshtracer.geometry.primitives import Point3, Transform
        from meshtracer.scene.scene import Scene

        first = Mesh(_unit_triangles())
        empty = Mesh()
        last = Mesh(_unit_triangles()[:1], Transform(translation=Point3(0.0, 0.0, 5.0)))
        scene = Scene([first, empty, last])

        v1, _, _, mesh_ids = scene.world_vertex_arrays()
        assert mesh_ids.tolist() == [0, 0, 2]
        assert v1[2].tolist() == [0.0, 0.0, 5.0]
        assert scene.mesh_offsets() == [0, 2, 2]
