"""Spatial indices: host-side handles on the device triangle storage.

A SpatialIndex flattens a Scene into world-space triangles once, at
construction, and uploads them to the shared Taichi fields when activated.
Because the fields are module-global, only one index is resident at a time;
activating an index whose data was replaced since re-uploads it.

Two strategies are provided behind the same find_hit() contract:

- LinearScan: tests every triangle in traversal order.
- BoundingVolumeHierarchy: prunes with a median-split BVH.

Both honor both hit policies and return identical hits.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from meshtracer.scene.index import LinearScan
    >>> index = LinearScan(scene)
    >>> hit = index.find_hit(camera.ray_for(0.5, 0.25))
    >>> hit.mesh_index, hit.triangle_index
    (0, 0)
"""

import bisect
import logging
from dataclasses import dataclass

from meshtracer.core.ray import Ray, to_vec3
from meshtracer.errors import SceneCapacityError
from meshtracer.geometry.bvh import BVH_LEAF_SIZE, build_bvh
from meshtracer.geometry.primitives import Point3
from meshtracer.scene.intersection import (
    MAX_TRIANGLES,
    HitPolicy,
    SpatialIndexKind,
    get_upload_generation,
    query_scene,
    upload_bvh,
    upload_triangles,
)
from meshtracer.scene.scene import Scene

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Hit:
    """A resolved ray-scene intersection.

    Attributes:
        distance: Ray parameter t of the hit, in units of the ray direction.
        point: World-space hit point.
        mesh_index: Index of the mesh in the scene.
        triangle_index: Index of the triangle inside its mesh.
    """

    distance: float
    point: Point3
    mesh_index: int
    triangle_index: int


class SpatialIndex:
    """Base class for scene indices.

    Attributes:
        scene: The indexed scene.
        apply_rotation: Whether mesh rotations were applied when flattening.
        kind: The traversal strategy used by the kernels.
    """

    kind = SpatialIndexKind.LINEAR_SCAN

    def __init__(self, scene: Scene, apply_rotation: bool = False) -> None:
        """Flatten the scene into world-space vertex arrays.

        Raises:
            SceneCapacityError: If the scene has more than MAX_TRIANGLES triangles.
        """
        count = scene.triangle_count
        if count > MAX_TRIANGLES:
            raise SceneCapacityError(
                f"Scene has {count} triangles, maximum supported is {MAX_TRIANGLES}"
            )

        self.scene = scene
        self.apply_rotation = apply_rotation
        self._v1, self._v2, self._v3, self._mesh_ids = scene.world_vertex_arrays(apply_rotation)
        self._offsets = scene.mesh_offsets()
        self._generation: int | None = None

    @property
    def triangle_count(self) -> int:
        """Number of world-space triangles in the index."""
        return len(self._v1)

    def is_active(self) -> bool:
        """Check whether this index's data is currently resident on the device."""
        return self._generation is not None and self._generation == get_upload_generation()

    def activate(self) -> None:
        """Upload this index to the device unless it is already resident."""
        if self.is_active():
            return
        upload_triangles(self._v1, self._v2, self._v3, self._mesh_ids)
        self._upload_extra()
        self._generation = get_upload_generation()
        logger.debug("Activated %s with %d triangles", type(self).__name__, self.triangle_count)

    def _upload_extra(self) -> None:
        """Hook for subclasses that store more than the triangles."""

    def locate(self, flat_index: int) -> tuple[int, int]:
        """Map a flat traversal-order triangle index to (mesh, triangle) indices."""
        # bisect_right lands past empty meshes that share an offset
        mesh_index = bisect.bisect_right(self._offsets, flat_index) - 1
        return mesh_index, flat_index - self._offsets[mesh_index]

    def find_hit(
        self,
        ray: Ray,
        policy: HitPolicy = HitPolicy.FIRST_HIT,
        cull_backfaces: bool = False,
    ) -> Hit | None:
        """Resolve one ray against the indexed scene.

        Args:
            ray: The world-space ray.
            policy: Which hit wins when several triangles are hit.
            cull_backfaces: Ignore back-facing triangles.

        Returns:
            The winning Hit, or None if the ray misses every triangle.
        """
        self.activate()
        result = query_scene(to_vec3(ray.origin), to_vec3(ray.direction), policy, self.kind, cull_backfaces)
        if result is None:
            return None
        distance, point, flat_index = result
        mesh_index, triangle_index = self.locate(flat_index)
        return Hit(
            distance=distance,
            point=Point3.from_sequence(point),
            mesh_index=mesh_index,
            triangle_index=triangle_index,
        )


class LinearScan(SpatialIndex):
    """Index that tests every triangle in traversal order."""

    kind = SpatialIndexKind.LINEAR_SCAN


class BoundingVolumeHierarchy(SpatialIndex):
    """Index that prunes triangles with a bounding volume hierarchy.

    Attributes:
        bvh: The flattened hierarchy built at construction.
    """

    kind = SpatialIndexKind.BVH

    def __init__(
        self,
        scene: Scene,
        apply_rotation: bool = False,
        leaf_size: int = BVH_LEAF_SIZE,
    ) -> None:
        super().__init__(scene, apply_rotation)
        self.bvh = build_bvh(self._v1, self._v2, self._v3, leaf_size)
        logger.debug(
            "Built BVH over %d triangles: %d nodes, %d leaves, depth %d",
            self.triangle_count,
            self.bvh.node_count,
            self.bvh.leaf_count,
            self.bvh.depth,
        )

    def _upload_extra(self) -> None:
        upload_bvh(self.bvh)


def make_spatial_index(
    kind: SpatialIndexKind,
    scene: Scene,
    apply_rotation: bool = False,
) -> SpatialIndex:
    """Create the spatial index for a traversal strategy.

    Args:
        kind: LINEAR_SCAN or BVH.
        scene: The scene to index.
        apply_rotation: Apply mesh rotations when flattening.

    Returns:
        A LinearScan or BoundingVolumeHierarchy.

    Raises:
        ValueError: If kind is not a known strategy.
    """
    kind = SpatialIndexKind(kind)
    if kind == SpatialIndexKind.BVH:
        return BoundingVolumeHierarchy(scene, apply_rotation)
    return LinearScan(scene, apply_rotation)
