"""Triangle mesh with a rigid transform.

A Mesh owns its object-space triangles and one Transform. The world-space
triangles are a derived view: they are recomputed from the object-space
triangles and the transform on every call and never cached, so the mesh
stays the single source of truth.
"""

from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt

from meshtracer.geometry.primitives import Transform
from meshtracer.geometry.triangle import Triangle


@dataclass(frozen=True)
class Mesh:
    """An ordered collection of triangles placed by one transform.

    Attributes:
        triangles: Object-space triangles in storage order. Any iterable is
            accepted and stored as a tuple.
        transform: Placement of the mesh in world space.
    """

    triangles: tuple[Triangle, ...] = ()
    transform: Transform = field(default_factory=Transform)

    def __post_init__(self) -> None:
        # Frozen dataclass: bypass __setattr__ to normalize the container
        object.__setattr__(self, "triangles", tuple(self.triangles))

    def __len__(self) -> int:
        return len(self.triangles)

    def world_triangles(self, apply_rotation: bool = False) -> tuple[Triangle, ...]:
        """Compute the world-space triangles of this mesh.

        Every vertex is translated by the transform's translation. When
        apply_rotation is set the vertex is first rotated about the mesh origin.

        Args:
            apply_rotation: Apply the transform's rotation as well.

        Returns:
            A tuple of world-space triangles in storage order.
        """
        return tuple(tri.transformed(self.transform, apply_rotation) for tri in self.triangles)

    def world_vertex_arrays(
        self, apply_rotation: bool = False
    ) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.float32], npt.NDArray[np.float32]]:
        """Compute world-space vertices as three (N, 3) float32 arrays.

        This is the vectorized form of world_triangles() used when uploading a
        scene to device storage.

        Args:
            apply_rotation: Apply the transform's rotation as well.

        Returns:
            Tuple (v1, v2, v3) of arrays, one row per triangle.
        """
        if not self.triangles:
            empty = np.zeros((0, 3), dtype=np.float32)
            return empty, empty.copy(), empty.copy()

        # (N, 3 vertices, 3 coords) in double precision until the final cast
        verts = np.array(
            [[v.as_tuple() for v in tri.vertices()] for tri in self.triangles],
            dtype=np.float64,
        )
        if apply_rotation and not self.transform.rotation.is_identity():
            verts = verts @ self.transform.rotation.matrix().T
        verts = verts + np.array(self.transform.translation.as_tuple(), dtype=np.float64)
        verts = verts.astype(np.float32)
        return verts[:, 0, :], verts[:, 1, :], verts[:, 2, :]
