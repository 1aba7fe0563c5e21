"""Scene container: an ordered, immutable collection of meshes.

The order of meshes is the traversal order used by the first-hit policy. It
does not establish depth priority.
"""

from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from meshtracer.geometry.mesh import Mesh


@dataclass(frozen=True)
class Scene:
    """An ordered collection of meshes.

    Attributes:
        meshes: Meshes in traversal order. Any iterable is accepted and
            stored as a tuple.
    """

    meshes: tuple[Mesh, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "meshes", tuple(self.meshes))

    def __len__(self) -> int:
        return len(self.meshes)

    def __iter__(self) -> Iterator[Mesh]:
        return iter(self.meshes)

    def with_mesh(self, mesh: Mesh) -> "Scene":
        """Return a new scene with mesh appended."""
        return Scene(self.meshes + (mesh,))

    @property
    def triangle_count(self) -> int:
        """Total number of triangles over all meshes."""
        return sum(len(mesh) for mesh in self.meshes)

    def world_vertex_arrays(
        self, apply_rotation: bool = False
    ) -> tuple[
        npt.NDArray[np.float32],
        npt.NDArray[np.float32],
        npt.NDArray[np.float32],
        npt.NDArray[np.int32],
    ]:
        """Flatten all world-space triangles into arrays in traversal order.

        Args:
            apply_rotation: Apply each mesh's rotation as well as its translation.

        Returns:
            Tuple (v1, v2, v3, mesh_ids): three (N, 3) float32 vertex arrays
            and an (N,) int32 array with the owning mesh index of each row.
        """
        parts_v1, parts_v2, parts_v3, parts_ids = [], [], [], []
        for mesh_index, mesh in enumerate(self.meshes):
            v1, v2, v3 = mesh.world_vertex_arrays(apply_rotation)
            parts_v1.append(v1)
            parts_v2.append(v2)
            parts_v3.append(v3)
            parts_ids.append(np.full(len(v1), mesh_index, dtype=np.int32))

        if not parts_v1:
            empty = np.zeros((0, 3), dtype=np.float32)
            return empty, empty.copy(), empty.copy(), np.zeros(0, dtype=np.int32)

        return (
            np.concatenate(parts_v1).astype(np.float32),
            np.concatenate(parts_v2).astype(np.float32),
            np.concatenate(parts_v3).astype(np.float32),
            np.concatenate(parts_ids).astype(np.int32),
        )

    def mesh_offsets(self) -> list[int]:
        """Index of each mesh's first triangle in the flattened order."""
        offsets = []
        total = 0
        for mesh in self.meshes:
            offsets.append(total)
            total += len(mesh)
        return offsets
