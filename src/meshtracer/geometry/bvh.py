"""Bounding volume hierarchy over world-space triangles.

The hierarchy is built on the host with NumPy and flattened into arrays that
are uploaded to Taichi fields for traversal inside kernels:

- Nodes are stored in pre-order, the root is node 0.
- Internal nodes have left_child/right_child >= 0.
- Leaf nodes have left_child == right_child == -1 and reference the slice
  prim_indices[prim_start : prim_start + prim_count].

Splitting uses the median triangle centroid along the axis with the largest
centroid extent, which keeps the tree balanced (depth about log2(N / leaf)).

Example:
    >>> import numpy as np
    >>> from meshtracer.geometry.bvh import build_bvh
    >>> v1 = np.zeros((8, 3), np.float32); v1[:, 0] = np.arange(8)
    >>> bvh = build_bvh(v1, v1 + [0, 1, 0], v1 + [1, 1, 0])
    >>> bvh.node_count
    3
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Maximum triangles per leaf before a node is split
BVH_LEAF_SIZE = 4

# Boxes are grown by this much so flat (axis-aligned) triangles keep a volume
AABB_PADDING = 1e-4

# Traversal stack size used by the kernels; a tree must be shallower than this
BVH_STACK_SIZE = 64


@dataclass
class BVHArrays:
    """Flattened bounding volume hierarchy.

    Attributes:
        bbox_min: (M, 3) float32 lower box corners.
        bbox_max: (M, 3) float32 upper box corners.
        left_child: (M,) int32 left child index, -1 for leaves.
        right_child: (M,) int32 right child index, -1 for leaves.
        prim_start: (M,) int32 first slot in prim_indices for leaves.
        prim_count: (M,) int32 number of triangles for leaves, 0 otherwise.
        prim_indices: (N,) int32 triangle indices grouped by leaf.
        depth: Number of levels in the tree (0 for an empty tree).
    """

    bbox_min: npt.NDArray[np.float32]
    bbox_max: npt.NDArray[np.float32]
    left_child: npt.NDArray[np.int32]
    right_child: npt.NDArray[np.int32]
    prim_start: npt.NDArray[np.int32]
    prim_count: npt.NDArray[np.int32]
    prim_indices: npt.NDArray[np.int32]
    depth: int

    @property
    def node_count(self) -> int:
        """Number of nodes in the tree."""
        return int(self.left_child.shape[0])

    @property
    def leaf_count(self) -> int:
        """Number of leaf nodes in the tree."""
        return int(np.count_nonzero(self.left_child < 0))


def build_bvh(
    v1: npt.NDArray[np.float32],
    v2: npt.NDArray[np.float32],
    v3: npt.NDArray[np.float32],
    leaf_size: int = BVH_LEAF_SIZE,
) -> BVHArrays:
    """Build a median-split BVH over triangles.

    Args:
        v1: (N, 3) first vertices.
        v2: (N, 3) second vertices.
        v3: (N, 3) third vertices.
        leaf_size: Maximum triangles per leaf. Leaves can be larger only when
            all their centroids coincide and no split is possible.

    Returns:
        The flattened hierarchy. An empty input gives an empty tree.

    Raises:
        ValueError: If leaf_size is not positive or the arrays differ in shape.
    """
    if leaf_size < 1:
        raise ValueError(f"leaf_size must be positive, got {leaf_size}")

    v1 = np.asarray(v1, dtype=np.float64).reshape(-1, 3)
    v2 = np.asarray(v2, dtype=np.float64).reshape(-1, 3)
    v3 = np.asarray(v3, dtype=np.float64).reshape(-1, 3)
    if not (v1.shape == v2.shape == v3.shape):
        raise ValueError(f"Vertex arrays must match: {v1.shape}, {v2.shape}, {v3.shape}")

    tri_min = np.minimum(np.minimum(v1, v2), v3)
    tri_max = np.maximum(np.maximum(v1, v2), v3)
    centroids = (v1 + v2 + v3) / 3.0

    bbox_min: list[npt.NDArray[np.float64]] = []
    bbox_max: list[npt.NDArray[np.float64]] = []
    left_child: list[int] = []
    right_child: list[int] = []
    prim_start: list[int] = []
    prim_count: list[int] = []
    prim_indices: list[int] = []
    max_depth = 0

    def _build(indices: npt.NDArray[np.int64], depth: int) -> int:
        nonlocal max_depth
        max_depth = max(max_depth, depth)

        node = len(left_child)
        bbox_min.append(tri_min[indices].min(axis=0) - AABB_PADDING)
        bbox_max.append(tri_max[indices].max(axis=0) + AABB_PADDING)
        left_child.append(-1)
        right_child.append(-1)
        prim_start.append(0)
        prim_count.append(0)

        axis = 0
        extent = np.zeros(3)
        if len(indices) > leaf_size:
            c = centroids[indices]
            extent = c.max(axis=0) - c.min(axis=0)
            axis = int(np.argmax(extent))

        if len(indices) <= leaf_size or extent[axis] <= 0.0:
            prim_start[node] = len(prim_indices)
            prim_count[node] = len(indices)
            prim_indices.extend(int(i) for i in indices)
            return node

        order = np.argsort(centroids[indices, axis], kind="stable")
        ordered = indices[order]
        mid = len(ordered) // 2
        left_child[node] = _build(ordered[:mid], depth + 1)
        right_child[node] = _build(ordered[mid:], depth + 1)
        return node

    if len(v1) > 0:
        _build(np.arange(len(v1)), 1)

    return BVHArrays(
        bbox_min=np.array(bbox_min, dtype=np.float32).reshape(-1, 3),
        bbox_max=np.array(bbox_max, dtype=np.float32).reshape(-1, 3),
        left_child=np.array(left_child, dtype=np.int32),
        right_child=np.array(right_child, dtype=np.int32),
        prim_start=np.array(prim_start, dtype=np.int32),
        prim_count=np.array(prim_count, dtype=np.int32),
        prim_indices=np.array(prim_indices, dtype=np.int32),
        depth=max_depth,
    )


@ti.func
def hit_aabb(
    bbox_min: vec3,
    bbox_max: vec3,
    ray_origin: vec3,
    inv_direction: vec3,
    t_max: ti.f32,
) -> ti.i32:
    """Slab test of a ray against an axis-aligned box.

    Args:
        bbox_min: Lower box corner.
        bbox_max: Upper box corner.
        ray_origin: The ray origin.
        inv_direction: Component-wise inverse of the ray direction.
        t_max: Boxes entered beyond this distance count as misses.

    Returns:
        1 if the ray overlaps the box within [0, t_max], 0 otherwise.
    """
    t0 = (bbox_min - ray_origin) * inv_direction
    t1 = (bbox_max - ray_origin) * inv_direction

    # Handle negative directions by ordering each interval
    tmin_vec = ti.min(t0, t1)
    tmax_vec = ti.max(t0, t1)

    t_enter = ti.max(ti.max(tmin_vec.x, tmin_vec.y), ti.max(tmin_vec.z, 0.0))
    t_exit = ti.min(ti.min(tmax_vec.x, tmax_vec.y), ti.min(tmax_vec.z, t_max))

    result = 0
    if t_exit >= t_enter:
        result = 1
    return result
