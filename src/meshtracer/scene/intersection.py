"""Scene-level ray intersection over device-side triangle storage.

World-space triangles are flattened in traversal order (meshes in scene
order, triangles in storage order) and stored in Taichi fields, together with
an optional bounding volume hierarchy over them. Kernels resolve a ray
against the scene with one of two hit policies:

- FIRST_HIT: the first triangle in traversal order that reports a hit wins,
  even if a later triangle is closer. This is the default.
- NEAREST_HIT: the hit with the smallest distance wins. Equal distances go
  to the earlier triangle in traversal order.

Both policies are available for both traversal strategies. The BVH resolves
FIRST_HIT by keeping the hit with the smallest triangle index, which gives
exactly the answer of a linear scan.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from meshtracer.scene.intersection import (
    ...     HitPolicy, SpatialIndexKind, intersect_scene, upload_triangles
    ... )
    >>> upload_triangles(v1, v2, v3, mesh_ids)
    >>> # Use intersect_scene(origin, direction, policy, index_kind, cull) in a kernel
"""

import logging
from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from meshtracer.core.ray import safe_inverse
from meshtracer.errors import SceneCapacityError
from meshtracer.geometry.bvh import BVH_STACK_SIZE, BVHArrays, hit_aabb
from meshtracer.geometry.triangle import hit_triangle

logger = logging.getLogger(__name__)

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


class HitPolicy(IntEnum):
    """How a ray is resolved when several triangles report a hit."""

    FIRST_HIT = 0
    NEAREST_HIT = 1


class SpatialIndexKind(IntEnum):
    """Traversal strategy used to find hits."""

    LINEAR_SCAN = 0
    BVH = 1


# Maximum number of triangles supported in the scene
MAX_TRIANGLES = 65536
MAX_BVH_NODES = 2 * MAX_TRIANGLES

# Upper bound on ray distance for the nearest-hit search
T_MAX = 1e30


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection.

    Attributes:
        hit: Whether the ray intersected any triangle (1 if hit, 0 if miss).
        t: Distance along the ray direction. Only valid if hit == 1.
        point: The intersection point. Only valid if hit == 1.
        triangle_id: Flat traversal-order index of the hit triangle, -1 on miss.
        mesh_id: Index of the mesh owning the hit triangle, -1 on miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    triangle_id: ti.i32
    mesh_id: ti.i32


# Triangle storage: Structure of Arrays layout
tri_v1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
tri_v2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
tri_v3 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
tri_mesh_ids = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
num_triangles = ti.field(dtype=ti.i32, shape=())

# BVH storage: flattened pre-order nodes, root at index 0
bvh_bbox_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_bbox_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_left_child = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_right_child = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_prim_start = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_prim_count = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_prim_indices = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
num_bvh_nodes = ti.field(dtype=ti.i32, shape=())

# Bumped whenever the device triangle storage is replaced or cleared
_upload_generation = 0


def _padded(array: npt.NDArray, length: int) -> npt.NDArray:
    """Zero-pad the first axis of array to length (for from_numpy)."""
    out = np.zeros((length,) + array.shape[1:], dtype=array.dtype)
    out[: len(array)] = array
    return out


def clear_scene() -> None:
    """Clear all triangles and the BVH from device storage.

    Resets the counts to zero. The field data is not cleared but will be
    overwritten by the next upload.
    """
    global _upload_generation
    num_triangles[None] = 0
    num_bvh_nodes[None] = 0
    _upload_generation += 1


def upload_triangles(
    v1: npt.NDArray[np.float32],
    v2: npt.NDArray[np.float32],
    v3: npt.NDArray[np.float32],
    mesh_ids: npt.NDArray[np.int32],
) -> int:
    """Replace the device triangle storage.

    Any previously uploaded BVH is dropped since it indexes the old triangles.

    Args:
        v1: (N, 3) first vertices in world space.
        v2: (N, 3) second vertices in world space.
        v3: (N, 3) third vertices in world space.
        mesh_ids: (N,) owning mesh index of each triangle.

    Returns:
        The number of triangles uploaded.

    Raises:
        SceneCapacityError: If N exceeds MAX_TRIANGLES.
    """
    global _upload_generation
    count = len(v1)
    if count > MAX_TRIANGLES:
        raise SceneCapacityError(
            f"Scene has {count} triangles, maximum supported is {MAX_TRIANGLES}"
        )

    tri_v1.from_numpy(_padded(np.asarray(v1, dtype=np.float32).reshape(-1, 3), MAX_TRIANGLES))
    tri_v2.from_numpy(_padded(np.asarray(v2, dtype=np.float32).reshape(-1, 3), MAX_TRIANGLES))
    tri_v3.from_numpy(_padded(np.asarray(v3, dtype=np.float32).reshape(-1, 3), MAX_TRIANGLES))
    tri_mesh_ids.from_numpy(_padded(np.asarray(mesh_ids, dtype=np.int32), MAX_TRIANGLES))
    num_triangles[None] = count
    num_bvh_nodes[None] = 0
    _upload_generation += 1

    logger.debug("Uploaded %d triangles", count)
    return count


def upload_bvh(bvh: BVHArrays) -> None:
    """Upload a flattened BVH built over the current triangle storage.

    Args:
        bvh: The hierarchy, as returned by build_bvh().

    Raises:
        SceneCapacityError: If the tree has too many nodes or is deeper than
            the traversal stack allows.
    """
    if bvh.node_count > MAX_BVH_NODES:
        raise SceneCapacityError(
            f"BVH has {bvh.node_count} nodes, maximum supported is {MAX_BVH_NODES}"
        )
    if bvh.depth >= BVH_STACK_SIZE:
        raise SceneCapacityError(
            f"BVH depth {bvh.depth} exceeds traversal stack size {BVH_STACK_SIZE}"
        )

    bvh_bbox_min.from_numpy(_padded(bvh.bbox_min, MAX_BVH_NODES))
    bvh_bbox_max.from_numpy(_padded(bvh.bbox_max, MAX_BVH_NODES))
    bvh_left_child.from_numpy(_padded(bvh.left_child, MAX_BVH_NODES))
    bvh_right_child.from_numpy(_padded(bvh.right_child, MAX_BVH_NODES))
    bvh_prim_start.from_numpy(_padded(bvh.prim_start, MAX_BVH_NODES))
    bvh_prim_count.from_numpy(_padded(bvh.prim_count, MAX_BVH_NODES))
    bvh_prim_indices.from_numpy(_padded(bvh.prim_indices, MAX_TRIANGLES))
    num_bvh_nodes[None] = bvh.node_count

    logger.debug("Uploaded BVH with %d nodes (depth %d)", bvh.node_count, bvh.depth)


def get_upload_generation() -> int:
    """Get a counter identifying the current contents of triangle storage."""
    return _upload_generation


def get_triangle_count() -> int:
    """Get the number of triangles in device storage."""
    return int(num_triangles[None])


def get_bvh_node_count() -> int:
    """Get the number of BVH nodes in device storage."""
    return int(num_bvh_nodes[None])


@ti.func
def _make_miss_record() -> SceneHitRecord:
    """Create a SceneHitRecord indicating no intersection."""
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        triangle_id=-1,
        mesh_id=-1,
    )


@ti.func
def _scan_first(ray_origin: vec3, ray_direction: vec3, cull_backfaces: ti.i32) -> SceneHitRecord:
    """Linear scan returning the first triangle that reports a hit."""
    result = _make_miss_record()
    found = 0

    # Taichi doesn't support break in ti.func loops, so guard with found
    for i in range(num_triangles[None]):
        if found == 0:
            rec = hit_triangle(ray_origin, ray_direction, tri_v1[i], tri_v2[i], tri_v3[i], cull_backfaces)
            if rec.hit == 1:
                found = 1
                result = SceneHitRecord(
                    hit=1, t=rec.t, point=rec.point, triangle_id=i, mesh_id=tri_mesh_ids[i]
                )

    return result


@ti.func
def _scan_nearest(ray_origin: vec3, ray_direction: vec3, cull_backfaces: ti.i32) -> SceneHitRecord:
    """Linear scan returning the closest hit."""
    result = _make_miss_record()
    closest_t = T_MAX

    for i in range(num_triangles[None]):
        rec = hit_triangle(ray_origin, ray_direction, tri_v1[i], tri_v2[i], tri_v3[i], cull_backfaces)
        if rec.hit == 1 and rec.t < closest_t:
            closest_t = rec.t
            result = SceneHitRecord(
                hit=1, t=rec.t, point=rec.point, triangle_id=i, mesh_id=tri_mesh_ids[i]
            )

    return result


@ti.func
def _traverse_bvh(
    ray_origin: vec3,
    ray_direction: vec3,
    policy: ti.i32,
    cull_backfaces: ti.i32,
) -> SceneHitRecord:
    """Stack-based BVH traversal honoring the hit policy.

    For NEAREST_HIT, boxes entered beyond the closest hit so far are pruned.
    For FIRST_HIT every overlapping leaf is visited and the hit with the
    smallest triangle index is kept.
    """
    result = _make_miss_record()
    closest_t = T_MAX
    best_id = MAX_TRIANGLES
    inv_direction = safe_inverse(ray_direction)

    stack = ti.Vector([0 for _ in range(BVH_STACK_SIZE)], dt=ti.i32)
    stack_ptr = 0
    if num_bvh_nodes[None] > 0:
        stack[0] = 0
        stack_ptr = 1

    while stack_ptr > 0:
        stack_ptr -= 1
        node = stack[stack_ptr]

        t_limit = T_MAX
        if policy == int(HitPolicy.NEAREST_HIT):
            t_limit = closest_t

        if hit_aabb(bvh_bbox_min[node], bvh_bbox_max[node], ray_origin, inv_direction, t_limit) == 1:
            if bvh_left_child[node] < 0:
                start = bvh_prim_start[node]
                for k in range(start, start + bvh_prim_count[node]):
                    i = bvh_prim_indices[k]
                    rec = hit_triangle(
                        ray_origin, ray_direction, tri_v1[i], tri_v2[i], tri_v3[i], cull_backfaces
                    )
                    if rec.hit == 1:
                        better = 0
                        if policy == int(HitPolicy.NEAREST_HIT):
                            # Ties go to the earlier triangle, as in the linear scan
                            if rec.t < closest_t or (rec.t == closest_t and i < best_id):
                                better = 1
                        elif i < best_id:
                            better = 1
                        if better == 1:
                            closest_t = rec.t
                            best_id = i
                            result = SceneHitRecord(
                                hit=1, t=rec.t, point=rec.point, triangle_id=i, mesh_id=tri_mesh_ids[i]
                            )
            elif stack_ptr + 2 <= BVH_STACK_SIZE:
                stack[stack_ptr] = bvh_right_child[node]
                stack[stack_ptr + 1] = bvh_left_child[node]
                stack_ptr += 2

    return result


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    policy: ti.i32,
    index_kind: ti.i32,
    cull_backfaces: ti.i32,
) -> SceneHitRecord:
    """Resolve a ray against every triangle in the scene.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        policy: A HitPolicy value.
        index_kind: A SpatialIndexKind value.
        cull_backfaces: 1 to ignore back-facing triangles.

    Returns:
        A SceneHitRecord for the winning hit, or a miss record.
    """
    result = _make_miss_record()
    if index_kind == int(SpatialIndexKind.BVH):
        result = _traverse_bvh(ray_origin, ray_direction, policy, cull_backfaces)
    elif policy == int(HitPolicy.NEAREST_HIT):
        result = _scan_nearest(ray_origin, ray_direction, cull_backfaces)
    else:
        result = _scan_first(ray_origin, ray_direction, cull_backfaces)
    return result


# Probe storage for Python-scope queries
_probe_hit = ti.field(dtype=ti.i32, shape=())
_probe_t = ti.field(dtype=ti.f32, shape=())
_probe_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_probe_triangle_id = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _probe_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    policy: ti.i32,
    index_kind: ti.i32,
    cull_backfaces: ti.i32,
):
    """Run intersect_scene once and store the result in the probe fields."""
    rec = intersect_scene(ray_origin, ray_direction, policy, index_kind, cull_backfaces)
    _probe_hit[None] = rec.hit
    _probe_t[None] = rec.t
    _probe_point[None] = rec.point
    _probe_triangle_id[None] = rec.triangle_id


def query_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    policy: HitPolicy,
    index_kind: SpatialIndexKind,
    cull_backfaces: bool = False,
) -> tuple[float, tuple[float, float, float], int] | None:
    """Resolve one ray against the uploaded scene from Python.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        policy: Hit policy to apply.
        index_kind: Traversal strategy; BVH requires a prior upload_bvh().
        cull_backfaces: Ignore back-facing triangles.

    Returns:
        (distance, point, flat_triangle_index) for a hit, or None for a miss.
    """
    _probe_scene(ray_origin, ray_direction, int(policy), int(index_kind), int(cull_backfaces))
    if _probe_hit[None] == 0:
        return None
    p = _probe_point[None]
    return (
        float(_probe_t[None]),
        (float(p[0]), float(p[1]), float(p[2])),
        int(_probe_triangle_id[None]),
    )
