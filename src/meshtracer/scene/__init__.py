"""Scene container, device-side intersection and spatial indices."""

from .config import RenderConfig, SceneConfig
from .index import (
    BoundingVolumeHierarchy,
    Hit,
    LinearScan,
    SpatialIndex,
    make_spatial_index,
)
from .intersection import (
    MAX_BVH_NODES,
    MAX_TRIANGLES,
    HitPolicy,
    SpatialIndexKind,
    clear_scene,
    intersect_scene,
)
from .reference import REFERENCE_HEIGHT, REFERENCE_WIDTH, create_reference_scene
from .scene import Scene

__all__ = [
    "MAX_BVH_NODES",
    "MAX_TRIANGLES",
    "REFERENCE_HEIGHT",
    "REFERENCE_WIDTH",
    "BoundingVolumeHierarchy",
    "Hit",
    "HitPolicy",
    "LinearScan",
    "RenderConfig",
    "SceneConfig",
    "Scene",
    "SpatialIndex",
    "SpatialIndexKind",
    "clear_scene",
    "create_reference_scene",
    "intersect_scene",
    "make_spatial_index",
]
