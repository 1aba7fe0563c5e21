"""Core rendering module.

Components:
    ray: Ray value type and kernel vector helpers
    shading: Debug color derived from a hit and the pixel coordinates
    renderer: Row-batched render kernel, FrameBuffer and render() entry point

The renderer is not imported here since it depends on the scene package,
which in turn builds on core.ray. Import it from meshtracer.core.renderer.
"""

from .ray import Ray, ray_at, safe_inverse, to_vec3
from .shading import MISS_COLOR, OPAQUE, shade_color, shade_hit

__all__ = [
    "Ray",
    "ray_at",
    "safe_inverse",
    "to_vec3",
    "MISS_COLOR",
    "OPAQUE",
    "shade_color",
    "shade_hit",
]
