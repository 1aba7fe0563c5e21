"""Pixel shading: color derivation from a hit.

Shading is a debug visualization, not a lighting model. A pixel whose ray
hits any triangle is colored from its own normalized coordinates:

    red   = round(u * 255)
    green = round(v * 255)
    blue  = 0
    alpha = 255

Rounding is half-up (floor(x + 0.5)) and results are clamped to [0, 255].
A pixel whose ray misses the whole scene is opaque black.
"""

import math

import taichi as ti
import taichi.math as tm

# Color written for rays that hit nothing (RGBA8)
MISS_COLOR = (0, 0, 0, 255)

# Opaque alpha for every written pixel
OPAQUE = 255


def _channel(value: float) -> int:
    return min(max(int(math.floor(value * 255.0 + 0.5)), 0), 255)


def shade_color(hit: bool, u: float, v: float) -> tuple[int, int, int, int]:
    """Compute the RGBA8 color of a pixel on the host.

    Args:
        hit: Whether the pixel's ray hit any triangle.
        u: Normalized horizontal pixel coordinate.
        v: Normalized vertical pixel coordinate.

    Returns:
        The (r, g, b, a) color.
    """
    if not hit:
        return MISS_COLOR
    return (_channel(u), _channel(v), 0, OPAQUE)


@ti.func
def shade_hit(hit: ti.i32, u: ti.f32, v: ti.f32) -> tm.ivec4:
    """Compute the RGBA8 color of a pixel inside a kernel.

    Args:
        hit: 1 if the pixel's ray hit a triangle, 0 otherwise.
        u: Normalized horizontal pixel coordinate.
        v: Normalized vertical pixel coordinate.

    Returns:
        The color as an integer 4-vector with components in [0, 255].
    """
    color = tm.ivec4(MISS_COLOR[0], MISS_COLOR[1], MISS_COLOR[2], MISS_COLOR[3])
    if hit == 1:
        r = ti.cast(ti.floor(u * 255.0 + 0.5), ti.i32)
        g = ti.cast(ti.floor(v * 255.0 + 0.5), ti.i32)
        color = tm.ivec4(tm.clamp(r, 0, 255), tm.clamp(g, 0, 255), 0, OPAQUE)
    return color
