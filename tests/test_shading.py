"""Unit tests for pixel shading.

Tests cover:
- Host-side shade_color() rounding, clamping and miss color
- shade_hit() inside a kernel agreeing with shade_color()
"""

import pytest
import taichi as ti


class TestShadeColor:
    """Tests for shade_color()."""

    def test_miss_is_opaque_black(self):
        from meshtracer.core.shading import MISS_COLOR, shade_color

        assert shade_color(False, 0.7, 0.3) == MISS_COLOR == (0, 0, 0, 255)

    @pytest.mark.parametrize(
        "u, v, expected",
        [
            (0.0, 0.0, (0, 0, 0, 255)),
            (1.0, 0.5, (255, 128, 0, 255)),
            (3 / 17, 2 / 15, (45, 34, 0, 255)),
        ],
    )
    def test_hit_color(self, u, v, expected):
        from meshtracer.core.shading import shade_color

        assert shade_color(True, u, v) == expected

    def test_clamped(self):
        from meshtracer.core.shading import shade_color

        assert shade_color(True, 1.5, -0.2) == (255, 0, 0, 255)


class TestShadeHit:
    """Tests for shade_hit() in Taichi scope."""

    @pytest.mark.parametrize("hit", [0, 1])
    def test_matches_host(self, hit):
        from meshtracer.core.shading import shade_color, shade_hit

        result = ti.Vector.field(4, dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel(hit: ti.i32, u: ti.f32, v: ti.f32):
            result[None] = shade_hit(hit, u, v)

        for x, y in [(0, 0), (5, 7), (16, 14)]:
            u, v = x / 17, y / 15
            test_kernel(hit, u, v)
            assert tuple(int(c) for c in result[None].to_numpy()) == shade_color(bool(hit), u, v)
