"""Geometry module for scene primitives and spatial acceleration.

This module provides the geometric building blocks of a scene:

Components:
    primitives: Point3, Rotation and Transform value types
    triangle: Triangle primitive with Moller-Trumbore intersection
    mesh: Triangle collections placed by a rigid transform
    bvh: Bounding volume hierarchy builder and box intersection

Intersection routines are Taichi functions (@ti.func) shared by the render
kernels and by the Python-scope query helpers, so both paths compute the
same single-precision results.

Ray-triangle intersection follows the pattern:
    rec = hit_triangle(ray_origin, ray_direction, v1, v2, v3, cull_backfaces)
"""

from .bvh import BVH_LEAF_SIZE, BVH_STACK_SIZE, BVHArrays, build_bvh, hit_aabb
from .mesh import Mesh
from .primitives import ORIGIN, Point3, Rotation, Transform, rotate_point
from .triangle import TRIANGLE_EPSILON, Triangle, TriangleHit, hit_triangle

__all__ = [
    "Point3",
    "Rotation",
    "Transform",
    "ORIGIN",
    "rotate_point",
    "Triangle",
    "TriangleHit",
    "hit_triangle",
    "TRIANGLE_EPSILON",
    "Mesh",
    "BVHArrays",
    "build_bvh",
    "hit_aabb",
    "BVH_LEAF_SIZE",
    "BVH_STACK_SIZE",
]
