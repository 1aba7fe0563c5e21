"""CPU raytracer for triangle meshes built on Taichi kernels.

This package casts one ray per pixel from a camera into a scene of triangle
meshes and writes a debug color for every hit into an RGBA frame buffer.

Subpackages:
    geometry: Points, rotations, transforms, triangles, meshes and the BVH builder
    camera: Camera model with perspective and orthographic ray generation
    scene: Scene container, device-side storage, spatial indices and configuration
    core: Rays, pixel shading and the frame renderer
    preview: Presentation boundary (Pillow export, Matplotlib preview)
"""

__version__ = "0.1.0"
