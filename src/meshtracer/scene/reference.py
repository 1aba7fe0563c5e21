"""The reference scene: one triangle in front of a perspective camera.

Rendered at REFERENCE_WIDTH x REFERENCE_HEIGHT, the triangle covers the
pixels whose normalized coordinates satisfy v <= u, giving a red-green
gradient wedge over a black background.
"""

from meshtracer.camera.camera import Camera
from meshtracer.geometry.mesh import Mesh
from meshtracer.geometry.primitives import Point3, Rotation, Transform
from meshtracer.geometry.triangle import Triangle
from meshtracer.scene.scene import Scene

# Raster size of the reference render
REFERENCE_WIDTH = 1280
REFERENCE_HEIGHT = 720

REFERENCE_TRIANGLE = Triangle(
    Point3(0.0, 0.0, 0.0),
    Point3(0.0, 1.0, 0.0),
    Point3(1.0, 1.0, 0.0),
)


def create_reference_scene() -> tuple[Scene, Camera]:
    """Create the reference scene and its camera.

    Returns:
        Tuple (scene, camera): a single untransformed triangle mesh, and a
        perspective camera at (0, 0, -1) with a 90 degree field of view.
    """
    mesh = Mesh((REFERENCE_TRIANGLE,), Transform(rotation=Rotation(), translation=Point3()))
    camera = Camera(origin=Point3(0.0, 0.0, -1.0), rotation=Rotation(), fov=90.0, perspective=True)
    return Scene((mesh,)), camera
