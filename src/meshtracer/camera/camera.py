"""Camera model and primary ray generation.

The camera has an origin, an orientation, a field of view and a projection
mode. Rays are generated from normalized pixel coordinates (u, v) in [0, 1),
where u follows raster columns and v follows raster rows.

Perspective mode:
    origin    = camera origin
    direction = B @ (v, u, 1)

Orthographic mode:
    origin    = camera origin + B @ (v, u, 0)
    direction = B @ (0, 0, 1)

B is the camera basis: the identity unless rotation is applied, in which case
it is the rotation matrix of the camera's Rotation. Note the deliberate swap
of u and v in the local direction: the horizontal pixel coordinate drives the
y component and the vertical one drives x. Directions are not normalized, and
the field of view is validated but does not scale the directions.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from meshtracer.camera.camera import Camera, setup_camera
    >>> from meshtracer.geometry.primitives import Point3
    >>> camera = Camera(origin=Point3(0.0, 0.0, -1.0), fov=90)
    >>> camera.ray_for(0.25, 0.5).direction
    Point3(x=0.5, y=0.25, z=1.0)
    >>> setup_camera(camera)
    >>> # Use get_ray(u, v) within a Taichi kernel
"""

import math
import numbers
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt
import taichi as ti

from meshtracer.core.ray import Ray, vec3
from meshtracer.errors import InvalidFieldOfViewError
from meshtracer.geometry.primitives import ORIGIN, Point3, Rotation

# Field of view bounds in degrees (exclusive)
MIN_FOV = 0.0
MAX_FOV = 180.0
DEFAULT_FOV = 90.0

# =============================================================================
# Camera Data Structure
# =============================================================================


@dataclass(frozen=True)
class Camera:
    """Camera configuration.

    Attributes:
        origin: Camera position in world space.
        rotation: Camera orientation (degrees). Only used when a render
            applies rotation.
        fov: Field of view in degrees, strictly between 0 and 180.
        perspective: True for perspective projection, False for orthographic.

    Raises:
        InvalidFieldOfViewError: If fov is not a finite number in (0, 180).
    """

    origin: Point3 = ORIGIN
    rotation: Rotation = field(default_factory=Rotation)
    fov: float = DEFAULT_FOV
    perspective: bool = True

    def __post_init__(self) -> None:
        validate_fov(self.fov)

    def basis(self, apply_rotation: bool = False) -> npt.NDArray[np.float64]:
        """Compute the camera basis matrix.

        Args:
            apply_rotation: Use the camera's rotation; otherwise identity.

        Returns:
            A (3, 3) array whose columns are the camera's local axes.
        """
        if apply_rotation:
            return self.rotation.matrix()
        return np.eye(3)

    def ray_for(self, u: float, v: float, apply_rotation: bool = False) -> Ray:
        """Generate the primary ray for normalized pixel coordinates.

        Args:
            u: Horizontal coordinate in [0, 1) (raster column / width).
            v: Vertical coordinate in [0, 1) (raster row / height).
            apply_rotation: Orient the ray by the camera rotation.

        Returns:
            The world-space ray.
        """
        basis = self.basis(apply_rotation)
        if self.perspective:
            direction = basis @ np.array([v, u, 1.0])
            origin = self.origin
        else:
            direction = basis @ np.array([0.0, 0.0, 1.0])
            offset = basis @ np.array([v, u, 0.0])
            origin = self.origin + Point3(float(offset[0]), float(offset[1]), float(offset[2]))
        return Ray(
            origin=origin,
            direction=Point3(float(direction[0]), float(direction[1]), float(direction[2])),
        )


def validate_fov(fov: float) -> None:
    """Check that a field of view lies strictly between 0 and 180 degrees.

    Raises:
        InvalidFieldOfViewError: If the value is out of range, not finite,
            or not a number.
    """
    if isinstance(fov, bool) or not isinstance(fov, numbers.Real):
        raise InvalidFieldOfViewError(f"Field of view must be a number, got {fov!r}")
    if not math.isfinite(fov) or not (MIN_FOV < fov < MAX_FOV):
        raise InvalidFieldOfViewError(
            f"Field of view must be in ({MIN_FOV:g}, {MAX_FOV:g}) degrees, got {fov}"
        )


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_basis = ti.Matrix.field(3, 3, dtype=ti.f32, shape=())
_camera_perspective = ti.field(dtype=ti.i32, shape=())


def setup_camera(camera: Camera, apply_rotation: bool = False) -> None:
    """Upload camera state to the Taichi fields read by get_ray().

    Must be called from Python (not from within a Taichi kernel) before
    rendering.

    Args:
        camera: The camera to upload.
        apply_rotation: Orient generated rays by the camera rotation.
    """
    basis = camera.basis(apply_rotation).astype(np.float32)
    _camera_origin[None] = list(camera.origin.as_tuple())
    _camera_basis[None] = basis.tolist()
    _camera_perspective[None] = 1 if camera.perspective else 0


# =============================================================================
# Ray Generation (Taichi-compatible)
# =============================================================================


@ti.func
def get_ray(u: ti.f32, v: ti.f32):
    """Generate a ray through normalized pixel coordinates (u, v).

    This function is designed to be called from within Taichi kernels after
    setup_camera().

    Args:
        u: Horizontal coordinate in [0, 1).
        v: Vertical coordinate in [0, 1).

    Returns:
        A tuple (origin, direction) of vec3 values.
    """
    basis = _camera_basis[None]
    origin = _camera_origin[None]
    direction = basis @ vec3(0.0, 0.0, 1.0)
    if _camera_perspective[None] == 1:
        direction = basis @ vec3(v, u, 1.0)
    else:
        origin = origin + basis @ vec3(v, u, 0.0)
    return origin, direction


def get_camera_info() -> dict[str, object]:
    """Get the uploaded camera state for debugging.

    Returns:
        Dictionary with origin, basis (row-major nested tuples) and perspective.
    """
    o = _camera_origin[None]
    b = _camera_basis[None]
    return {
        "origin": (float(o[0]), float(o[1]), float(o[2])),
        "basis": tuple(tuple(float(b[i, j]) for j in range(3)) for i in range(3)),
        "perspective": bool(_camera_perspective[None]),
    }
