"""Camera module for view and ray generation.

This module provides the camera model used to generate primary rays:

Components:
    camera: Camera dataclass, field-of-view validation, device upload and
        the Taichi-scope get_ray() function

Camera responsibilities:
    - Map normalized (u, v) pixel coordinates to world-space rays
    - Support perspective and orthographic projection
    - Optionally orient rays by the camera rotation

Ray generation uses normalized raster coordinates:
    u in [0, 1): left to right across the image (column / width)
    v in [0, 1): top to bottom across the image (row / height)
"""

from .camera import (
    DEFAULT_FOV,
    MAX_FOV,
    MIN_FOV,
    Camera,
    get_camera_info,
    get_ray,
    setup_camera,
    validate_fov,
)

__all__ = [
    "Camera",
    "setup_camera",
    "get_ray",
    "get_camera_info",
    "validate_fov",
    "DEFAULT_FOV",
    "MIN_FOV",
    "MAX_FOV",
]
