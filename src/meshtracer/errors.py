"""Exception types raised by meshtracer.

Only construction-time input is validated. Per-pixel work never raises: a ray
that misses everything is a normal outcome, not an error.
"""


class MeshtracerError(Exception):
    """Base class for all meshtracer errors."""


class InvalidDimensionsError(MeshtracerError, ValueError):
    """Raised when a render is requested with an unusable raster size."""


class InvalidFieldOfViewError(MeshtracerError, ValueError):
    """Raised when a camera field of view is outside (0, 180) degrees."""


class SceneCapacityError(MeshtracerError, RuntimeError):
    """Raised when a scene does not fit in the preallocated device storage."""


class SceneConfigError(MeshtracerError, ValueError):
    """Raised when a scene description dictionary is malformed."""
