"""Frame renderer: one primary ray per pixel into an RGBA8 frame buffer.

For every pixel (x, y) of a width x height raster:

    u = x / width, v = y / height
    ray = camera ray through (u, v)
    hit = scene intersection under the configured hit policy
    color = shade(hit, u, v)

Rows are rendered in batches, one kernel launch per batch, with Taichi
parallelizing each launch over its pixels. Between batches the renderer
checks for cancellation and reports progress, so a cancelled render returns
a partial frame whose finished rows are final.

Each batch kernel writes straight into the NumPy pixel array of the frame
buffer. Device state (camera and scene storage) is module-global, so one
render runs at a time per process.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from meshtracer.core.renderer import render
    >>> from meshtracer.scene.reference import create_reference_scene
    >>> scene, camera = create_reference_scene()
    >>> frame = render(camera, scene, 1280, 720)
    >>> frame.pixels.shape
    (720, 1280, 4)
"""

import logging
import time
from collections.abc import Callable, Generator
from typing import Protocol

import numpy as np
import numpy.typing as npt
import taichi as ti

from meshtracer.camera.camera import Camera, get_ray, setup_camera
from meshtracer.core.shading import MISS_COLOR, shade_color, shade_hit
from meshtracer.errors import InvalidDimensionsError
from meshtracer.scene.config import RenderConfig
from meshtracer.scene.index import make_spatial_index
from meshtracer.scene.intersection import intersect_scene
from meshtracer.scene.scene import Scene

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (completed_rows, total_rows)
ProgressCallback = Callable[[int, int], None]


class CancelToken(Protocol):
    """Anything with an is_set() method, such as threading.Event."""

    def is_set(self) -> bool: ...


# =============================================================================
# Frame Buffer
# =============================================================================

# Maximum supported image dimensions
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048


def validate_dimensions(width: int, height: int) -> None:
    """Check that a raster size is renderable.

    Raises:
        InvalidDimensionsError: If either dimension is not a positive integer
            or exceeds the preallocated maximum.
    """
    for name, value, limit in (
        ("width", width, MAX_IMAGE_WIDTH),
        ("height", height, MAX_IMAGE_HEIGHT),
    ):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise InvalidDimensionsError(f"Image {name} must be an integer, got {value!r}")
        if value <= 0:
            raise InvalidDimensionsError(f"Image {name} must be positive, got {value}")
        if value > limit:
            raise InvalidDimensionsError(
                f"Image dimensions ({width}x{height}) exceed maximum supported "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )


class FrameBuffer:
    """A width x height grid of RGBA8 pixels.

    The pixels are a NumPy uint8 array of shape (height, width, 4): cell
    (x, y) is pixels[y, x], row 0 is the first raster row. A new buffer is
    opaque black.

    Attributes:
        pixels: The pixel array.
        completed_rows: Number of leading rows that hold rendered output.
    """

    def __init__(self, width: int, height: int) -> None:
        validate_dimensions(width, height)
        self.pixels: npt.NDArray[np.uint8] = np.zeros((height, width, 4), dtype=np.uint8)
        self.pixels[..., 3] = MISS_COLOR[3]
        self.completed_rows = 0

    @property
    def width(self) -> int:
        """Get the image width."""
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        """Get the image height."""
        return int(self.pixels.shape[0])

    @property
    def is_complete(self) -> bool:
        """Whether every row has been rendered."""
        return self.completed_rows == self.height

    def pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        """Get the (r, g, b, a) color of cell (x, y)."""
        r, g, b, a = self.pixels[y, x]
        return (int(r), int(g), int(b), int(a))

    def to_bytes(self) -> bytes:
        """Row-major RGBA8 bytes, suitable for texture upload."""
        return self.pixels.tobytes()

    def __repr__(self) -> str:
        return (
            f"FrameBuffer(width={self.width}, height={self.height}, "
            f"completed_rows={self.completed_rows})"
        )


# =============================================================================
# Render Kernel
# =============================================================================


@ti.kernel
def _render_rows(
    pixels: ti.types.ndarray(dtype=ti.u8, ndim=3),
    row_start: ti.i32,
    row_end: ti.i32,
    policy: ti.i32,
    index_kind: ti.i32,
    cull_backfaces: ti.i32,
):
    """Shade rows [row_start, row_end) straight into the host pixel array.

    Args:
        pixels: The (height, width, 4) uint8 array of the frame buffer.
        row_start: First row of the batch.
        row_end: One past the last row of the batch.
        policy: A HitPolicy value.
        index_kind: A SpatialIndexKind value.
        cull_backfaces: 1 to ignore back-facing triangles.
    """
    height = pixels.shape[0]
    width = pixels.shape[1]
    for y, x in ti.ndrange((row_start, row_end), width):
        u = ti.cast(x, ti.f32) / ti.cast(width, ti.f32)
        v = ti.cast(y, ti.f32) / ti.cast(height, ti.f32)

        origin, direction = get_ray(u, v)
        rec = intersect_scene(origin, direction, policy, index_kind, cull_backfaces)
        color = shade_hit(rec.hit, u, v)
        for c in ti.static(range(4)):
            pixels[y, x, c] = ti.cast(color[c], ti.u8)


# =============================================================================
# Public Rendering API
# =============================================================================


class FrameRenderer:
    """Renders frames with a fixed configuration.

    Attributes:
        config: The render options.
        frame: The most recent frame, or None before the first render.

    Example:
        >>> renderer = FrameRenderer(RenderConfig(hit_policy=HitPolicy.NEAREST_HIT))
        >>> for done, total in renderer.render_progressive(camera, scene, 640, 360):
        ...     print(f"Progress: {done}/{total} rows")
        >>> image = renderer.frame.pixels
    """

    def __init__(self, config: RenderConfig | None = None) -> None:
        self.config = config if config is not None else RenderConfig()
        self.frame: FrameBuffer | None = None

    def _prepare(self, camera: Camera, scene: Scene, width: int, height: int) -> FrameBuffer:
        frame = FrameBuffer(width, height)

        index = make_spatial_index(self.config.spatial_index, scene, self.config.apply_rotation)
        index.activate()
        setup_camera(camera, self.config.apply_rotation)

        self.frame = frame
        return frame

    def _render_batches(
        self,
        frame: FrameBuffer,
        cancel: CancelToken | None = None,
    ) -> Generator[tuple[int, int], None, None]:
        """Render frame in row batches, yielding (completed_rows, height)."""
        height = frame.height
        batch = self.config.row_batch_size

        row = 0
        while row < height:
            if cancel is not None and cancel.is_set():
                logger.info("Render cancelled after %d of %d rows", row, height)
                return
            row_end = min(row + batch, height)
            _render_rows(
                frame.pixels,
                row,
                row_end,
                int(self.config.hit_policy),
                int(self.config.spatial_index),
                int(self.config.cull_backfaces),
            )
            frame.completed_rows = row_end
            row = row_end
            yield (frame.completed_rows, height)

    def render_progressive(
        self,
        camera: Camera,
        scene: Scene,
        width: int,
        height: int,
    ) -> Generator[tuple[int, int], None, None]:
        """Render a frame batch by batch, yielding progress after each batch.

        The frame is available as self.frame and fills in as batches finish.
        Stopping the iteration early leaves a partial frame.

        Args:
            camera: The camera to render from.
            scene: The scene to render.
            width: Image width in pixels.
            height: Image height in pixels.

        Yields:
            Tuple of (completed_rows, height).

        Raises:
            InvalidDimensionsError: If the raster size is unusable.
            SceneCapacityError: If the scene does not fit in device storage.
        """
        frame = self._prepare(camera, scene, width, height)
        yield from self._render_batches(frame)

    def render(
        self,
        camera: Camera,
        scene: Scene,
        width: int,
        height: int,
        *,
        cancel: CancelToken | None = None,
        callback: ProgressCallback | None = None,
    ) -> FrameBuffer:
        """Render a full frame.

        Args:
            camera: The camera to render from.
            scene: The scene to render.
            width: Image width in pixels.
            height: Image height in pixels.
            cancel: Optional token checked before each batch. Once set, the
                render stops and the partial frame is returned.
            callback: Optional callback called after each batch.
                Receives (completed_rows, height).

        Returns:
            The frame buffer. Check is_complete for cancelled renders.
        """
        start = time.perf_counter()
        frame = self._prepare(camera, scene, width, height)
        logger.info(
            "Rendering %dx%d (%s, %s)",
            width,
            height,
            self.config.hit_policy.name,
            self.config.spatial_index.name,
        )
        for done, total in self._render_batches(frame, cancel):
            if callback is not None:
                callback(done, total)

        if frame.is_complete:
            logger.info("Rendered %dx%d in %.3fs", width, height, time.perf_counter() - start)
        return frame


def render(
    camera: Camera,
    scene: Scene,
    width: int,
    height: int,
    config: RenderConfig | None = None,
    *,
    cancel: CancelToken | None = None,
    callback: ProgressCallback | None = None,
) -> FrameBuffer:
    """Render scene from camera into a new width x height frame buffer.

    Identical inputs produce byte-identical buffers. An empty scene renders
    every pixel opaque black.

    Args:
        camera: The camera to render from.
        scene: The scene to render.
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).
        config: Render options; defaults to RenderConfig().
        cancel: Optional token checked between row batches.
        callback: Optional progress callback, receives (completed_rows, height).

    Returns:
        The rendered frame buffer.

    Raises:
        InvalidDimensionsError: If the raster size is unusable.
        SceneCapacityError: If the scene does not fit in device storage.
    """
    return FrameRenderer(config).render(camera, scene, width, height, cancel=cancel, callback=callback)


def shade_ray(
    camera: Camera,
    scene: Scene,
    u: float,
    v: float,
    config: RenderConfig | None = None,
) -> tuple[int, int, int, int]:
    """Compute the color of a single pixel from Python.

    This is a Python-callable function for testing. For production rendering,
    use render() which processes all pixels in parallel.

    Args:
        camera: The camera to render from.
        scene: The scene to render.
        u: Normalized horizontal pixel coordinate.
        v: Normalized vertical pixel coordinate.
        config: Render options; defaults to RenderConfig().

    Returns:
        The (r, g, b, a) color.
    """
    config = config if config is not None else RenderConfig()
    index = make_spatial_index(config.spatial_index, scene, config.apply_rotation)
    ray = camera.ray_for(u, v, config.apply_rotation)
    hit = index.find_hit(ray, config.hit_policy, config.cull_backfaces)
    return shade_color(hit is not None, u, v)
