"""Image export utilities for rendered frames.

Frames are already 8-bit RGBA, so export is a direct conversion with no
tone mapping or gamma step.

Supported formats:
    - PNG (8-bit RGBA via Pillow)

Example:
    >>> from meshtracer.core.renderer import render
    >>> from meshtracer.preview.export import save_png
    >>>
    >>> frame = render(camera, scene, 1280, 720)
    >>> save_png(frame, "output.png")
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

if TYPE_CHECKING:
    from meshtracer.core.renderer import FrameBuffer


def frame_to_image(frame: FrameBuffer) -> PILImage.Image:
    """Convert a frame buffer to a Pillow RGBA image.

    Row 0 of the frame becomes the top row of the image.

    Args:
        frame: The rendered frame.

    Returns:
        A new RGBA image of the frame's size.
    """
    return PILImage.fromarray(np.ascontiguousarray(frame.pixels))


def save_png(frame: FrameBuffer, filepath: str | Path) -> Path:
    """Save a frame buffer as a PNG file.

    Args:
        frame: The rendered frame.
        filepath: Output file path (should end in .png).

    Returns:
        The path written.
    """
    path = Path(filepath)
    frame_to_image(frame).save(path, format="PNG")
    return path


def compute_rmse(
    image_a: npt.NDArray[np.generic],
    image_b: npt.NDArray[np.generic],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(
            f"Image shapes must match: {image_a.shape} vs {image_b.shape}"
        )

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
