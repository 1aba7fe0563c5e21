"""Preview module for output and visualization.

This module is the presentation boundary: it turns a FrameBuffer into
something a person can look at. Nothing here feeds back into rendering.

Components:
    display: Matplotlib-based preview display
    export: PNG export via Pillow

Example:
    >>> from meshtracer.preview import save_png, show_frame
    >>> frame = render(camera, scene, 1280, 720)
    >>> show_frame(frame)
    >>> save_png(frame, "output.png")
"""

from meshtracer.preview.display import show_comparison, show_frame
from meshtracer.preview.export import compute_rmse, frame_to_image, save_png

__all__ = [
    "show_frame",
    "show_comparison",
    "frame_to_image",
    "save_png",
    "compute_rmse",
]
