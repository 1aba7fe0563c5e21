"""Matplotlib-based preview display for rendered frames.

Example:
    >>> from meshtracer.preview.display import show_frame
    >>> frame = render(camera, scene, 1280, 720)
    >>> show_frame(frame)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from meshtracer.preview.export import compute_rmse

if TYPE_CHECKING:
    from meshtracer.core.renderer import FrameBuffer


def show_frame(
    frame: FrameBuffer,
    *,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 4.5),
    block: bool = True,
) -> None:
    """Display a frame as a Matplotlib figure.

    Args:
        frame: The rendered frame.
        title: Custom title (default shows the size and completion).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until figure is closed.
    """
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(1, 1, figsize=figsize)

    # Row 0 at the top, the same orientation as the saved PNG
    ax.imshow(frame.pixels, origin="upper", interpolation="nearest")
    ax.axis("off")

    if title is None:
        title = f"Render Preview - {frame.width}x{frame.height}"
        if not frame.is_complete:
            title += f" ({frame.completed_rows}/{frame.height} rows)"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)


def show_comparison(
    frame_a: FrameBuffer,
    frame_b: FrameBuffer,
    *,
    labels: tuple[str, str] = ("A", "B"),
    figsize: tuple[float, float] = (16, 4),
    block: bool = True,
) -> float:
    """Display two frames side by side with their difference.

    Args:
        frame_a: First frame.
        frame_b: Second frame (same size as frame_a).
        labels: Labels for the two frames.
        figsize: Figure size in inches.
        block: Whether to block execution until figure is closed.

    Returns:
        RMSE between the two frames in 8-bit units.
    """
    import matplotlib.pyplot as plt

    rmse = compute_rmse(frame_a.pixels, frame_b.pixels)

    # Any differing channel marks the pixel white
    diff = np.any(frame_a.pixels != frame_b.pixels, axis=-1)

    fig, axes = plt.subplots(1, 3, figsize=figsize)

    axes[0].imshow(frame_a.pixels, interpolation="nearest")
    axes[0].set_title(labels[0])
    axes[0].axis("off")

    axes[1].imshow(frame_b.pixels, interpolation="nearest")
    axes[1].set_title(labels[1])
    axes[1].axis("off")

    axes[2].imshow(diff, cmap="gray", vmin=0, vmax=1, interpolation="nearest")
    axes[2].set_title(f"Difference - RMSE: {rmse:.3f}")
    axes[2].axis("off")

    plt.tight_layout()
    plt.show(block=block)

    return rmse
