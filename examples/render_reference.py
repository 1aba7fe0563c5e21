#!/usr/bin/env python3
"""Render the reference triangle scene.

Creates the reference scene (one triangle in front of a perspective camera),
renders it with one ray per pixel and saves the frame as a PNG.

Usage:
    python -m examples.render_reference [options]

Options:
    --width WIDTH         Image width in pixels (default: 1280)
    --height HEIGHT       Image height in pixels (default: 720)
    --output OUTPUT       Output file path (default: reference.png)
    --scene FILE          Load the scene and camera from a JSON description
    --nearest             Resolve hits by distance instead of traversal order
    --bvh                 Traverse a bounding volume hierarchy
    --apply-rotation      Apply mesh and camera rotations
    --cull-backfaces      Ignore back-facing triangles
    --batch-size ROWS     Rows per progress update (default: 64)
    --show                Open a Matplotlib preview after saving
    --quiet               Suppress progress output
    --verbose             Enable debug logging

Example:
    python -m examples.render_reference --width 640 --height 360 --show
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

import taichi as ti

logger = logging.getLogger("meshtracer.examples")


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the reference triangle scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=1280, help="Image width in pixels (default: 1280)")
    parser.add_argument("--height", type=int, default=720, help="Image height in pixels (default: 720)")
    parser.add_argument(
        "--output",
        type=str,
        default="reference.png",
        help="Output file path (default: reference.png)",
    )
    parser.add_argument("--scene", type=str, default=None, help="JSON scene description to render instead")
    parser.add_argument("--nearest", action="store_true", help="Use the nearest-hit policy")
    parser.add_argument("--bvh", action="store_true", help="Use the BVH spatial index")
    parser.add_argument("--apply-rotation", action="store_true", help="Apply mesh and camera rotations")
    parser.add_argument("--cull-backfaces", action="store_true", help="Ignore back-facing triangles")
    parser.add_argument("--batch-size", type=int, default=64, help="Rows per progress update (default: 64)")
    parser.add_argument("--show", action="store_true", help="Show a Matplotlib preview")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def render_reference(args: argparse.Namespace) -> Path:
    """Render the requested scene and save it to file.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from meshtracer.core.renderer import FrameRenderer
    from meshtracer.preview.display import show_frame
    from meshtracer.preview.export import save_png
    from meshtracer.scene.config import RenderConfig, SceneConfig
    from meshtracer.scene.intersection import HitPolicy, SpatialIndexKind
    from meshtracer.scene.reference import create_reference_scene

    if args.scene is not None:
        with open(args.scene, encoding="utf-8") as f:
            scene_config = SceneConfig.from_dict(json.load(f))
        scene, camera = scene_config.to_scene(), scene_config.to_camera()
    else:
        scene, camera = create_reference_scene()
    logger.info("Scene has %d meshes, %d triangles", len(scene), scene.triangle_count)

    config = RenderConfig(
        hit_policy=HitPolicy.NEAREST_HIT if args.nearest else HitPolicy.FIRST_HIT,
        spatial_index=SpatialIndexKind.BVH if args.bvh else SpatialIndexKind.LINEAR_SCAN,
        apply_rotation=args.apply_rotation,
        cull_backfaces=args.cull_backfaces,
        row_batch_size=args.batch_size,
    )
    renderer = FrameRenderer(config)

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not args.quiet:
            progress_pct = (current / target) * 100 if target > 0 else 0
            print(
                f"\r  Progress: {current}/{target} rows ({progress_pct:.1f}%)",
                end="",
                flush=True,
            )

    frame = renderer.render(camera, scene, args.width, args.height, callback=progress_callback)

    if not args.quiet:
        print()  # Newline after progress

    output_file = save_png(frame, args.output)
    logger.info("Saved to: %s (%.2fs)", output_file.absolute(), time.time() - start_time)

    if args.show:
        show_frame(frame)

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    from meshtracer.logging_config import setup_logging

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    ti.init(arch=ti.cpu)

    try:
        render_reference(args)
        return 0
    except Exception as e:
        logger.error("Error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
