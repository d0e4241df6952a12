#!/usr/bin/env python3
"""Render the showcase scene, or a scene description file.

This script renders the built-in showcase (reflective floor, glass and
mirror spheres, a cylinder/cone group, patterned surfaces) or any YAML
or JSON scene description, and saves the result as a PNG.

Usage:
    python -m examples.render_showcase [options]

Options:
    --width WIDTH           Image width in pixels (default: 320)
    --height HEIGHT         Image height in pixels (default: 180)
    --scene FILE            YAML or JSON scene description to render instead
    --aa MODE               none, uniform or adaptive (default: adaptive)
    --samples SAMPLES       Samples per pixel, initial count for adaptive (default: 4)
    --max-samples N         Adaptive sample cap (default: 32)
    --threshold VALUE       Adaptive variance threshold (default: 1e-3)
    --depth DEPTH           Reflection/refraction depth (default: 5)
    --output OUTPUT         Output file path (default: showcase.png)
    --sample-map FILE       Also write per-pixel sample counts as grayscale
    --rows-per-batch ROWS   Rows per progress update (default: 16)
    --gpu                   Use the GPU backend if available
    --quiet                 Suppress progress output

Example:
    python -m examples.render_showcase --width 640 --height 360 --aa adaptive
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the showcase scene or a YAML/JSON scene description.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=320, help="Image width in pixels (default: 320)")
    parser.add_argument("--height", type=int, default=180, help="Image height in pixels (default: 180)")
    parser.add_argument("--scene", type=str, default=None, help="YAML or JSON scene description to render")
    parser.add_argument(
        "--aa",
        choices=["none", "uniform", "adaptive"],
        default="adaptive",
        help="Antialiasing mode (default: adaptive)",
    )
    parser.add_argument("--samples", type=int, default=4, help="Samples per pixel (default: 4)")
    parser.add_argument("--max-samples", type=int, default=32, help="Adaptive sample cap (default: 32)")
    parser.add_argument(
        "--threshold", type=float, default=1e-3, help="Adaptive variance threshold (default: 1e-3)"
    )
    parser.add_argument("--depth", type=int, default=5, help="Reflection/refraction depth (default: 5)")
    parser.add_argument(
        "--output", type=str, default="showcase.png", help="Output file path (default: showcase.png)"
    )
    parser.add_argument("--sample-map", type=str, default=None, help="Write sample counts to this PNG")
    parser.add_argument(
        "--rows-per-batch", type=int, default=16, help="Rows per progress update (default: 16)"
    )
    parser.add_argument("--gpu", action="store_true", help="Use the GPU backend if available")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_showcase(args: argparse.Namespace) -> Path:
    """Render the requested scene and save it.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.glint.core.config import RenderConfig
    from src.glint.core.renderer import Renderer
    from src.glint.preview.export import save_png_from_array, save_sample_map
    from src.glint.scene.loader import load_scene_file
    from src.glint.scene.showcase import create_showcase_camera, create_showcase_scene

    config = RenderConfig(
        samples_per_pixel=args.samples,
        antialiasing_mode=args.aa,
        variance_threshold=args.threshold,
        max_samples=max(args.max_samples, args.samples),
        reflection_depth=args.depth,
    )

    if args.scene is not None:
        if not args.quiet:
            print(f"Loading scene from {args.scene}...")
        camera, world, scene_config = load_scene_file(args.scene)
        if camera is None:
            camera = create_showcase_camera(args.width, args.height)
        if scene_config is not None:
            config = scene_config
    else:
        if not args.quiet:
            print(f"Creating showcase scene ({args.width}x{args.height})...")
        world, camera = create_showcase_scene(args.width, args.height)

    renderer = Renderer(camera, world, config)

    if not args.quiet:
        print(f"Rendering with {config.antialiasing_mode.name.lower()} sampling, depth {config.reflection_depth}...")

    start_time = time.time()

    def progress_callback(done: int, total: int) -> None:
        if not args.quiet:
            elapsed = time.time() - start_time
            progress_pct = (done / total) * 100 if total > 0 else 0
            rows_per_sec = done / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {done}/{total} rows ({progress_pct:.1f}%) - {rows_per_sec:.1f} rows/s",
                end="",
                flush=True,
            )

    renderer.render(rows_per_batch=args.rows_per_batch, callback=progress_callback)

    if not args.quiet:
        print()  # Newline after progress

    output_file = Path(args.output)
    save_png_from_array(renderer.get_image_numpy(), str(output_file), tone_map="none", gamma=2.2)
    if args.sample_map is not None:
        save_sample_map(renderer.get_sample_counts(), args.sample_map, config.max_samples)

    total_time = time.time() - start_time
    if not args.quiet:
        counts = renderer.get_sample_counts()
        print(f"Saved to: {output_file.absolute()}")
        print(f"Samples per pixel: mean {counts.mean():.2f}, max {counts.max()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    # Taichi falls back to CPU when no GPU backend is available
    if args.gpu:
        ti.init(arch=ti.gpu)
        if not args.quiet:
            print("Requested GPU backend")
    else:
        ti.init(arch=ti.cpu)
        if not args.quiet:
            print("Using CPU backend")

    try:
        render_showcase(args)
        return 0
    except (OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
