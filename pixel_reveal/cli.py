"""
Command line utilities for rendering and inspecting pixel reveals.
"""

from __future__ import annotations

import argparse
import logging
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .assets import AssetLoader, AssetLoadError
from .config import Config, load_config
from .logging_setup import configure_logging
from .recording import encode_with_ffmpeg, frame_byte_generator, record_reveal, write_frames

DEFAULT_CONFIG_FILE = "config.json"


def render(config: Config, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Record the reveal of one image and export frames and an optional video."""
    loader = AssetLoader(logger=logger)
    try:
        asset = loader.load(args.image)
    except AssetLoadError as exc:
        logger.error("Could not load image: %s", exc)
        return 1
    finally:
        loader.close()

    if args.width <= 0 or args.height <= 0:
        logger.error("Container size must be positive, got %sx%s", args.width, args.height)
        return 1

    frames = record_reveal(
        asset,
        args.width,
        args.height,
        config.reveal,
        final_hold_ms=config.output.final_hold_ms,
        logger=logger,
    )

    output_dir = Path(args.output_dir or config.output.output_dir)
    paths = write_frames(frames, output_dir)
    logger.info("Wrote %s frames to %s", len(paths), output_dir)

    if args.video:
        fps = args.fps or config.output.fps
        frame_iter = frame_byte_generator(frames, fps, config.output.background_color)
        try:
            encode_with_ffmpeg(
                frame_iter,
                Path(args.video),
                fps,
                quality=config.output.quality,
            )
        except (RuntimeError, subprocess.CalledProcessError) as exc:
            logger.error("Video export failed: %s", exc)
            return 1
        logger.info("Encoded reveal video to %s", args.video)

    return 0


def plan(config: Config, logger: logging.Logger) -> int:
    """Log when each step of the configured schedule draws."""
    reveal = config.reveal
    elapsed = 0
    logger.info(
        "Schedule %s (first delay %s ms, step delay %s ms, single fire %s)",
        ", ".join(f"{factor:g}" for factor in reveal.schedule),
        reveal.first_step_delay_ms,
        reveal.step_delay_ms,
        reveal.single_fire,
    )
    for index, factor in enumerate(reveal.schedule):
        elapsed += reveal.first_step_delay_ms if index == 0 else reveal.step_delay_ms
        logger.info("  step %s: factor %g%% at %s ms", index + 1, factor, elapsed)
    logger.info("Reveal completes %s ms after the trigger", elapsed)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pixel-reveal",
        description="Render stepped depixelation reveals of images.",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="Path to a JSON config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    render_parser = subparsers.add_parser("render", help="Record a reveal to frames or video")
    render_parser.add_argument("image", help="Image path or http(s) URL")
    render_parser.add_argument("--width", type=int, required=True, help="Container width in pixels")
    render_parser.add_argument("--height", type=int, required=True, help="Container height in pixels")
    render_parser.add_argument("--output-dir", type=Path, help="Directory for PNG frames")
    render_parser.add_argument("--video", type=Path, help="Optional video output path (mp4)")
    render_parser.add_argument("--fps", type=int, help="Video frame rate")

    subparsers.add_parser("plan", help="Show the step timeline of the configured schedule")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    config = load_config(args.config)
    logger = configure_logging(config.logging, verbose=args.verbose)

    if args.command == "render":
        return render(config, args, logger)
    if args.command == "plan":
        return plan(config, logger)

    parser.error(f"Unknown command: {args.command}")
    return 2


__all__ = ["build_parser", "main", "plan", "render"]
