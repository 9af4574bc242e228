"""Offline recording of a reveal and export to PNG frames or video."""

from __future__ import annotations

import logging
import shutil
import subprocess
import uuid
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from pixel_reveal.config import RevealSettings
from pixel_reveal.models import ImageAsset, RecordedFrame
from pixel_reveal.sequencer import StageSequencer
from pixel_reveal.surface import SurfaceManager
from pixel_reveal.timers import VirtualTimer


def record_reveal(
    asset: ImageAsset,
    width: int,
    height: int,
    settings: RevealSettings,
    *,
    final_hold_ms: float = 1000,
    logger: Optional[logging.Logger] = None,
) -> List[RecordedFrame]:
    """Play a full reveal on a virtual clock and capture every draw.

    Frame 0 is the initial draw made when the element attaches; each
    following frame is one step, stamped with its virtual time.
    """
    logger = logger or logging.getLogger(__name__)
    timer = VirtualTimer()
    surface = SurfaceManager(asset, logger=logger)
    sequencer = StageSequencer(surface, settings, timer, logger=logger)
    schedule = sequencer.state.schedule

    surface.resize(width, height)
    surface.draw(sequencer.state.current_factor)
    frames = [RecordedFrame(0, sequencer.state.current_factor, 0.0, surface.pixels.copy())]

    sequencer.start()
    while timer.run_next():
        drawn = schedule[sequencer.state.draw_count - 1]
        frames.append(
            RecordedFrame(len(frames), drawn, timer.now * 1000.0, surface.pixels.copy())
        )

    for current, following in zip(frames, frames[1:]):
        current.hold_ms = following.timestamp_ms - current.timestamp_ms
    frames[-1].hold_ms = float(final_hold_ms)

    logger.info(
        "Recorded reveal of %s at %sx%s: %s frames over %.0f ms",
        asset.source,
        surface.width,
        surface.height,
        len(frames),
        frames[-1].timestamp_ms,
    )
    return frames


def write_frames(frames: Sequence[RecordedFrame], output_dir: Path) -> List[Path]:
    """Write each frame as a BGRA PNG and return the paths."""
    output_dir.mkdir(parents=True, exist_ok=True)
    paths: List[Path] = []
    for frame in frames:
        path = output_dir / f"frame_{frame.index:03d}.png"
        if frame.pixels.size == 0:
            raise RuntimeError(f"Cannot write empty frame {frame.index} to {path}")
        if not cv2.imwrite(str(path), frame.pixels):
            raise RuntimeError(f"Failed to write frame {frame.index} to {path}")
        paths.append(path)
    return paths


def flatten(pixels: np.ndarray, background_color: Tuple[int, int, int]) -> np.ndarray:
    """Composite a BGRA frame over an opaque BGR background."""
    alpha = pixels[..., 3:4].astype(np.float32) / 255.0
    background = np.empty(pixels.shape[:2] + (3,), dtype=np.float32)
    background[...] = background_color
    blended = pixels[..., :3].astype(np.float32) * alpha + background * (1.0 - alpha)
    return np.clip(np.rint(blended), 0, 255).astype(np.uint8)


def frame_byte_generator(
    frames: Sequence[RecordedFrame],
    fps: int,
    background_color: Tuple[int, int, int],
) -> Iterator[bytes]:
    """Yield PNG bytes per video frame, repeating each step for its hold time."""
    for frame in frames:
        hold_ms = frame.hold_ms or 0.0
        repeats = max(1, int(round(hold_ms / 1000.0 * fps)))
        success, buffer = cv2.imencode(".png", flatten(frame.pixels, background_color))
        if not success:
            raise RuntimeError(f"Failed to encode frame {frame.index}")
        frame_bytes = buffer.tobytes()
        for _ in range(repeats):
            yield frame_bytes


def encode_with_ffmpeg(
    frame_iter: Iterator[bytes],
    output_path: Path,
    fps: int,
    *,
    quality: int,
) -> None:
    if shutil.which("ffmpeg") is None:
        raise RuntimeError("ffmpeg not found on PATH. Install ffmpeg with libx264.")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_output = output_path.with_name(f".tmp_{uuid.uuid4().hex}_{output_path.name}")

    cmd = [
        "ffmpeg",
        "-y",
        "-f",
        "image2pipe",
        "-vcodec",
        "png",
        "-r",
        str(fps),
        "-i",
        "-",
        "-vf",
        "pad=ceil(iw/2)*2:ceil(ih/2)*2",
        "-c:v",
        "libx264",
        "-crf",
        str(quality),
        "-tune",
        "animation",
        "-pix_fmt",
        "yuv420p",
        "-movflags",
        "+faststart",
        str(temp_output),
    ]

    process = subprocess.Popen(
        cmd,
        stdin=subprocess.PIPE,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
    )

    assert process.stdin is not None
    try:
        for frame_bytes in frame_iter:
            process.stdin.write(frame_bytes)
    except BrokenPipeError:
        # ffmpeg exited early; its return code and stderr are reported below.
        pass
    finally:
        try:
            process.stdin.close()
        except OSError:
            pass

    stderr_bytes = b""
    if process.stderr is not None:
        try:
            stderr_bytes = process.stderr.read()
        finally:
            process.stderr.close()

    return_code = process.wait()
    if return_code != 0:
        temp_output.unlink(missing_ok=True)
        raise subprocess.CalledProcessError(return_code, cmd, stderr=stderr_bytes)

    temp_output.replace(output_path)


__all__ = [
    "encode_with_ffmpeg",
    "flatten",
    "frame_byte_generator",
    "record_reveal",
    "write_frames",
]
