"""Raster surface sizing, placement math and the pixelating draw."""

from __future__ import annotations

import logging
import math
from typing import Optional, Tuple

import cv2
import numpy as np

from pixel_reveal.models import ImageAsset, PlacementRect

# Extra coverage so magnified blocks never leave an unfilled strip at the edges.
PLACEMENT_MARGIN = 0.05


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def inflate(surface_width: float, surface_height: float) -> Tuple[float, float]:
    """Return the working width/height with the placement margin applied."""
    return (
        surface_width + surface_width * PLACEMENT_MARGIN,
        surface_height + surface_height * PLACEMENT_MARGIN,
    )


def compute_placement(
    surface_width: float,
    surface_height: float,
    image_aspect_ratio: Optional[float],
) -> Optional[PlacementRect]:
    """Compute where the magnified image lands so it covers the surface.

    Wide surfaces crop the bottom of the image (the top stays anchored);
    tall surfaces crop both sides equally. Returns ``None`` for degenerate
    geometry.
    """
    if surface_width <= 0 or surface_height <= 0:
        return None
    if not image_aspect_ratio or not math.isfinite(image_aspect_ratio) or image_aspect_ratio <= 0:
        return None

    w, h = inflate(surface_width, surface_height)

    if w / h > image_aspect_ratio:
        return PlacementRect(
            x=0.0,
            y=0.0,
            width=w,
            height=float(_round_half_up(w / image_aspect_ratio)),
        )

    new_width = float(_round_half_up(h * image_aspect_ratio))
    return PlacementRect(x=(w - new_width) / 2, y=0.0, width=new_width, height=h)


def _composite(target: np.ndarray, layer: np.ndarray) -> None:
    """Blend ``layer`` over ``target`` in place (source-over)."""
    alpha = layer[..., 3:4]
    if np.all(alpha == 255):
        target[...] = layer
        return
    if not np.any(alpha):
        return

    src_a = alpha.astype(np.float32) / 255.0
    dst_a = target[..., 3:4].astype(np.float32) / 255.0
    out_a = src_a + dst_a * (1.0 - src_a)
    src_rgb = layer[..., :3].astype(np.float32)
    dst_rgb = target[..., :3].astype(np.float32)
    with np.errstate(divide="ignore", invalid="ignore"):
        out_rgb = (src_rgb * src_a + dst_rgb * dst_a * (1.0 - src_a)) / out_a
    out_rgb = np.nan_to_num(out_rgb)
    target[..., :3] = np.clip(np.rint(out_rgb), 0, 255).astype(np.uint8)
    target[..., 3:4] = np.clip(np.rint(out_a * 255.0), 0, 255).astype(np.uint8)


class SurfaceManager:
    """Own a BGRA raster surface and draw an asset into it at a pixelation factor."""

    def __init__(self, asset: ImageAsset, *, logger: Optional[logging.Logger] = None) -> None:
        self.asset = asset
        self.logger = logger or logging.getLogger(__name__)
        self.pixels = np.zeros((0, 0, 4), dtype=np.uint8)
        self.smoothing = True
        self.last_placement: Optional[PlacementRect] = None

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    # ------------------------------------------------------------------
    # Sizing
    # ------------------------------------------------------------------

    def resize(self, container_width: float, container_height: float) -> None:
        """Recreate the surface at the container size, discarding its content."""
        width = max(0, int(container_width))
        height = max(0, int(container_height))
        self.pixels = np.zeros((height, width, 4), dtype=np.uint8)
        self.last_placement = None
        self.logger.debug("Surface resized to %sx%s", width, height)

    def clear(self) -> None:
        self.pixels[...] = 0

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def draw(self, factor: float) -> None:
        """Draw the asset at ``factor`` percent resolution, magnified to cover the surface."""
        placement = compute_placement(self.width, self.height, self.asset.aspect_ratio)
        if placement is None:
            self.logger.debug(
                "Skipping draw of %s on degenerate geometry (%sx%s, ratio %s)",
                self.asset.source,
                self.width,
                self.height,
                self.asset.aspect_ratio,
            )
            return
        if factor <= 0:
            self.logger.debug("Skipping draw with non-positive factor %s", factor)
            return

        size = min(factor, 100) / 100.0
        self.smoothing = size == 1
        self.last_placement = placement

        w, h = inflate(self.width, self.height)
        block_w = max(1, _round_half_up(w * size))
        block_h = max(1, _round_half_up(h * size))

        self.clear()

        # Downscaled copy of the full asset into the top-left corner.
        self._blit(
            self.asset.pixels,
            (0, 0, self.asset.width, self.asset.height),
            (0.0, 0.0, float(block_w), float(block_h)),
        )
        # Magnify that corner of the surface back over the whole surface.
        self._blit(
            self.pixels.copy(),
            (0, 0, block_w, block_h),
            (placement.x, placement.y, placement.width, placement.height),
        )

    def _blit(
        self,
        source: np.ndarray,
        source_rect: Tuple[int, int, int, int],
        dest_rect: Tuple[float, float, float, float],
    ) -> None:
        sx, sy, sw, sh = source_rect
        dx, dy, dw, dh = dest_rect
        if sw <= 0 or sh <= 0 or dw <= 0 or dh <= 0:
            return

        # Clip the source rect to the source bounds and shrink the destination with it.
        src_h, src_w = source.shape[:2]
        x0, y0 = max(sx, 0), max(sy, 0)
        x1, y1 = min(sx + sw, src_w), min(sy + sh, src_h)
        if x1 <= x0 or y1 <= y0:
            return
        scale_x = dw / sw
        scale_y = dh / sh
        out_x = _round_half_up(dx + (x0 - sx) * scale_x)
        out_y = _round_half_up(dy + (y0 - sy) * scale_y)
        out_w = max(1, _round_half_up((x1 - x0) * scale_x))
        out_h = max(1, _round_half_up((y1 - y0) * scale_y))

        interpolation = cv2.INTER_LINEAR if self.smoothing else cv2.INTER_NEAREST
        scaled = cv2.resize(
            np.ascontiguousarray(source[y0:y1, x0:x1]),
            (out_w, out_h),
            interpolation=interpolation,
        )

        # Clip the destination to the surface.
        tx0, ty0 = max(out_x, 0), max(out_y, 0)
        tx1, ty1 = min(out_x + out_w, self.width), min(out_y + out_h, self.height)
        if tx1 <= tx0 or ty1 <= ty0:
            return
        _composite(
            self.pixels[ty0:ty1, tx0:tx1],
            scaled[ty0 - out_y:ty1 - out_y, tx0 - out_x:tx1 - out_x],
        )


__all__ = ["PLACEMENT_MARGIN", "SurfaceManager", "compute_placement", "inflate"]
