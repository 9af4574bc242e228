"""Image asset loading from local paths or HTTP URLs."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np
import requests

from pixel_reveal.models import ImageAsset


class AssetLoadError(RuntimeError):
    """Raised when an image source cannot be fetched or decoded."""


def to_bgra(image: np.ndarray) -> np.ndarray:
    """Normalize a decoded OpenCV image to 4-channel BGRA."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    channels = image.shape[2]
    if channels == 4:
        return image
    if channels == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    if channels == 1:
        return cv2.cvtColor(image[..., 0], cv2.COLOR_GRAY2BGRA)
    raise AssetLoadError(f"Unsupported channel count: {channels}")


def decode_image(data: bytes, source: str) -> ImageAsset:
    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED) if buffer.size else None
    if image is None:
        raise AssetLoadError(f"Failed to decode image: {source}")
    if image.dtype == np.uint16:
        image = (image >> 8).astype(np.uint8)
    elif image.dtype != np.uint8:
        raise AssetLoadError(f"Unsupported pixel depth {image.dtype}: {source}")
    pixels = to_bgra(image)
    height, width = pixels.shape[:2]
    return ImageAsset(source=source, width=width, height=height, pixels=pixels)


class AssetLoader:
    """Fetch and decode image assets, synchronously or on a worker pool."""

    def __init__(
        self,
        *,
        http_timeout: int = 10,
        max_workers: int = 2,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.http_timeout = http_timeout
        self.logger = logger or logging.getLogger(__name__)
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix="asset-loader",
        )

    @staticmethod
    def _is_url(source: str) -> bool:
        return source.startswith(("http://", "https://"))

    def _fetch(self, source: str) -> bytes:
        if self._is_url(source):
            try:
                response = requests.get(source, timeout=self.http_timeout)
                response.raise_for_status()
            except requests.RequestException as exc:
                raise AssetLoadError(f"Failed to fetch {source}: {exc}") from exc
            return response.content

        path = Path(source)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise AssetLoadError(f"Failed to read {path}: {exc}") from exc

    def load(self, source: Union[str, Path]) -> ImageAsset:
        """Fetch and decode ``source`` into an :class:`ImageAsset`."""
        source_str = str(source)
        asset = decode_image(self._fetch(source_str), source_str)
        self.logger.debug(
            "Loaded %s (%sx%s, ratio %.3f)",
            source_str,
            asset.width,
            asset.height,
            asset.aspect_ratio,
        )
        return asset

    def load_async(self, source: Union[str, Path]) -> "Future[ImageAsset]":
        return self._executor.submit(self.load, source)

    def close(self) -> None:
        self._executor.shutdown(wait=False)


__all__ = ["AssetLoadError", "AssetLoader", "decode_image", "to_bgra"]
