import sys
import types
from pathlib import Path
from unittest.mock import patch

import cv2
import numpy as np
import pytest
import requests

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pixel_reveal.assets import AssetLoader, AssetLoadError  # noqa: E402


def png_bytes(image: np.ndarray) -> bytes:
    success, buffer = cv2.imencode(".png", image)
    assert success
    return buffer.tobytes()


def fake_response(content: bytes, error: Exception | None = None):
    def raise_for_status():
        if error is not None:
            raise error

    return types.SimpleNamespace(content=content, raise_for_status=raise_for_status)


def test_load_bgr_file_adds_opaque_alpha(tmp_path):
    path = tmp_path / "photo.png"
    image = np.full((6, 8, 3), (10, 20, 30), dtype=np.uint8)
    cv2.imwrite(str(path), image)

    asset = AssetLoader().load(path)

    assert (asset.width, asset.height) == (8, 6)
    assert asset.aspect_ratio == pytest.approx(8 / 6)
    assert asset.pixels.shape == (6, 8, 4)
    assert np.all(asset.pixels[..., 3] == 255)
    assert tuple(map(int, asset.pixels[0, 0, :3])) == (10, 20, 30)
    assert asset.source == str(path)


def test_load_grayscale_file(tmp_path):
    path = tmp_path / "gray.png"
    cv2.imwrite(str(path), np.full((4, 4), 128, dtype=np.uint8))

    asset = AssetLoader().load(path)

    assert asset.pixels.shape == (4, 4, 4)
    assert tuple(map(int, asset.pixels[0, 0])) == (128, 128, 128, 255)


def test_load_keeps_existing_alpha(tmp_path):
    path = tmp_path / "alpha.png"
    image = np.zeros((3, 3, 4), dtype=np.uint8)
    image[..., 3] = 64
    cv2.imwrite(str(path), image)

    asset = AssetLoader().load(path)

    assert np.all(asset.pixels[..., 3] == 64)


def test_missing_file_raises(tmp_path):
    with pytest.raises(AssetLoadError):
        AssetLoader().load(tmp_path / "nope.png")


def test_undecodable_file_raises(tmp_path):
    path = tmp_path / "broken.png"
    path.write_bytes(b"not an image")

    with pytest.raises(AssetLoadError):
        AssetLoader().load(path)


def test_load_from_url():
    content = png_bytes(np.full((5, 10, 3), 99, dtype=np.uint8))

    with patch("pixel_reveal.assets.requests.get", return_value=fake_response(content)) as mock_get:
        asset = AssetLoader(http_timeout=3).load("https://example.com/image.png")

    mock_get.assert_called_once_with("https://example.com/image.png", timeout=3)
    assert (asset.width, asset.height) == (10, 5)


def test_http_error_raises_load_error():
    response = fake_response(b"", error=requests.HTTPError("404 Not Found"))

    with patch("pixel_reveal.assets.requests.get", return_value=response):
        with pytest.raises(AssetLoadError):
            AssetLoader().load("http://example.com/missing.png")


def test_load_async_resolves_future(tmp_path):
    path = tmp_path / "async.png"
    cv2.imwrite(str(path), np.zeros((2, 3, 3), dtype=np.uint8))
    loader = AssetLoader()

    try:
        asset = loader.load_async(path).result(timeout=10)
    finally:
        loader.close()

    assert (asset.width, asset.height) == (3, 2)
