import math
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pixel_reveal.surface import compute_placement, inflate  # noqa: E402


def test_wide_surface_anchors_top_and_extends_height():
    rect = compute_placement(200, 100, 1.0)

    assert rect.x == 0
    assert rect.y == 0
    assert rect.width == pytest.approx(210)
    assert rect.height == 210


def test_tall_surface_centers_horizontally():
    rect = compute_placement(100, 200, 1.0)

    assert rect.y == 0
    assert rect.height == pytest.approx(210)
    assert rect.width == 210
    assert rect.x == pytest.approx((105 - 210) / 2)


def test_matching_ratio_fills_inflated_surface_exactly():
    rect = compute_placement(40, 20, 2.0)

    assert rect.x == pytest.approx(0)
    assert rect.y == 0
    assert rect.width == pytest.approx(42)
    assert rect.height == pytest.approx(21)


def test_rounding_is_half_up():
    # Inflated surface is 10.5 x 21, so the image width lands exactly on 10.5.
    rect = compute_placement(10, 20, 0.5)

    assert rect.width == 11
    assert rect.x == pytest.approx(-0.25)


@pytest.mark.parametrize(
    "width,height,ratio",
    [
        (0, 100, 1.0),
        (100, 0, 1.0),
        (-5, 100, 1.0),
        (100, 100, 0.0),
        (100, 100, -1.0),
        (100, 100, None),
        (100, 100, math.nan),
        (100, 100, math.inf),
    ],
)
def test_degenerate_geometry_returns_none(width, height, ratio):
    assert compute_placement(width, height, ratio) is None


def test_placement_covers_surface_for_assorted_geometry():
    sizes = [(1, 1), (37, 91), (320, 240), (1920, 1080), (500, 1200)]
    ratios = [0.25, 0.75, 1.0, 4 / 3, 16 / 9, 5.0]

    for width, height in sizes:
        w, h = inflate(width, height)
        for ratio in ratios:
            rect = compute_placement(width, height, ratio)
            assert rect is not None
            assert rect.y == 0
            assert rect.x == pytest.approx((w - rect.width) / 2)
            assert rect.x <= 0.25
            # Rounding can cost at most half a pixel on the derived axis.
            assert rect.width >= w - 0.5
            assert rect.height >= h - 0.5
            assert rect.width >= width
            assert rect.height >= height
