"""Shared synthetic photos for the girth estimator tests.

The repository uses a flat layout; the repository root is put on sys.path so
that ``python -m pytest`` works from a plain checkout.
"""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

REPOSITORY_ROOT = Path(__file__).resolve().parents[1]
if str(REPOSITORY_ROOT) not in sys.path:
    sys.path.insert(0, str(REPOSITORY_ROOT))

from trunk_girth.measurement_models import RasterImage  # noqa: E402

SKY_RGB = (135, 190, 235)
FOLIAGE_RGB = (60, 140, 50)
BARK_RGB = (110, 75, 45)


def build_synthetic_tree_rgb(
    width: int = 400,
    height: int = 800,
    trunk_left_x: int = 180,
    trunk_width_px: int = 40,
    foliage_bottom_row: int = 300,
) -> np.ndarray:
    rgb = np.empty((height, width, 3), dtype=np.uint8)
    rgb[:, :] = SKY_RGB
    rgb[:foliage_bottom_row, :] = FOLIAGE_RGB
    rgb[foliage_bottom_row:, trunk_left_x : trunk_left_x + trunk_width_px] = BARK_RGB
    return rgb


@pytest.fixture
def synthetic_tree_image() -> RasterImage:
    """400x800 frame: foliage above row 300, a 40px brown trunk at x=180..219 below it."""
    return RasterImage.from_rgb_array(build_synthetic_tree_rgb())


@pytest.fixture
def gray_image() -> RasterImage:
    rgb = np.full((200, 300, 3), 128, dtype=np.uint8)
    rgb[:, :, 0] = 126
    rgb[:, :, 2] = 130
    return RasterImage.from_rgb_array(rgb)
