import numpy as np
import pytest

from trunk_girth.color_space_converter import (
    compute_color_planes,
    convert_rgb_array_to_hsv,
    convert_rgb_to_hsv,
    convert_rgb_to_lab,
)


def test_primary_hues_and_full_saturation() -> None:
    assert convert_rgb_to_hsv(255, 0, 0) == pytest.approx((0.0, 100.0, 100.0))
    assert convert_rgb_to_hsv(0, 255, 0) == pytest.approx((120.0, 100.0, 100.0))
    assert convert_rgb_to_hsv(0, 0, 255) == pytest.approx((240.0, 100.0, 100.0))


def test_gray_has_no_saturation() -> None:
    hue, saturation, value = convert_rgb_to_hsv(128, 128, 128)
    assert saturation == pytest.approx(0.0)
    assert value == pytest.approx(100.0 * 128 / 255)
    assert 0.0 <= hue < 360.0


def test_lab_reference_points_use_d65_white() -> None:
    assert convert_rgb_to_lab(255, 255, 255) == pytest.approx((100.0, 0.0, 0.0), abs=1e-2)
    assert convert_rgb_to_lab(0, 0, 0) == pytest.approx((0.0, 0.0, 0.0), abs=1e-6)
    lightness, green_red, blue_yellow = convert_rgb_to_lab(255, 0, 0)
    assert lightness == pytest.approx(53.24, abs=0.05)
    assert green_red == pytest.approx(80.09, abs=0.05)
    assert blue_yellow == pytest.approx(67.20, abs=0.05)


def test_bark_brown_is_warm_in_lab() -> None:
    hue, saturation, value = convert_rgb_to_hsv(110, 75, 45)
    _, green_red, blue_yellow = convert_rgb_to_lab(110, 75, 45)
    assert 10.0 < hue < 45.0
    assert 15.0 < saturation < 80.0
    assert 15.0 < value < 75.0
    assert green_red > 0.0
    assert blue_yellow > 5.0


def test_array_conversion_matches_scalar_conversion() -> None:
    rgb = np.array([[[60, 140, 50], [135, 190, 235]]], dtype=np.uint8)
    hsv = convert_rgb_array_to_hsv(rgb)
    planes = compute_color_planes(rgb)
    for column_index in range(2):
        red, green, blue = (int(value) for value in rgb[0, column_index])
        assert tuple(hsv[0, column_index]) == pytest.approx(convert_rgb_to_hsv(red, green, blue))
        assert (
            planes.lightness[0, column_index],
            planes.green_red[0, column_index],
            planes.blue_yellow[0, column_index],
        ) == pytest.approx(convert_rgb_to_lab(red, green, blue))
