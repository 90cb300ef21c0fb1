from dataclasses import dataclass

import numpy as np
from skimage import color


@dataclass(frozen=True)
class ColorPlanes:
    hue: np.ndarray
    saturation: np.ndarray
    value: np.ndarray
    lightness: np.ndarray
    green_red: np.ndarray
    blue_yellow: np.ndarray


def _as_unit_rgb(rgb_array: np.ndarray) -> np.ndarray:
    return np.asarray(rgb_array, dtype=np.float64)[..., :3] / 255.0


def convert_rgb_array_to_hsv(rgb_array: np.ndarray) -> np.ndarray:
    hsv = color.rgb2hsv(_as_unit_rgb(rgb_array))
    hsv[..., 0] *= 360.0
    hsv[..., 1] *= 100.0
    hsv[..., 2] *= 100.0
    return hsv


def convert_rgb_array_to_lab(rgb_array: np.ndarray) -> np.ndarray:
    # sRGB inverse gamma switches at 0.04045, D65 reference white.
    return color.rgb2lab(_as_unit_rgb(rgb_array), illuminant="D65", observer="2")


def convert_rgb_to_hsv(red: float, green: float, blue: float) -> tuple[float, float, float]:
    hsv = convert_rgb_array_to_hsv(np.array([[[red, green, blue]]], dtype=np.float64))
    return float(hsv[0, 0, 0]), float(hsv[0, 0, 1]), float(hsv[0, 0, 2])


def convert_rgb_to_lab(red: float, green: float, blue: float) -> tuple[float, float, float]:
    lab = convert_rgb_array_to_lab(np.array([[[red, green, blue]]], dtype=np.float64))
    return float(lab[0, 0, 0]), float(lab[0, 0, 1]), float(lab[0, 0, 2])


def compute_color_planes(rgb_array: np.ndarray) -> ColorPlanes:
    hsv = convert_rgb_array_to_hsv(rgb_array)
    lab = convert_rgb_array_to_lab(rgb_array)
    return ColorPlanes(
        hue=hsv[..., 0],
        saturation=hsv[..., 1],
        value=hsv[..., 2],
        lightness=lab[..., 0],
        green_red=lab[..., 1],
        blue_yellow=lab[..., 2],
    )
