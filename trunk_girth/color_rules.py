from dataclasses import dataclass
from typing import Callable

import numpy as np

from trunk_girth.color_space_converter import ColorPlanes


# Hue in degrees, saturation and value in percent, Lab in CIE units.
@dataclass
class ColorRuleThresholds:
    green_hue_min: float = 40.0
    green_hue_max: float = 170.0
    green_saturation_min: float = 15.0
    green_value_min: float = 20.0
    green_score_ceiling: float = 0.8

    brown_hue_min: float = 10.0
    brown_hue_max: float = 45.0
    brown_saturation_min: float = 15.0
    brown_saturation_max: float = 80.0
    brown_value_min: float = 15.0
    brown_value_max: float = 75.0
    brown_lab_a_min: float = -5.0
    brown_lab_b_min: float = 5.0
    brown_lightness_min: float = 15.0
    brown_lightness_max: float = 75.0
    brown_score: float = 0.9

    dark_bark_value_min: float = 8.0
    dark_bark_value_max: float = 45.0
    dark_bark_saturation_min: float = 5.0
    dark_bark_saturation_max: float = 40.0
    dark_bark_lab_a_min: float = -8.0
    dark_bark_lab_b_min: float = 0.0
    dark_bark_lightness_min: float = 8.0
    dark_bark_lightness_max: float = 45.0
    dark_bark_score: float = 0.6

    light_bark_saturation_min: float = 5.0
    light_bark_saturation_max: float = 25.0
    light_bark_value_min: float = 55.0
    light_bark_value_max: float = 85.0
    light_bark_lab_b_min: float = 3.0
    light_bark_lab_b_max: float = 25.0
    light_bark_lab_a_min: float = -3.0
    light_bark_lab_a_max: float = 12.0
    light_bark_score: float = 0.4

    trunk_brown_hue_min: float = 8.0
    trunk_brown_hue_max: float = 45.0
    trunk_brown_saturation_min: float = 15.0
    trunk_brown_saturation_max: float = 80.0
    trunk_brown_value_min: float = 12.0
    trunk_brown_value_max: float = 75.0
    trunk_brown_lab_a_min: float = -5.0
    trunk_brown_lab_b_min: float = 3.0
    trunk_brown_lightness_min: float = 12.0
    trunk_brown_lightness_max: float = 75.0
    trunk_dark_value_min: float = 6.0
    trunk_dark_value_max: float = 40.0
    trunk_dark_saturation_min: float = 5.0
    trunk_dark_saturation_max: float = 45.0
    trunk_dark_lab_a_min: float = -6.0
    trunk_dark_lab_b_min: float = -2.0
    trunk_dark_lightness_min: float = 6.0
    trunk_dark_lightness_max: float = 40.0
    trunk_gray_saturation_min: float = 5.0
    trunk_gray_saturation_max: float = 22.0
    trunk_gray_value_min: float = 25.0
    trunk_gray_value_max: float = 65.0
    trunk_gray_lab_a_min: float = -4.0
    trunk_gray_lab_a_max: float = 8.0
    trunk_gray_lab_b_min: float = 0.0
    trunk_gray_lab_b_max: float = 14.0

    validator_green_value_min: float = 15.0
    validator_gray_saturation_max: float = 15.0
    validator_gray_value_min: float = 30.0
    validator_gray_value_max: float = 85.0


def _within(values: np.ndarray, minimum: float, maximum: float) -> np.ndarray:
    return (values >= minimum) & (values <= maximum)


def _strictly_within(values: np.ndarray, minimum: float, maximum: float) -> np.ndarray:
    return (values > minimum) & (values < maximum)


def is_green_foliage(planes: ColorPlanes, thresholds: ColorRuleThresholds) -> np.ndarray:
    return (
        _within(planes.hue, thresholds.green_hue_min, thresholds.green_hue_max)
        & (planes.saturation > thresholds.green_saturation_min)
        & (planes.value > thresholds.green_value_min)
    )


def is_brown_trunk(planes: ColorPlanes, thresholds: ColorRuleThresholds) -> np.ndarray:
    return (
        _within(planes.hue, thresholds.brown_hue_min, thresholds.brown_hue_max)
        & _within(planes.saturation, thresholds.brown_saturation_min, thresholds.brown_saturation_max)
        & _within(planes.value, thresholds.brown_value_min, thresholds.brown_value_max)
        & (planes.green_red > thresholds.brown_lab_a_min)
        & (planes.blue_yellow > thresholds.brown_lab_b_min)
        & _strictly_within(planes.lightness, thresholds.brown_lightness_min, thresholds.brown_lightness_max)
    )


def is_dark_bark(planes: ColorPlanes, thresholds: ColorRuleThresholds) -> np.ndarray:
    return (
        _within(planes.value, thresholds.dark_bark_value_min, thresholds.dark_bark_value_max)
        & _within(
            planes.saturation,
            thresholds.dark_bark_saturation_min,
            thresholds.dark_bark_saturation_max,
        )
        & (planes.green_red > thresholds.dark_bark_lab_a_min)
        & (planes.blue_yellow > thresholds.dark_bark_lab_b_min)
        & _strictly_within(
            planes.lightness,
            thresholds.dark_bark_lightness_min,
            thresholds.dark_bark_lightness_max,
        )
    )


def is_light_bark(planes: ColorPlanes, thresholds: ColorRuleThresholds) -> np.ndarray:
    return (
        _within(
            planes.saturation,
            thresholds.light_bark_saturation_min,
            thresholds.light_bark_saturation_max,
        )
        & _within(planes.value, thresholds.light_bark_value_min, thresholds.light_bark_value_max)
        & _strictly_within(
            planes.blue_yellow,
            thresholds.light_bark_lab_b_min,
            thresholds.light_bark_lab_b_max,
        )
        & _strictly_within(
            planes.green_red,
            thresholds.light_bark_lab_a_min,
            thresholds.light_bark_lab_a_max,
        )
    )


def score_green_foliage(planes: ColorPlanes, thresholds: ColorRuleThresholds) -> np.ndarray:
    return np.minimum(1.0, planes.saturation / 100.0 * 0.7 + 0.3) * thresholds.green_score_ceiling


def score_brown_trunk(planes: ColorPlanes, thresholds: ColorRuleThresholds) -> np.ndarray:
    return np.full(planes.hue.shape, thresholds.brown_score, dtype=np.float64)


def score_dark_bark(planes: ColorPlanes, thresholds: ColorRuleThresholds) -> np.ndarray:
    return np.full(planes.hue.shape, thresholds.dark_bark_score, dtype=np.float64)


def score_light_bark(planes: ColorPlanes, thresholds: ColorRuleThresholds) -> np.ndarray:
    return np.full(planes.hue.shape, thresholds.light_bark_score, dtype=np.float64)


ColorPredicate = Callable[[ColorPlanes, ColorRuleThresholds], np.ndarray]

TREE_TISSUE_SCORING_TABLE: tuple[tuple[str, ColorPredicate, ColorPredicate], ...] = (
    ("green_foliage", is_green_foliage, score_green_foliage),
    ("brown_trunk", is_brown_trunk, score_brown_trunk),
    ("dark_bark", is_dark_bark, score_dark_bark),
    ("light_bark", is_light_bark, score_light_bark),
)


def is_trunk_colored(planes: ColorPlanes, thresholds: ColorRuleThresholds) -> np.ndarray:
    brown = (
        _within(planes.hue, thresholds.trunk_brown_hue_min, thresholds.trunk_brown_hue_max)
        & _within(
            planes.saturation,
            thresholds.trunk_brown_saturation_min,
            thresholds.trunk_brown_saturation_max,
        )
        & _within(planes.value, thresholds.trunk_brown_value_min, thresholds.trunk_brown_value_max)
        & (planes.green_red > thresholds.trunk_brown_lab_a_min)
        & (planes.blue_yellow > thresholds.trunk_brown_lab_b_min)
        & _strictly_within(
            planes.lightness,
            thresholds.trunk_brown_lightness_min,
            thresholds.trunk_brown_lightness_max,
        )
    )
    dark = (
        _within(planes.value, thresholds.trunk_dark_value_min, thresholds.trunk_dark_value_max)
        & _within(
            planes.saturation,
            thresholds.trunk_dark_saturation_min,
            thresholds.trunk_dark_saturation_max,
        )
        & (planes.green_red > thresholds.trunk_dark_lab_a_min)
        & (planes.blue_yellow > thresholds.trunk_dark_lab_b_min)
        & _strictly_within(
            planes.lightness,
            thresholds.trunk_dark_lightness_min,
            thresholds.trunk_dark_lightness_max,
        )
    )
    gray = (
        _within(
            planes.saturation,
            thresholds.trunk_gray_saturation_min,
            thresholds.trunk_gray_saturation_max,
        )
        & _within(planes.value, thresholds.trunk_gray_value_min, thresholds.trunk_gray_value_max)
        & _strictly_within(
            planes.green_red,
            thresholds.trunk_gray_lab_a_min,
            thresholds.trunk_gray_lab_a_max,
        )
        & _strictly_within(
            planes.blue_yellow,
            thresholds.trunk_gray_lab_b_min,
            thresholds.trunk_gray_lab_b_max,
        )
    )
    return brown | dark | gray


def is_validator_green(planes: ColorPlanes, thresholds: ColorRuleThresholds) -> np.ndarray:
    return (
        _within(planes.hue, thresholds.green_hue_min, thresholds.green_hue_max)
        & (planes.saturation > thresholds.green_saturation_min)
        & (planes.value > thresholds.validator_green_value_min)
    )


def is_validator_brown(planes: ColorPlanes, thresholds: ColorRuleThresholds) -> np.ndarray:
    return (
        _within(planes.hue, thresholds.brown_hue_min, thresholds.brown_hue_max)
        & _within(planes.saturation, thresholds.brown_saturation_min, thresholds.brown_saturation_max)
        & _within(planes.value, thresholds.brown_value_min, thresholds.brown_value_max)
    )


def is_validator_gray(planes: ColorPlanes, thresholds: ColorRuleThresholds) -> np.ndarray:
    return (planes.saturation < thresholds.validator_gray_saturation_max) & _strictly_within(
        planes.value,
        thresholds.validator_gray_value_min,
        thresholds.validator_gray_value_max,
    )
