from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from trunk_girth.color_rules import (
    ColorRuleThresholds,
    is_validator_brown,
    is_validator_gray,
    is_validator_green,
)
from trunk_girth.color_space_converter import compute_color_planes
from trunk_girth.measurement_errors import ColorValidationError
from trunk_girth.measurement_models import RasterImage
from trunk_girth.raster_preprocessor import compute_local_variance


@dataclass
class ColorValidationParameters:
    large_image_width_threshold: int = 1000
    texture_sample_stride: int = 8
    texture_window_size: int = 5
    natural_texture_variance: float = 25.0
    strong_texture_variance: float = 35.0
    green_with_brown_minimum_percent: float = 4.0
    brown_with_green_minimum_percent: float = 3.0
    dominant_green_minimum_percent: float = 25.0
    textured_brown_minimum_percent: float = 15.0
    textured_brown_green_minimum_percent: float = 1.0
    balanced_tolerance_fraction: float = 0.10
    maximum_gray_percent: float = 40.0
    minimum_structural_signals: int = 2


@dataclass(frozen=True)
class ColorValidationResult:
    is_tree: bool
    green_percent: float
    brown_percent: float
    gray_percent: float
    texture_variance: float
    has_color_evidence: bool
    balanced_arrangement: bool
    low_gray_fraction: bool
    natural_texture: bool
    message: str = ""

    @property
    def structural_signal_count(self) -> int:
        return int(self.balanced_arrangement) + int(self.low_gray_fraction) + int(self.natural_texture)

    def to_record(self) -> dict:
        return {
            "is_tree": self.is_tree,
            "green_percent": round(self.green_percent, 2),
            "brown_percent": round(self.brown_percent, 2),
            "gray_percent": round(self.gray_percent, 2),
            "texture_variance": round(self.texture_variance, 2),
            "balanced_arrangement": self.balanced_arrangement,
            "low_gray_fraction": self.low_gray_fraction,
            "natural_texture": self.natural_texture,
        }


def _mean_sampled_texture_variance(
    grayscale: np.ndarray,
    brown_mask: np.ndarray,
    parameters: ColorValidationParameters,
) -> float:
    brown_rows, brown_columns = np.nonzero(brown_mask)
    if brown_rows.size == 0:
        return 0.0
    stride = max(1, int(parameters.texture_sample_stride))
    sampled_rows = brown_rows[::stride]
    sampled_columns = brown_columns[::stride]
    local_variance = compute_local_variance(grayscale, int(parameters.texture_window_size))
    return float(np.mean(local_variance[sampled_rows, sampled_columns]))


def _is_balanced_arrangement(
    green_mask: np.ndarray,
    brown_mask: np.ndarray,
    image_height: int,
    parameters: ColorValidationParameters,
) -> bool:
    green_rows = np.nonzero(green_mask)[0]
    brown_rows = np.nonzero(brown_mask)[0]
    if green_rows.size == 0:
        return False
    if brown_rows.size == 0:
        return True
    green_centroid_row = float(np.mean(green_rows))
    brown_centroid_row = float(np.mean(brown_rows))
    return green_centroid_row <= brown_centroid_row + float(parameters.balanced_tolerance_fraction) * image_height


def _build_failure_message(has_color_evidence: bool) -> str:
    if not has_color_evidence:
        return "No tree detected: ensure green leaves and a brown trunk are visible."
    return "Image does not look like a tree: colors are present but the scene lacks tree structure."


def validate_tree_colors(
    image: RasterImage,
    thresholds: ColorRuleThresholds,
    parameters: ColorValidationParameters,
) -> ColorValidationResult:
    step = 2 if image.width > int(parameters.large_image_width_threshold) else 1
    sampled_rgb = image.rgb[::step, ::step]
    planes = compute_color_planes(sampled_rgb)
    green_mask = is_validator_green(planes, thresholds)
    brown_mask = is_validator_brown(planes, thresholds)
    gray_mask = is_validator_gray(planes, thresholds)

    sampled_pixel_count = max(1, green_mask.size)
    green_percent = 100.0 * float(np.count_nonzero(green_mask)) / sampled_pixel_count
    brown_percent = 100.0 * float(np.count_nonzero(brown_mask)) / sampled_pixel_count
    gray_percent = 100.0 * float(np.count_nonzero(gray_mask)) / sampled_pixel_count

    grayscale = sampled_rgb.astype(np.float64).mean(axis=2)
    texture_variance = _mean_sampled_texture_variance(grayscale, brown_mask, parameters)
    natural_texture = texture_variance > float(parameters.natural_texture_variance)
    strong_texture = texture_variance > float(parameters.strong_texture_variance)

    has_color_evidence = (
        (
            green_percent > float(parameters.green_with_brown_minimum_percent)
            and brown_percent > float(parameters.brown_with_green_minimum_percent)
        )
        or green_percent > float(parameters.dominant_green_minimum_percent)
        or (
            brown_percent > float(parameters.textured_brown_minimum_percent)
            and strong_texture
            and green_percent > float(parameters.textured_brown_green_minimum_percent)
        )
    )

    balanced_arrangement = _is_balanced_arrangement(green_mask, brown_mask, green_mask.shape[0], parameters)
    low_gray_fraction = gray_percent < float(parameters.maximum_gray_percent)
    structural_signal_count = int(balanced_arrangement) + int(low_gray_fraction) + int(natural_texture)
    is_tree = has_color_evidence and structural_signal_count >= int(parameters.minimum_structural_signals)

    return ColorValidationResult(
        is_tree=is_tree,
        green_percent=green_percent,
        brown_percent=brown_percent,
        gray_percent=gray_percent,
        texture_variance=texture_variance,
        has_color_evidence=has_color_evidence,
        balanced_arrangement=balanced_arrangement,
        low_gray_fraction=low_gray_fraction,
        natural_texture=natural_texture,
        message="" if is_tree else _build_failure_message(has_color_evidence),
    )


def require_tree_colors(
    image: RasterImage,
    thresholds: ColorRuleThresholds,
    parameters: ColorValidationParameters,
) -> ColorValidationResult:
    result = validate_tree_colors(image, thresholds, parameters)
    if not result.is_tree:
        raise ColorValidationError(result.message, details=result.to_record())
    return result
