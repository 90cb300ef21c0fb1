from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from trunk_girth.color_rules import ColorRuleThresholds, is_green_foliage, is_trunk_colored
from trunk_girth.color_space_converter import compute_color_planes
from trunk_girth.measurement_errors import StructuralRejectionError
from trunk_girth.measurement_models import RasterImage, TrunkBounds


@dataclass
class StructuralValidationParameters:
    maximum_trunk_to_image_width_ratio: float = 0.30
    semantic_maximum_trunk_to_image_width_ratio: float = 0.50
    maximum_trunk_to_box_width_ratio: float = 0.60
    minimum_box_aspect_ratio: float = 0.6
    continuity_top_fraction: float = 0.30
    continuity_bottom_fraction: float = 0.85
    continuity_row_step: int = 3
    continuity_row_trunk_fraction: float = 0.30
    minimum_continuity_fraction: float = 0.35
    canopy_band_fraction: float = 0.35
    minimum_canopy_green_fraction: float = 0.05
    maximum_box_coverage_fraction: float = 0.85


@dataclass(frozen=True)
class StructuralCheck:
    name: str
    passed: bool
    reason: str
    measured_value: float

    def to_record(self) -> dict:
        return {
            "name": self.name,
            "passed": self.passed,
            "reason": self.reason,
            "measured_value": round(float(self.measured_value), 4),
        }


def _check_trunk_to_image_width(
    bounds: TrunkBounds,
    image_width: int,
    maximum_ratio: float,
) -> StructuralCheck:
    ratio = bounds.trunk_width_px / max(1, image_width)
    passed = ratio <= maximum_ratio
    return StructuralCheck(
        name="trunk_to_image_width",
        passed=passed,
        reason="trunk width is plausible for the frame"
        if passed
        else f"trunk spans {ratio * 100:.0f}% of the image width; step back from the tree",
        measured_value=ratio,
    )


def _check_trunk_to_box_width(bounds: TrunkBounds, maximum_ratio: float) -> StructuralCheck:
    ratio = bounds.trunk_width_px / max(1, bounds.width)
    passed = ratio <= maximum_ratio
    return StructuralCheck(
        name="trunk_to_box_width",
        passed=passed,
        reason="trunk is narrower than the tree crown"
        if passed
        else f"trunk covers {ratio * 100:.0f}% of the tree width; no crown around it",
        measured_value=ratio,
    )


def _check_box_aspect_ratio(bounds: TrunkBounds, minimum_ratio: float) -> StructuralCheck:
    aspect_ratio = bounds.height / max(1, bounds.width)
    passed = aspect_ratio >= minimum_ratio
    return StructuralCheck(
        name="box_aspect_ratio",
        passed=passed,
        reason="tree region is taller than wide"
        if passed
        else f"tree region is too wide (height/width={aspect_ratio:.2f})",
        measured_value=aspect_ratio,
    )


def _check_vertical_continuity(
    trunk_pixel_mask: np.ndarray,
    bounds: TrunkBounds,
    parameters: StructuralValidationParameters,
) -> StructuralCheck:
    height, width = trunk_pixel_mask.shape
    left_x = max(0, min(bounds.trunk_left_x, width - 1))
    right_x = max(left_x + 1, min(bounds.trunk_right_x, width))
    top_row = int(height * float(parameters.continuity_top_fraction))
    bottom_row = int(height * float(parameters.continuity_bottom_fraction))
    scanned_rows = range(top_row, bottom_row, max(1, int(parameters.continuity_row_step)))

    longest_run = 0
    current_run = 0
    scanned_row_count = 0
    for row_index in scanned_rows:
        scanned_row_count += 1
        row_fraction = float(np.mean(trunk_pixel_mask[row_index, left_x:right_x]))
        if row_fraction > float(parameters.continuity_row_trunk_fraction):
            current_run += 1
            longest_run = max(longest_run, current_run)
        else:
            current_run = 0

    continuity = longest_run / max(1, scanned_row_count)
    passed = continuity >= float(parameters.minimum_continuity_fraction)
    return StructuralCheck(
        name="vertical_continuity",
        passed=passed,
        reason="trunk runs continuously down the frame"
        if passed
        else f"no continuous trunk found (longest run covers {continuity * 100:.0f}% of rows)",
        measured_value=continuity,
    )


def _check_canopy_presence(
    green_pixel_mask: np.ndarray,
    bounds: TrunkBounds,
    parameters: StructuralValidationParameters,
) -> StructuralCheck:
    band_height = max(1, int(bounds.height * float(parameters.canopy_band_fraction)))
    canopy_band = green_pixel_mask[bounds.y : bounds.y + band_height, bounds.x : bounds.x + bounds.width]
    green_fraction = float(np.mean(canopy_band)) if canopy_band.size else 0.0
    passed = green_fraction >= float(parameters.minimum_canopy_green_fraction)
    return StructuralCheck(
        name="canopy_presence",
        passed=passed,
        reason="foliage found above the trunk"
        if passed
        else f"only {green_fraction * 100:.1f}% green in the upper tree region; include the crown",
        measured_value=green_fraction,
    )


def _check_box_coverage(
    bounds: TrunkBounds,
    image_width: int,
    image_height: int,
    maximum_fraction: float,
) -> StructuralCheck:
    width_fraction = bounds.width / max(1, image_width)
    height_fraction = bounds.height / max(1, image_height)
    passed = not (width_fraction > maximum_fraction and height_fraction > maximum_fraction)
    return StructuralCheck(
        name="box_coverage",
        passed=passed,
        reason="photo was taken from a usable distance"
        if passed
        else "tree fills the whole frame; step back so the crown and base are visible",
        measured_value=min(width_fraction, height_fraction),
    )


def run_structural_checks(
    image: RasterImage,
    bounds: TrunkBounds,
    thresholds: ColorRuleThresholds,
    parameters: StructuralValidationParameters,
    used_semantic_mask: bool = False,
) -> list[StructuralCheck]:
    if used_semantic_mask:
        return [
            _check_trunk_to_image_width(
                bounds,
                image.width,
                float(parameters.semantic_maximum_trunk_to_image_width_ratio),
            )
        ]

    planes = compute_color_planes(image.rgb)
    return [
        _check_trunk_to_image_width(
            bounds,
            image.width,
            float(parameters.maximum_trunk_to_image_width_ratio),
        ),
        _check_trunk_to_box_width(bounds, float(parameters.maximum_trunk_to_box_width_ratio)),
        _check_box_aspect_ratio(bounds, float(parameters.minimum_box_aspect_ratio)),
        _check_vertical_continuity(is_trunk_colored(planes, thresholds), bounds, parameters),
        _check_canopy_presence(is_green_foliage(planes, thresholds), bounds, parameters),
        _check_box_coverage(
            bounds,
            image.width,
            image.height,
            float(parameters.maximum_box_coverage_fraction),
        ),
    ]


def validate_trunk_structure(
    image: RasterImage,
    bounds: TrunkBounds,
    thresholds: ColorRuleThresholds,
    parameters: StructuralValidationParameters,
    used_semantic_mask: bool = False,
) -> list[StructuralCheck]:
    checks = run_structural_checks(image, bounds, thresholds, parameters, used_semantic_mask)
    for check in checks:
        if not check.passed:
            raise StructuralRejectionError(
                f"Structural check '{check.name}' failed: {check.reason}",
                details={"checks": [structural_check.to_record() for structural_check in checks]},
            )
    return checks
