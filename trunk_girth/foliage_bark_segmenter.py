from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from trunk_girth.color_rules import (
    TREE_TISSUE_SCORING_TABLE,
    ColorRuleThresholds,
    is_brown_trunk,
    is_dark_bark,
    is_green_foliage,
)
from trunk_girth.color_space_converter import compute_color_planes
from trunk_girth.configuration_loader import require_parameter_range
from trunk_girth.measurement_models import RasterImage, SemanticSegmentation
from trunk_girth.raster_preprocessor import dilate_mask


@dataclass
class SegmentationParameters:
    blur_radius: int = 2
    vegetation_class_ids: tuple[int, ...] = (4, 9, 17, 72)
    semantic_primary_minimum_fraction: float = 0.04
    semantic_mask_dilation_radius: int = 3
    minimum_green_percent: float = 3.0
    minimum_trunk_percent: float = 2.0

    def __post_init__(self) -> None:
        require_parameter_range(self, "blur_radius", minimum=0)
        require_parameter_range(self, "semantic_mask_dilation_radius", minimum=0)
        require_parameter_range(self, "semantic_primary_minimum_fraction", minimum=0.0, maximum=1.0)
        require_parameter_range(self, "minimum_green_percent", minimum=0.0, maximum=100.0)
        require_parameter_range(self, "minimum_trunk_percent", minimum=0.0, maximum=100.0)


@dataclass(frozen=True)
class SegmentationResult:
    probability_mask: np.ndarray
    green_percent: float
    trunk_percent: float
    segmentation_mode: str
    semantic_tree_fraction: float | None = None

    @property
    def used_semantic_mask(self) -> bool:
        return self.segmentation_mode == "semantic"


def resample_class_map_nearest(segmentation: SemanticSegmentation, width: int, height: int) -> np.ndarray:
    class_map = np.asarray(segmentation.class_map)
    if class_map.shape == (height, width):
        return class_map
    source_height, source_width = class_map.shape
    row_index = np.minimum((np.arange(height) * source_height) // height, source_height - 1)
    column_index = np.minimum((np.arange(width) * source_width) // width, source_width - 1)
    return class_map[row_index[:, None], column_index[None, :]]


def compute_semantic_tree_fraction(
    segmentation: SemanticSegmentation,
    vegetation_class_ids,
) -> float:
    class_map = np.asarray(segmentation.class_map)
    if class_map.size == 0:
        return 0.0
    return float(np.mean(np.isin(class_map, list(vegetation_class_ids))))


def build_semantic_tree_mask(
    segmentation: SemanticSegmentation,
    width: int,
    height: int,
    vegetation_class_ids,
    dilation_radius: int,
) -> np.ndarray:
    class_map = resample_class_map_nearest(segmentation, width, height)
    tree_mask = np.isin(class_map, list(vegetation_class_ids)).astype(np.float64)
    return dilate_mask(tree_mask, dilation_radius)


def compute_color_rule_probability(
    image: RasterImage,
    thresholds: ColorRuleThresholds,
) -> tuple[np.ndarray, float, float]:
    planes = compute_color_planes(image.rgb)
    probability_mask = np.zeros((image.height, image.width), dtype=np.float64)
    for _, predicate, scorer in TREE_TISSUE_SCORING_TABLE:
        category_mask = predicate(planes, thresholds)
        if not np.any(category_mask):
            continue
        category_score = np.where(category_mask, scorer(planes, thresholds), 0.0)
        probability_mask = np.maximum(probability_mask, category_score)

    total_pixels = max(1, image.width * image.height)
    green_pixels = int(np.count_nonzero(is_green_foliage(planes, thresholds)))
    trunk_pixels = int(
        np.count_nonzero(is_brown_trunk(planes, thresholds) | is_dark_bark(planes, thresholds))
    )
    green_percent = 100.0 * green_pixels / total_pixels
    trunk_percent = 100.0 * trunk_pixels / total_pixels
    return probability_mask, green_percent, trunk_percent


def segment_tree_pixels(
    image: RasterImage,
    thresholds: ColorRuleThresholds,
    parameters: SegmentationParameters,
    semantic_segmentation: SemanticSegmentation | None = None,
) -> SegmentationResult:
    color_probability, green_percent, trunk_percent = compute_color_rule_probability(
        image,
        thresholds,
    )

    semantic_tree_fraction = None
    if semantic_segmentation is not None:
        semantic_tree_fraction = compute_semantic_tree_fraction(
            semantic_segmentation,
            parameters.vegetation_class_ids,
        )
        if semantic_tree_fraction >= float(parameters.semantic_primary_minimum_fraction):
            return SegmentationResult(
                probability_mask=build_semantic_tree_mask(
                    semantic_segmentation,
                    image.width,
                    image.height,
                    parameters.vegetation_class_ids,
                    int(parameters.semantic_mask_dilation_radius),
                ),
                green_percent=green_percent,
                trunk_percent=trunk_percent,
                segmentation_mode="semantic",
                semantic_tree_fraction=semantic_tree_fraction,
            )

    return SegmentationResult(
        probability_mask=color_probability,
        green_percent=green_percent,
        trunk_percent=trunk_percent,
        segmentation_mode="color_rules",
        semantic_tree_fraction=semantic_tree_fraction,
    )


def is_segmentation_empty(result: SegmentationResult, parameters: SegmentationParameters) -> bool:
    return result.green_percent < float(parameters.minimum_green_percent) and result.trunk_percent < float(
        parameters.minimum_trunk_percent
    )
