from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from trunk_girth.configuration_loader import require_parameter_range
from trunk_girth.measurement_models import DistanceHypothesis, FusionResult
from trunk_girth.progress_logging import log_progress

TREE_ONLY_METHODS = ("species_height", "bark_texture", "crown_allometry", "ground_plane")


@dataclass
class FusionParameters:
    iqr_multiplier: float = 1.5
    minimum_filtered_diameter_centimeters: float = 2.0
    maximum_filtered_diameter_centimeters: float = 300.0
    median_fallback_confidence: float = 30.0
    base_confidence: float = 50.0
    reference_bonus: float = 25.0
    ground_plane_bonus: float = 10.0
    species_height_bonus: float = 12.0
    bark_texture_bonus: float = 8.0
    crown_allometry_bonus: float = 10.0
    tree_only_agreement_bonus: float = 8.0
    tree_only_agreement_minimum_methods: int = 3
    tree_only_agreement_maximum_variation: float = 25.0
    variation_bonus_tiers: tuple = ((10.0, 15.0), (20.0, 8.0), (30.0, 3.0))
    no_smart_method_penalty: float = 15.0
    minimum_confidence: float = 15.0
    maximum_confidence: float = 95.0
    trunk_circularity_correction: float = 0.95
    bark_thickness_correction: float = 1.02
    minimum_diameter_centimeters: float = 3.0
    maximum_diameter_centimeters: float = 250.0
    minimum_plausible_circumference_centimeters: float = 5.0
    maximum_plausible_circumference_centimeters: float = 700.0

    def __post_init__(self) -> None:
        require_parameter_range(self, "iqr_multiplier", minimum=0.0)
        require_parameter_range(self, "minimum_diameter_centimeters", minimum=0.0)
        require_parameter_range(self, "maximum_diameter_centimeters", minimum=self.minimum_diameter_centimeters)
        require_parameter_range(self, "minimum_confidence", minimum=0.0, maximum=100.0)
        require_parameter_range(self, "maximum_confidence", minimum=self.minimum_confidence, maximum=100.0)
        require_parameter_range(self, "minimum_plausible_circumference_centimeters", minimum=0.0)
        require_parameter_range(
            self,
            "maximum_plausible_circumference_centimeters",
            minimum=self.minimum_plausible_circumference_centimeters,
        )


def compute_coefficient_of_variation(diameters) -> float:
    values = np.asarray(diameters, dtype=np.float64)
    if values.size == 0:
        return 100.0
    mean_value = float(np.mean(values))
    if mean_value <= 0:
        return 100.0
    return float(np.std(values)) / mean_value * 100.0


def filter_outliers_by_iqr(
    hypotheses: list[DistanceHypothesis],
    parameters: FusionParameters,
) -> list[DistanceHypothesis]:
    sorted_diameters = sorted(hypothesis.trunk_diameter_centimeters for hypothesis in hypotheses)
    count = len(sorted_diameters)
    first_quartile = sorted_diameters[math.floor(count * 0.25)]
    third_quartile = sorted_diameters[math.floor(count * 0.75)]
    interquartile_range = third_quartile - first_quartile
    lower_bound = max(
        float(parameters.minimum_filtered_diameter_centimeters),
        first_quartile - float(parameters.iqr_multiplier) * interquartile_range,
    )
    upper_bound = min(
        float(parameters.maximum_filtered_diameter_centimeters),
        third_quartile + float(parameters.iqr_multiplier) * interquartile_range,
    )
    return [
        hypothesis
        for hypothesis in hypotheses
        if lower_bound <= hypothesis.trunk_diameter_centimeters <= upper_bound
    ]


def apply_final_corrections(diameter_centimeters: float, parameters: FusionParameters) -> float:
    corrected_diameter = (
        diameter_centimeters
        * float(parameters.trunk_circularity_correction)
        * float(parameters.bark_thickness_correction)
    )
    return min(
        float(parameters.maximum_diameter_centimeters),
        max(float(parameters.minimum_diameter_centimeters), corrected_diameter),
    )


def score_fusion_confidence(
    survivors: list[DistanceHypothesis],
    coefficient_of_variation: float,
    parameters: FusionParameters,
) -> float:
    methods = {hypothesis.method for hypothesis in survivors}
    has_reference = any(method.startswith("reference_") for method in methods)
    has_ground_plane = "ground_plane" in methods
    has_species_height = "species_height" in methods
    has_bark_texture = "bark_texture" in methods
    has_crown_allometry = "crown_allometry" in methods

    confidence = float(parameters.base_confidence)
    if has_reference:
        confidence += float(parameters.reference_bonus)
    if has_ground_plane:
        confidence += float(parameters.ground_plane_bonus)
    if has_species_height:
        confidence += float(parameters.species_height_bonus)
    if has_bark_texture:
        confidence += float(parameters.bark_texture_bonus)
    if has_crown_allometry:
        confidence += float(parameters.crown_allometry_bonus)

    tree_only_diameters = [
        hypothesis.trunk_diameter_centimeters
        for hypothesis in survivors
        if hypothesis.method in TREE_ONLY_METHODS
    ]
    if len(tree_only_diameters) >= int(parameters.tree_only_agreement_minimum_methods):
        if compute_coefficient_of_variation(tree_only_diameters) < float(
            parameters.tree_only_agreement_maximum_variation
        ):
            confidence += float(parameters.tree_only_agreement_bonus)

    for maximum_variation, bonus in parameters.variation_bonus_tiers:
        if coefficient_of_variation < float(maximum_variation):
            confidence += float(bonus)
            break

    has_smart_method = (
        has_reference or has_ground_plane or has_species_height or has_bark_texture or has_crown_allometry
    )
    if not has_smart_method:
        confidence -= float(parameters.no_smart_method_penalty)

    return min(float(parameters.maximum_confidence), max(float(parameters.minimum_confidence), confidence))


def fuse_hypotheses(
    hypotheses: list[DistanceHypothesis],
    parameters: FusionParameters,
    enable_progress_prints: bool = False,
) -> FusionResult:
    if not hypotheses:
        raise ValueError("Cannot fuse an empty hypothesis list")

    all_hypotheses = tuple(hypotheses)
    survivors = filter_outliers_by_iqr(hypotheses, parameters)
    if not survivors:
        sorted_diameters = sorted(hypothesis.trunk_diameter_centimeters for hypothesis in hypotheses)
        median_diameter = sorted_diameters[len(sorted_diameters) // 2]
        final_diameter = apply_final_corrections(median_diameter, parameters)
        log_progress(
            enable_progress_prints,
            f"Fusion: all {len(hypotheses)} methods rejected as outliers; "
            f"median fallback diameter={final_diameter:.1f}cm",
        )
        return FusionResult(
            diameter_centimeters=final_diameter,
            circumference_centimeters=math.pi * final_diameter,
            confidence=float(parameters.median_fallback_confidence),
            dominant_method="median_fallback",
            coefficient_of_variation=compute_coefficient_of_variation(sorted_diameters),
            hypotheses=(),
            all_hypotheses=all_hypotheses,
            methods_disagreed=True,
            primary_distance_centimeters=None,
        )

    total_weight = 0.0
    weighted_sum = 0.0
    dominant_hypothesis = None
    dominant_weight = 0.0
    for hypothesis in survivors:
        effective_weight = hypothesis.effective_weight
        weighted_sum += hypothesis.trunk_diameter_centimeters * effective_weight
        total_weight += effective_weight
        if effective_weight > dominant_weight:
            dominant_weight = effective_weight
            dominant_hypothesis = hypothesis

    if total_weight > 0:
        fused_diameter = weighted_sum / total_weight
    else:
        fused_diameter = survivors[0].trunk_diameter_centimeters

    coefficient_of_variation = compute_coefficient_of_variation(
        [hypothesis.trunk_diameter_centimeters for hypothesis in survivors]
    )
    confidence = score_fusion_confidence(survivors, coefficient_of_variation, parameters)
    final_diameter = apply_final_corrections(fused_diameter, parameters)

    log_progress(
        enable_progress_prints,
        f"Fusion: kept {len(survivors)}/{len(hypotheses)} methods, "
        f"diameter={final_diameter:.1f}cm, circumference={math.pi * final_diameter:.1f}cm, "
        f"confidence={confidence:.0f}%, cov={coefficient_of_variation:.1f}%",
    )
    return FusionResult(
        diameter_centimeters=final_diameter,
        circumference_centimeters=math.pi * final_diameter,
        confidence=confidence,
        dominant_method=dominant_hypothesis.method if dominant_hypothesis is not None else "fusion",
        coefficient_of_variation=coefficient_of_variation,
        hypotheses=tuple(survivors),
        all_hypotheses=all_hypotheses,
        methods_disagreed=False,
        primary_distance_centimeters=None
        if dominant_hypothesis is None
        else dominant_hypothesis.distance_centimeters,
    )
