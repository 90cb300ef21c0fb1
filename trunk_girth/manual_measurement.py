from __future__ import annotations

import math
from dataclasses import dataclass

from trunk_girth.accuracy_tips import build_accuracy_tips
from trunk_girth.configuration_loader import require_parameter_range
from trunk_girth.measurement_errors import ManualInputError
from trunk_girth.measurement_models import (
    CameraModel,
    DistanceHypothesis,
    FusionResult,
    MeasurementReport,
    SpeciesDescriptor,
)


@dataclass
class ManualMeasurementParameters:
    minimum_point_separation_px: float = 10.0
    assumed_distance_centimeters: float = 250.0
    confidence: float = 70.0
    species_minimum_circumference_factor: float = 0.7
    species_maximum_circumference_factor: float = 1.3
    minimum_diameter_centimeters: float = 3.0
    maximum_diameter_centimeters: float = 250.0

    def __post_init__(self) -> None:
        require_parameter_range(self, "minimum_point_separation_px", minimum=0.0)
        require_parameter_range(self, "assumed_distance_centimeters", minimum=0.0, exclusive=True)
        require_parameter_range(self, "minimum_diameter_centimeters", minimum=0.0)
        require_parameter_range(self, "maximum_diameter_centimeters", minimum=self.minimum_diameter_centimeters)


def apply_species_soft_clamp(
    diameter_centimeters: float,
    species: SpeciesDescriptor | None,
    parameters: ManualMeasurementParameters,
) -> float:
    if species is None:
        return diameter_centimeters
    circumference = math.pi * diameter_centimeters
    if species.minimum_circumference_centimeters is not None:
        lower_circumference = species.minimum_circumference_centimeters * float(
            parameters.species_minimum_circumference_factor
        )
        if circumference < lower_circumference:
            return lower_circumference / math.pi
    if species.maximum_circumference_centimeters is not None:
        upper_circumference = species.maximum_circumference_centimeters * float(
            parameters.species_maximum_circumference_factor
        )
        if circumference > upper_circumference:
            return upper_circumference / math.pi
    return diameter_centimeters


def measure_from_points(
    left_point: tuple[float, float],
    right_point: tuple[float, float],
    camera: CameraModel,
    parameters: ManualMeasurementParameters,
    species: SpeciesDescriptor | None = None,
    distance_centimeters: float | None = None,
) -> MeasurementReport:
    trunk_width_px = abs(float(right_point[0]) - float(left_point[0]))
    if trunk_width_px < float(parameters.minimum_point_separation_px):
        raise ManualInputError(
            f"Points are only {trunk_width_px:.0f}px apart; tap both trunk edges "
            f"at least {parameters.minimum_point_separation_px:.0f}px apart.",
            details={"trunk_width_px": trunk_width_px},
        )
    if not camera.has_valid_focal_length:
        raise ValueError(f"Camera focal length must be positive and finite, got {camera.focal_length_px}")

    if distance_centimeters is None:
        distance_centimeters = float(parameters.assumed_distance_centimeters)
    diameter = trunk_width_px * distance_centimeters / camera.focal_length_px
    diameter = apply_species_soft_clamp(diameter, species, parameters)
    diameter = min(
        float(parameters.maximum_diameter_centimeters),
        max(float(parameters.minimum_diameter_centimeters), diameter),
    )

    hypothesis = DistanceHypothesis(
        method="manual_points",
        trunk_diameter_centimeters=diameter,
        distance_centimeters=distance_centimeters,
        weight=1.0,
        confidence=float(parameters.confidence),
        details=f"tapped edges {trunk_width_px:.0f}px apart at {distance_centimeters:.0f}cm",
    )
    fusion_result = FusionResult(
        diameter_centimeters=diameter,
        circumference_centimeters=math.pi * diameter,
        confidence=float(parameters.confidence),
        dominant_method="manual_points",
        coefficient_of_variation=0.0,
        hypotheses=(hypothesis,),
        all_hypotheses=(hypothesis,),
        primary_distance_centimeters=distance_centimeters,
    )
    return MeasurementReport(
        fusion_result=fusion_result,
        trunk_bounds=None,
        camera_model=camera,
        segmentation_mode="manual",
        accuracy_tips=tuple(build_accuracy_tips(fusion_result, camera)),
        species=species,
    )
