from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np
from scipy import ndimage

from trunk_girth.measurement_models import (
    CameraModel,
    DetectedObject,
    DistanceHypothesis,
    ManualReferenceSelection,
    RasterImage,
    ReferenceObservation,
    SpeciesDescriptor,
    TrunkBounds,
)
from trunk_girth.progress_logging import log_progress


def _default_reference_object_sizes() -> dict:
    return {
        "person": {"height": 170.0, "width": 45.0},
        "bottle": {"height": 25.0, "width": 7.0},
        "cell phone": {"height": 15.0, "width": 7.5},
        "backpack": {"height": 45.0, "width": 30.0},
        "umbrella": {"height": 90.0, "width": 10.0},
        "handbag": {"height": 30.0, "width": 25.0},
        "suitcase": {"height": 55.0, "width": 40.0},
        "bicycle": {"height": 100.0, "width": 170.0},
        "motorcycle": {"height": 110.0, "width": 200.0},
        "car": {"height": 150.0, "width": 430.0},
        "bus": {"height": 300.0, "width": 1200.0},
        "truck": {"height": 250.0, "width": 600.0},
        "fire hydrant": {"height": 60.0, "width": 25.0},
        "bench": {"height": 80.0, "width": 150.0},
        "chair": {"height": 85.0, "width": 45.0},
        "potted plant": {"height": 40.0, "width": 25.0},
        "dog": {"height": 50.0, "width": 70.0},
        "cow": {"height": 140.0, "width": 200.0},
        "horse": {"height": 160.0, "width": 220.0},
        "sheep": {"height": 70.0, "width": 100.0},
        "elephant": {"height": 300.0, "width": 400.0},
    }


def _default_reference_reliabilities() -> dict:
    return {
        "person": 0.85,
        "car": 0.75,
        "bicycle": 0.80,
        "motorcycle": 0.70,
        "bottle": 0.90,
        "cell phone": 0.85,
        "fire hydrant": 0.95,
        "bench": 0.70,
        "cow": 0.60,
        "dog": 0.40,
    }


def _default_manual_reference_widths() -> dict:
    return {
        "credit-card": 8.56,
        "a4-paper": 21.0,
        "coin-1rs": 2.2,
        "coin-2rs": 2.5,
        "coin-5rs": 2.3,
        "coin-10rs": 2.7,
        "ruler-30cm": 30.0,
        "hand-span": 20.0,
    }


@dataclass
class DistanceEstimationParameters:
    distance_overestimate_correction: float = 0.92
    perspective_correction: float = 0.97

    reference_object_sizes_centimeters: dict = field(default_factory=_default_reference_object_sizes)
    reference_reliabilities: dict = field(default_factory=_default_reference_reliabilities)
    default_reference_reliability: float = 0.50
    reference_minimum_detection_score: float = 0.30
    reference_full_confidence_score: float = 0.5
    reference_minimum_dimension_px: float = 20.0
    reference_dimension_agreement_tolerance: float = 0.30
    reference_minimum_distance_centimeters: float = 50.0
    reference_maximum_distance_centimeters: float = 5000.0
    reference_maximum_count: int = 3
    reference_weight_scale: float = 0.9
    reference_confidence_scale: float = 90.0
    person_confirmation_boost: float = 1.3

    manual_reference_widths_centimeters: dict = field(default_factory=_default_manual_reference_widths)
    manual_reference_brightness_threshold: float = 180.0
    manual_reference_minimum_bright_pixels: int = 50
    manual_reference_minimum_width_px: int = 10
    manual_reference_minimum_height_px: int = 5
    manual_reference_search_half_width_px: float = 200.0
    manual_reference_search_height_px: float = 100.0
    manual_reference_minimum_distance_centimeters: float = 50.0
    manual_reference_maximum_distance_centimeters: float = 3000.0
    manual_reference_reliability: float = 0.85
    manual_reference_detection_confidence: float = 0.75

    camera_height_centimeters: float = 137.0
    ground_plane_minimum_offset_px: float = 10.0
    ground_plane_minimum_distance_centimeters: float = 80.0
    ground_plane_maximum_distance_centimeters: float = 2000.0
    ground_plane_weight: float = 0.75
    ground_plane_confidence: float = 72.0
    ground_plane_weight_with_references: float = 0.60
    ground_plane_confidence_with_references: float = 65.0

    species_height_minimum_fill: float = 0.15
    species_height_maximum_fill: float = 0.98
    species_height_visible_fractions: tuple = ((0.85, 0.95), (0.60, 0.80), (0.35, 0.65))
    species_height_default_visible_fraction: float = 0.50
    species_height_minimum_distance_centimeters: float = 100.0
    species_height_maximum_distance_centimeters: float = 3000.0
    species_height_weight: float = 0.70
    species_height_confidence: float = 68.0
    species_height_weight_with_references: float = 0.40
    species_height_confidence_with_references: float = 55.0

    bark_patch_trunk_width_fraction: float = 0.6
    bark_patch_minimum_width_px: int = 20
    bark_patch_box_height_fraction: float = 0.3
    bark_patch_minimum_height_px: int = 30
    bark_patch_top_fraction: float = 0.35
    bark_patch_minimum_size_px: int = 15
    bark_sharpness_normalization_width_px: float = 50.0
    bark_sharpness_distance_table: tuple = (
        (20.0, 120.0),
        (15.0, 170.0),
        (10.0, 220.0),
        (7.0, 280.0),
        (4.0, 350.0),
        (2.0, 450.0),
    )
    bark_far_distance_centimeters: float = 600.0
    bark_texture_minimum_distance_centimeters: float = 80.0
    bark_texture_maximum_distance_centimeters: float = 2000.0
    bark_texture_weight: float = 0.55
    bark_texture_confidence: float = 58.0
    bark_texture_weight_with_references: float = 0.25
    bark_texture_confidence_with_references: float = 40.0

    crown_row_fraction: float = 0.25
    crown_green_minimum: float = 40.0
    crown_green_to_red_ratio: float = 0.8
    crown_green_to_blue_ratio: float = 0.9
    crown_minimum_width_px: float = 20.0
    crown_minimum_trunk_width_px: float = 5.0
    crown_minimum_ratio: float = 2.0
    crown_maximum_ratio: float = 50.0
    crown_minimum_dbh_centimeters: float = 3.0
    crown_maximum_dbh_centimeters: float = 250.0
    crown_minimum_distance_centimeters: float = 50.0
    crown_maximum_distance_centimeters: float = 3000.0
    crown_allometry_weight: float = 0.60
    crown_allometry_confidence: float = 65.0
    crown_allometry_weight_with_references: float = 0.30
    crown_allometry_confidence_with_references: float = 50.0

    fov_fill_distance_tiers: tuple = ((0.70, 180.0), (0.50, 250.0), (0.30, 350.0))
    fov_far_distance_centimeters: float = 500.0
    fov_fallback_weight: float = 0.20
    fov_fallback_confidence: float = 40.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _pinhole_diameter(
    trunk_width_px: float,
    distance_centimeters: float,
    camera: CameraModel,
    parameters: DistanceEstimationParameters,
) -> float:
    diameter = trunk_width_px * distance_centimeters / camera.focal_length_px
    return (
        diameter
        * float(parameters.distance_overestimate_correction)
        * float(parameters.perspective_correction)
    )


def _reference_reliability(label: str, score: float, parameters: DistanceEstimationParameters) -> float:
    base_reliability = float(
        parameters.reference_reliabilities.get(label, parameters.default_reference_reliability)
    )
    return base_reliability * min(1.0, score / float(parameters.reference_full_confidence_score))


def observe_reference_objects(
    detections: list[DetectedObject],
    camera: CameraModel,
    parameters: DistanceEstimationParameters,
    manual_selection: ManualReferenceSelection | None = None,
) -> list[ReferenceObservation]:
    if not camera.has_valid_focal_length:
        return []

    observations = []
    minimum_dimension = float(parameters.reference_minimum_dimension_px)
    for detection in detections:
        known_size = parameters.reference_object_sizes_centimeters.get(detection.label)
        if known_size is None or detection.score <= float(parameters.reference_minimum_detection_score):
            continue

        distance_centimeters = None
        used_dimension = ""
        if known_size.get("height") and detection.height > minimum_dimension:
            distance_centimeters = float(known_size["height"]) * camera.focal_length_px / detection.height
            used_dimension = "height"
        if known_size.get("width") and detection.width > minimum_dimension:
            distance_from_width = float(known_size["width"]) * camera.focal_length_px / detection.width
            if distance_centimeters is None:
                distance_centimeters = distance_from_width
                used_dimension = "width"
            elif abs(distance_from_width - distance_centimeters) < distance_centimeters * float(
                parameters.reference_dimension_agreement_tolerance
            ):
                distance_centimeters = (distance_centimeters + distance_from_width) / 2.0
                used_dimension = "both"

        if distance_centimeters is None:
            continue
        if not (
            float(parameters.reference_minimum_distance_centimeters)
            < distance_centimeters
            < float(parameters.reference_maximum_distance_centimeters)
        ):
            continue

        reliability = _reference_reliability(detection.label, detection.score, parameters)
        if (
            manual_selection is not None
            and manual_selection.reference_type == "person"
            and detection.label == "person"
        ):
            reliability = min(1.0, reliability * float(parameters.person_confirmation_boost))

        observations.append(
            ReferenceObservation(
                label=detection.label,
                detection_score=float(detection.score),
                bbox=tuple(float(value) for value in detection.bbox),
                estimated_distance_centimeters=distance_centimeters,
                used_dimension=used_dimension,
                reliability=reliability,
            )
        )
    return observations


def resolve_manual_reference_width(
    selection: ManualReferenceSelection,
    parameters: DistanceEstimationParameters,
) -> float | None:
    if selection.known_width_centimeters is not None and selection.known_width_centimeters > 0:
        return float(selection.known_width_centimeters)
    known_width = parameters.manual_reference_widths_centimeters.get(selection.reference_type)
    return None if known_width is None else float(known_width)


def detect_manual_reference(
    image: RasterImage,
    bounds: TrunkBounds,
    camera: CameraModel,
    selection: ManualReferenceSelection,
    parameters: DistanceEstimationParameters,
) -> ReferenceObservation | None:
    if selection.reference_type == "person" or not camera.has_valid_focal_length:
        return None
    known_width_centimeters = resolve_manual_reference_width(selection, parameters)
    if known_width_centimeters is None:
        return None

    breast_y = bounds.y + bounds.height * 0.5
    search_half_width = min(float(parameters.manual_reference_search_half_width_px), image.width * 0.3)
    search_height = min(float(parameters.manual_reference_search_height_px), image.height * 0.15)
    region_x = max(0, _round_half_up(bounds.trunk_center_x - search_half_width))
    region_y = max(0, _round_half_up(breast_y - search_height / 2.0))
    region_width = min(_round_half_up(search_half_width * 2.0), image.width - region_x)
    region_height = min(_round_half_up(search_height), image.height - region_y)
    if region_width <= 0 or region_height <= 0:
        return None

    region = image.grayscale()[region_y : region_y + region_height, region_x : region_x + region_width]
    bright_rows, bright_columns = np.nonzero(region > float(parameters.manual_reference_brightness_threshold))
    if bright_rows.size < int(parameters.manual_reference_minimum_bright_pixels):
        return None

    reference_width_px = int(bright_columns.max() - bright_columns.min())
    reference_height_px = int(bright_rows.max() - bright_rows.min())
    if reference_width_px < int(parameters.manual_reference_minimum_width_px):
        return None
    if reference_height_px < int(parameters.manual_reference_minimum_height_px):
        return None

    aspect_ratio = reference_width_px / reference_height_px
    if selection.reference_type.startswith("coin") and not 0.5 <= aspect_ratio <= 2.0:
        return None
    if selection.reference_type == "credit-card" and not 1.0 <= aspect_ratio <= 2.5:
        return None

    distance_centimeters = known_width_centimeters * camera.focal_length_px / reference_width_px
    if not (
        float(parameters.manual_reference_minimum_distance_centimeters)
        <= distance_centimeters
        <= float(parameters.manual_reference_maximum_distance_centimeters)
    ):
        return None

    return ReferenceObservation(
        label=f"manual_{selection.reference_type}",
        detection_score=float(parameters.manual_reference_detection_confidence),
        bbox=(
            float(region_x + bright_columns.min()),
            float(region_y + bright_rows.min()),
            float(reference_width_px),
            float(reference_height_px),
        ),
        estimated_distance_centimeters=distance_centimeters,
        used_dimension="width",
        reliability=float(parameters.manual_reference_reliability),
    )


def estimate_from_reference_objects(
    bounds: TrunkBounds,
    camera: CameraModel,
    references: list[ReferenceObservation],
    parameters: DistanceEstimationParameters,
) -> list[DistanceHypothesis]:
    if not camera.has_valid_focal_length:
        return []
    ranked_references = sorted(references, key=lambda reference: reference.reliability, reverse=True)
    hypotheses = []
    for reference in ranked_references[: int(parameters.reference_maximum_count)]:
        hypotheses.append(
            DistanceHypothesis(
                method=f"reference_{reference.label.replace(' ', '_')}",
                trunk_diameter_centimeters=_pinhole_diameter(
                    bounds.trunk_width_px,
                    reference.estimated_distance_centimeters,
                    camera,
                    parameters,
                ),
                distance_centimeters=reference.estimated_distance_centimeters,
                weight=reference.reliability * float(parameters.reference_weight_scale),
                confidence=reference.reliability * float(parameters.reference_confidence_scale),
                details=(
                    f"{reference.label} ({reference.detection_score * 100:.0f}%) "
                    f"at {reference.estimated_distance_centimeters:.0f}cm"
                ),
            )
        )
    return hypotheses


def estimate_ground_plane_distance(
    trunk_base_y: float,
    camera: CameraModel,
    parameters: DistanceEstimationParameters,
) -> float | None:
    pixels_below_center = trunk_base_y - camera.image_height / 2.0
    if pixels_below_center <= float(parameters.ground_plane_minimum_offset_px):
        return None
    return float(parameters.camera_height_centimeters) * camera.focal_length_px / pixels_below_center


def estimate_from_ground_plane(
    bounds: TrunkBounds,
    camera: CameraModel,
    has_references: bool,
    parameters: DistanceEstimationParameters,
) -> DistanceHypothesis | None:
    if not camera.has_valid_focal_length:
        return None
    distance_centimeters = estimate_ground_plane_distance(bounds.trunk_base_y, camera, parameters)
    if distance_centimeters is None:
        return None
    if not (
        float(parameters.ground_plane_minimum_distance_centimeters)
        < distance_centimeters
        < float(parameters.ground_plane_maximum_distance_centimeters)
    ):
        return None
    return DistanceHypothesis(
        method="ground_plane",
        trunk_diameter_centimeters=_pinhole_diameter(
            bounds.trunk_width_px,
            distance_centimeters,
            camera,
            parameters,
        ),
        distance_centimeters=distance_centimeters,
        weight=float(
            parameters.ground_plane_weight_with_references if has_references else parameters.ground_plane_weight
        ),
        confidence=float(
            parameters.ground_plane_confidence_with_references
            if has_references
            else parameters.ground_plane_confidence
        ),
        details=f"ground plane geometry, trunk base row {bounds.trunk_base_y}",
    )


def _visible_height_fraction(fill_ratio: float, parameters: DistanceEstimationParameters) -> float:
    for minimum_fill, visible_fraction in parameters.species_height_visible_fractions:
        if fill_ratio > float(minimum_fill):
            return float(visible_fraction)
    return float(parameters.species_height_default_visible_fraction)


def estimate_from_species_height(
    bounds: TrunkBounds,
    camera: CameraModel,
    species: SpeciesDescriptor | None,
    has_references: bool,
    parameters: DistanceEstimationParameters,
) -> DistanceHypothesis | None:
    if species is None or not species.average_height_meters or not camera.has_valid_focal_length:
        return None
    fill_ratio = bounds.height / camera.image_height
    if not (
        float(parameters.species_height_minimum_fill)
        < fill_ratio
        < float(parameters.species_height_maximum_fill)
    ):
        return None

    visible_fraction = _visible_height_fraction(fill_ratio, parameters)
    visible_height_centimeters = species.average_height_meters * 100.0 * visible_fraction
    distance_centimeters = visible_height_centimeters * camera.focal_length_px / bounds.height
    if not (
        float(parameters.species_height_minimum_distance_centimeters)
        < distance_centimeters
        < float(parameters.species_height_maximum_distance_centimeters)
    ):
        return None
    return DistanceHypothesis(
        method="species_height",
        trunk_diameter_centimeters=_pinhole_diameter(
            bounds.trunk_width_px,
            distance_centimeters,
            camera,
            parameters,
        ),
        distance_centimeters=distance_centimeters,
        weight=float(
            parameters.species_height_weight_with_references
            if has_references
            else parameters.species_height_weight
        ),
        confidence=float(
            parameters.species_height_confidence_with_references
            if has_references
            else parameters.species_height_confidence
        ),
        details=(
            f"{species.display_name} average height {species.average_height_meters:g}m, "
            f"visible {visible_fraction * 100:.0f}%"
        ),
    )


def measure_bark_sharpness(
    image: RasterImage,
    bounds: TrunkBounds,
    parameters: DistanceEstimationParameters,
) -> float | None:
    sample_width = max(
        int(parameters.bark_patch_minimum_width_px),
        _round_half_up(bounds.trunk_width_px * float(parameters.bark_patch_trunk_width_fraction)),
    )
    sample_height = max(
        int(parameters.bark_patch_minimum_height_px),
        _round_half_up(bounds.height * float(parameters.bark_patch_box_height_fraction)),
    )
    patch_x = max(0, _round_half_up(bounds.trunk_center_x - sample_width / 2.0))
    patch_y = max(0, _round_half_up(bounds.y + bounds.height * float(parameters.bark_patch_top_fraction)))
    patch_width = min(sample_width, image.width - patch_x)
    patch_height = min(sample_height, image.height - patch_y)
    minimum_size = int(parameters.bark_patch_minimum_size_px)
    if patch_width < minimum_size or patch_height < minimum_size:
        return None

    patch = image.luminance()[patch_y : patch_y + patch_height, patch_x : patch_x + patch_width]
    laplacian = ndimage.laplace(patch)[1:-1, 1:-1]
    mean_absolute = float(np.mean(np.abs(laplacian)))
    mean_square = float(np.mean(laplacian**2))
    return math.sqrt(max(0.0, mean_square - mean_absolute**2))


def map_sharpness_to_distance(normalized_sharpness: float, parameters: DistanceEstimationParameters) -> float:
    for minimum_sharpness, distance_centimeters in parameters.bark_sharpness_distance_table:
        if normalized_sharpness > float(minimum_sharpness):
            return float(distance_centimeters)
    return float(parameters.bark_far_distance_centimeters)


def estimate_from_bark_texture(
    image: RasterImage,
    bounds: TrunkBounds,
    camera: CameraModel,
    has_references: bool,
    parameters: DistanceEstimationParameters,
) -> DistanceHypothesis | None:
    if not camera.has_valid_focal_length or bounds.trunk_width_px <= 0:
        return None
    sharpness = measure_bark_sharpness(image, bounds, parameters)
    if sharpness is None:
        return None
    normalized_sharpness = sharpness / (
        bounds.trunk_width_px / float(parameters.bark_sharpness_normalization_width_px)
    )
    distance_centimeters = map_sharpness_to_distance(normalized_sharpness, parameters)
    if not (
        float(parameters.bark_texture_minimum_distance_centimeters)
        < distance_centimeters
        < float(parameters.bark_texture_maximum_distance_centimeters)
    ):
        return None
    return DistanceHypothesis(
        method="bark_texture",
        trunk_diameter_centimeters=_pinhole_diameter(
            bounds.trunk_width_px,
            distance_centimeters,
            camera,
            parameters,
        ),
        distance_centimeters=distance_centimeters,
        weight=float(
            parameters.bark_texture_weight_with_references if has_references else parameters.bark_texture_weight
        ),
        confidence=float(
            parameters.bark_texture_confidence_with_references
            if has_references
            else parameters.bark_texture_confidence
        ),
        details=f"bark sharpness {sharpness:.2f} (normalized {normalized_sharpness:.2f})",
    )


def measure_crown_width(image: RasterImage, bounds: TrunkBounds, parameters: DistanceEstimationParameters) -> int:
    crown_y = _round_half_up(bounds.y + bounds.height * float(parameters.crown_row_fraction))
    crown_y = min(image.height - 1, max(0, crown_y))
    row = image.rgb[crown_y].astype(np.float64)
    red, green, blue = row[:, 0], row[:, 1], row[:, 2]
    canopy_columns = np.nonzero(
        (green > float(parameters.crown_green_minimum))
        & (green > red * float(parameters.crown_green_to_red_ratio))
        & (green > blue * float(parameters.crown_green_to_blue_ratio))
    )[0]
    if canopy_columns.size == 0:
        return 0
    return int(canopy_columns[-1] - canopy_columns[0])


def estimate_from_crown_allometry(
    image: RasterImage,
    bounds: TrunkBounds,
    camera: CameraModel,
    species: SpeciesDescriptor | None,
    has_references: bool,
    parameters: DistanceEstimationParameters,
) -> DistanceHypothesis | None:
    if species is None or not camera.has_valid_focal_length:
        return None
    crown_width_px = measure_crown_width(image, bounds, parameters)
    if crown_width_px < float(parameters.crown_minimum_width_px):
        return None
    if bounds.trunk_width_px < float(parameters.crown_minimum_trunk_width_px):
        return None

    crown_to_trunk_ratio = crown_width_px / bounds.trunk_width_px
    if not (
        float(parameters.crown_minimum_ratio)
        <= crown_to_trunk_ratio
        <= float(parameters.crown_maximum_ratio)
    ):
        return None

    allometry_a = species.crown_allometry_a if species.crown_allometry_a is not None else 0.148
    allometry_b = species.crown_allometry_b if species.crown_allometry_b is not None else 0.651
    # crown(m) = a * DBH(cm)^b and crown/trunk = crown(m) * 100 / DBH(cm)
    allometry_base = crown_to_trunk_ratio / (100.0 * allometry_a)
    if allometry_base <= 0 or allometry_b == 1.0:
        return None
    estimated_dbh = allometry_base ** (1.0 / (allometry_b - 1.0))
    if not math.isfinite(estimated_dbh) or not (
        float(parameters.crown_minimum_dbh_centimeters)
        <= estimated_dbh
        <= float(parameters.crown_maximum_dbh_centimeters)
    ):
        return None

    distance_centimeters = estimated_dbh * camera.focal_length_px / bounds.trunk_width_px
    if not (
        float(parameters.crown_minimum_distance_centimeters)
        <= distance_centimeters
        <= float(parameters.crown_maximum_distance_centimeters)
    ):
        return None
    return DistanceHypothesis(
        method="crown_allometry",
        trunk_diameter_centimeters=estimated_dbh,
        distance_centimeters=distance_centimeters,
        weight=float(
            parameters.crown_allometry_weight_with_references
            if has_references
            else parameters.crown_allometry_weight
        ),
        confidence=float(
            parameters.crown_allometry_confidence_with_references
            if has_references
            else parameters.crown_allometry_confidence
        ),
        details=(
            f"crown {crown_width_px}px, crown/trunk ratio {crown_to_trunk_ratio:.1f}, "
            f"a={allometry_a:g} b={allometry_b:g}"
        ),
    )


def select_fov_fallback_distance(fill_ratio: float, parameters: DistanceEstimationParameters) -> float:
    for minimum_fill, distance_centimeters in parameters.fov_fill_distance_tiers:
        if fill_ratio > float(minimum_fill):
            return float(distance_centimeters)
    return float(parameters.fov_far_distance_centimeters)


def estimate_from_fov_fallback(
    bounds: TrunkBounds,
    camera: CameraModel,
    parameters: DistanceEstimationParameters,
) -> DistanceHypothesis:
    fill_ratio = bounds.height / camera.image_height
    distance_centimeters = select_fov_fallback_distance(fill_ratio, parameters)
    visible_width_centimeters = 2.0 * distance_centimeters * math.tan(
        math.radians(camera.horizontal_fov_degrees) / 2.0
    )
    return DistanceHypothesis(
        method="fov_fallback",
        trunk_diameter_centimeters=visible_width_centimeters * bounds.trunk_width_px / camera.image_width,
        distance_centimeters=distance_centimeters,
        weight=float(parameters.fov_fallback_weight),
        confidence=float(parameters.fov_fallback_confidence),
        details=f"assumed {distance_centimeters:.0f}cm from tree fill {fill_ratio * 100:.0f}%",
    )


def estimate_distance_hypotheses(
    image: RasterImage,
    bounds: TrunkBounds,
    camera: CameraModel,
    references: list[ReferenceObservation],
    species: SpeciesDescriptor | None,
    parameters: DistanceEstimationParameters,
    enable_progress_prints: bool = False,
) -> list[DistanceHypothesis]:
    has_references = len(references) > 0
    if not camera.has_valid_focal_length:
        log_progress(
            enable_progress_prints,
            "Focal length unavailable; only the FOV fallback can run",
        )

    hypotheses = estimate_from_reference_objects(bounds, camera, references, parameters)
    optional_hypotheses = (
        estimate_from_ground_plane(bounds, camera, has_references, parameters),
        estimate_from_species_height(bounds, camera, species, has_references, parameters),
        estimate_from_bark_texture(image, bounds, camera, has_references, parameters),
        estimate_from_crown_allometry(image, bounds, camera, species, has_references, parameters),
    )
    hypotheses.extend(hypothesis for hypothesis in optional_hypotheses if hypothesis is not None)
    hypotheses.append(estimate_from_fov_fallback(bounds, camera, parameters))

    for hypothesis in hypotheses:
        distance_text = (
            "n/a" if hypothesis.distance_centimeters is None else f"{hypothesis.distance_centimeters:.0f}cm"
        )
        log_progress(
            enable_progress_prints,
            f"Hypothesis {hypothesis.method}: diameter={hypothesis.trunk_diameter_centimeters:.1f}cm, "
            f"distance={distance_text}, weight={hypothesis.weight:.2f}, "
            f"confidence={hypothesis.confidence:.0f}",
        )
    return hypotheses
