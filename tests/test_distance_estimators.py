import math

import numpy as np
import pytest

from trunk_girth.camera_model_builder import CameraParameters, build_camera_model
from trunk_girth.distance_estimators import (
    DistanceEstimationParameters,
    detect_manual_reference,
    estimate_distance_hypotheses,
    estimate_from_crown_allometry,
    estimate_from_fov_fallback,
    estimate_from_ground_plane,
    estimate_from_reference_objects,
    estimate_from_species_height,
    map_sharpness_to_distance,
    measure_bark_sharpness,
    observe_reference_objects,
    select_fov_fallback_distance,
)
from trunk_girth.measurement_models import (
    CameraModel,
    DetectedObject,
    ManualReferenceSelection,
    RasterImage,
    SpeciesDescriptor,
    TrunkBounds,
)

CORRECTION = 0.92 * 0.97


def _bounds(**overrides) -> TrunkBounds:
    values = {
        "x": 60,
        "y": 0,
        "width": 281,
        "height": 800,
        "trunk_center_x": 200,
        "trunk_left_x": 180,
        "trunk_right_x": 220,
        "trunk_width_px": 39.5,
        "breast_height_y": 520,
    }
    values.update(overrides)
    return TrunkBounds(**values)


@pytest.fixture
def camera() -> CameraModel:
    return build_camera_model(400, 800, CameraParameters())


def test_ground_plane_uses_camera_height(camera: CameraModel) -> None:
    hypothesis = estimate_from_ground_plane(_bounds(), camera, False, DistanceEstimationParameters())

    expected_distance = 137.0 * camera.focal_length_px / 400.0
    assert hypothesis.method == "ground_plane"
    assert hypothesis.distance_centimeters == pytest.approx(expected_distance)
    assert hypothesis.trunk_diameter_centimeters == pytest.approx(39.5 * 137.0 / 400.0 * CORRECTION)
    assert (hypothesis.weight, hypothesis.confidence) == (0.75, 72.0)

    with_references = estimate_from_ground_plane(_bounds(), camera, True, DistanceEstimationParameters())
    assert (with_references.weight, with_references.confidence) == (0.60, 65.0)


def test_ground_plane_needs_base_below_center(camera: CameraModel) -> None:
    assert estimate_from_ground_plane(_bounds(height=405), camera, False, DistanceEstimationParameters()) is None


def test_species_height_scales_visible_fraction(camera: CameraModel) -> None:
    species = SpeciesDescriptor(name="Neem", average_height_meters=15.0)
    hypothesis = estimate_from_species_height(
        _bounds(height=600),
        camera,
        species,
        False,
        DistanceEstimationParameters(),
    )

    expected_distance = 1500.0 * 0.80 * camera.focal_length_px / 600.0
    assert hypothesis.distance_centimeters == pytest.approx(expected_distance)
    assert hypothesis.trunk_diameter_centimeters == pytest.approx(39.5 * 1200.0 / 600.0 * CORRECTION)
    assert (hypothesis.weight, hypothesis.confidence) == (0.70, 68.0)


def test_species_height_skips_frame_filling_tree(camera: CameraModel) -> None:
    species = SpeciesDescriptor(name="Neem", average_height_meters=15.0)
    assert estimate_from_species_height(_bounds(), camera, species, False, DistanceEstimationParameters()) is None
    assert estimate_from_species_height(_bounds(height=600), camera, None, False, DistanceEstimationParameters()) is None


def test_bark_sharpness_lookup_table() -> None:
    parameters = DistanceEstimationParameters()
    assert map_sharpness_to_distance(25.0, parameters) == 120.0
    assert map_sharpness_to_distance(12.0, parameters) == 220.0
    assert map_sharpness_to_distance(2.5, parameters) == 450.0
    assert map_sharpness_to_distance(2.0, parameters) == 600.0


def test_uniform_bark_has_zero_sharpness(synthetic_tree_image: RasterImage) -> None:
    sharpness = measure_bark_sharpness(
        synthetic_tree_image,
        _bounds(y=300, height=500),
        DistanceEstimationParameters(),
    )
    assert sharpness == pytest.approx(0.0, abs=1e-9)


def test_crown_allometry_inverts_crown_to_trunk_ratio(camera: CameraModel) -> None:
    rgb = np.zeros((800, 400, 3), dtype=np.uint8)
    rgb[:, :] = (135, 190, 235)
    rgb[150:250, 141:260] = (60, 140, 50)
    species = SpeciesDescriptor(name="Test", crown_allometry_a=0.148, crown_allometry_b=0.651)

    hypothesis = estimate_from_crown_allometry(
        RasterImage.from_rgb_array(rgb),
        _bounds(),
        camera,
        species,
        False,
        DistanceEstimationParameters(),
    )

    ratio = 118 / 39.5
    expected_dbh = (ratio / 14.8) ** (1.0 / (0.651 - 1.0))
    assert hypothesis.method == "crown_allometry"
    assert hypothesis.trunk_diameter_centimeters == pytest.approx(expected_dbh)
    assert hypothesis.distance_centimeters == pytest.approx(expected_dbh * camera.focal_length_px / 39.5)


def test_crown_allometry_needs_species(synthetic_tree_image: RasterImage, camera: CameraModel) -> None:
    assert (
        estimate_from_crown_allometry(
            synthetic_tree_image,
            _bounds(),
            camera,
            None,
            False,
            DistanceEstimationParameters(),
        )
        is None
    )


def test_fov_fallback_distance_tiers(camera: CameraModel) -> None:
    parameters = DistanceEstimationParameters()
    assert select_fov_fallback_distance(0.75, parameters) == 180.0
    assert select_fov_fallback_distance(0.6, parameters) == 250.0
    assert select_fov_fallback_distance(0.4, parameters) == 350.0
    assert select_fov_fallback_distance(0.2, parameters) == 500.0

    hypothesis = estimate_from_fov_fallback(_bounds(), camera, parameters)
    assert hypothesis.method == "fov_fallback"
    assert hypothesis.trunk_diameter_centimeters == pytest.approx(
        2.0 * 180.0 * math.tan(math.radians(32.5)) * 39.5 / 400.0
    )
    assert (hypothesis.weight, hypothesis.confidence) == (0.20, 40.0)


def test_person_reference_averages_height_and_width(camera: CameraModel) -> None:
    detections = [
        DetectedObject(label="person", score=0.9, bbox=(250.0, 400.0, 80.0, 300.0)),
        DetectedObject(label="kite", score=0.9, bbox=(10.0, 10.0, 60.0, 60.0)),
        DetectedObject(label="bottle", score=0.30, bbox=(10.0, 10.0, 30.0, 60.0)),
    ]
    references = observe_reference_objects(detections, camera, DistanceEstimationParameters())

    assert len(references) == 1
    reference = references[0]
    from_height = 170.0 * camera.focal_length_px / 300.0
    from_width = 45.0 * camera.focal_length_px / 80.0
    assert reference.used_dimension == "both"
    assert reference.estimated_distance_centimeters == pytest.approx((from_height + from_width) / 2.0)
    assert reference.reliability == pytest.approx(0.85)

    hypotheses = estimate_from_reference_objects(_bounds(), camera, references, DistanceEstimationParameters())
    assert hypotheses[0].method == "reference_person"
    assert hypotheses[0].weight == pytest.approx(0.9 * 0.85)
    assert hypotheses[0].confidence == pytest.approx(90.0 * 0.85)


def test_manual_person_selection_boosts_reliability(camera: CameraModel) -> None:
    detections = [DetectedObject(label="person", score=0.9, bbox=(250.0, 400.0, 80.0, 300.0))]
    references = observe_reference_objects(
        detections,
        camera,
        DistanceEstimationParameters(),
        ManualReferenceSelection(reference_type="person"),
    )
    assert references[0].reliability == 1.0


def test_manual_credit_card_is_found_beside_trunk(camera: CameraModel) -> None:
    rgb = np.full((800, 400, 3), 100, dtype=np.uint8)
    rgb[390:410, 240:272] = 255
    reference = detect_manual_reference(
        RasterImage.from_rgb_array(rgb),
        _bounds(),
        camera,
        ManualReferenceSelection(reference_type="credit-card"),
        DistanceEstimationParameters(),
    )

    assert reference is not None
    assert reference.label == "manual_credit-card"
    assert reference.estimated_distance_centimeters == pytest.approx(8.56 * camera.focal_length_px / 31.0)
    assert reference.reliability == 0.85


def test_fov_fallback_is_always_present_even_without_focal_length(synthetic_tree_image: RasterImage) -> None:
    camera = CameraModel(
        focal_length_px=0.0,
        horizontal_fov_degrees=65.0,
        vertical_fov_degrees=50.0,
        image_width=400,
        image_height=800,
        sensor_width_mm=4.8,
        sensor_height_mm=3.6,
    )
    hypotheses = estimate_distance_hypotheses(
        synthetic_tree_image,
        _bounds(),
        camera,
        [],
        None,
        DistanceEstimationParameters(),
    )
    assert [hypothesis.method for hypothesis in hypotheses] == ["fov_fallback"]


def test_all_applicable_methods_run_on_synthetic_tree(
    synthetic_tree_image: RasterImage,
    camera: CameraModel,
) -> None:
    hypotheses = estimate_distance_hypotheses(
        synthetic_tree_image,
        _bounds(),
        camera,
        [],
        None,
        DistanceEstimationParameters(),
    )
    methods = [hypothesis.method for hypothesis in hypotheses]
    assert methods == ["ground_plane", "bark_texture", "fov_fallback"]
    for hypothesis in hypotheses:
        assert 0.0 <= hypothesis.weight <= 1.0
        assert 0.0 <= hypothesis.confidence <= 100.0
