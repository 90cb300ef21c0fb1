import math

import pytest

from trunk_girth.camera_model_builder import CameraParameters, build_camera_model
from trunk_girth.manual_measurement import (
    ManualMeasurementParameters,
    apply_species_soft_clamp,
    measure_from_points,
)
from trunk_girth.measurement_errors import ManualInputError
from trunk_girth.measurement_models import SpeciesDescriptor


def test_two_points_match_closed_form_pinhole() -> None:
    camera = build_camera_model(800, 600, CameraParameters())
    report = measure_from_points((180.0, 300.0), (220.0, 300.0), camera, ManualMeasurementParameters())

    focal_length_px = 400.0 / math.tan(math.radians(65.0 / 2.0))
    expected_diameter = 40.0 * 250.0 / focal_length_px
    fusion_result = report.fusion_result
    assert fusion_result.diameter_centimeters == pytest.approx(expected_diameter)
    assert fusion_result.circumference_centimeters == pytest.approx(math.pi * expected_diameter)
    assert fusion_result.confidence == 70.0
    assert fusion_result.dominant_method == "manual_points"
    assert report.segmentation_mode == "manual"
    assert report.trunk_bounds is None


def test_point_order_does_not_matter() -> None:
    camera = build_camera_model(800, 600, CameraParameters())
    parameters = ManualMeasurementParameters()
    forward = measure_from_points((180.0, 300.0), (220.0, 300.0), camera, parameters)
    backward = measure_from_points((220.0, 300.0), (180.0, 300.0), camera, parameters)
    assert forward.fusion_result.diameter_centimeters == backward.fusion_result.diameter_centimeters


def test_points_too_close_are_rejected() -> None:
    camera = build_camera_model(800, 600, CameraParameters())
    with pytest.raises(ManualInputError) as error_info:
        measure_from_points((200.0, 300.0), (209.0, 300.0), camera, ManualMeasurementParameters())
    assert error_info.value.category == "manual_input_error"


def test_custom_distance_overrides_default() -> None:
    camera = build_camera_model(800, 600, CameraParameters())
    report = measure_from_points(
        (100.0, 300.0),
        (200.0, 300.0),
        camera,
        ManualMeasurementParameters(),
        distance_centimeters=400.0,
    )
    assert report.fusion_result.diameter_centimeters == pytest.approx(100.0 * 400.0 / camera.focal_length_px)
    assert report.fusion_result.primary_distance_centimeters == 400.0


def test_species_soft_clamp_bounds_circumference() -> None:
    species = SpeciesDescriptor(
        name="Neem",
        minimum_circumference_centimeters=50.0,
        maximum_circumference_centimeters=250.0,
    )
    parameters = ManualMeasurementParameters()

    small = apply_species_soft_clamp(5.0, species, parameters)
    large = apply_species_soft_clamp(200.0, species, parameters)
    inside = apply_species_soft_clamp(30.0, species, parameters)

    assert math.pi * small == pytest.approx(35.0)
    assert math.pi * large == pytest.approx(325.0)
    assert inside == 30.0
    assert apply_species_soft_clamp(5.0, None, parameters) == 5.0


def test_diameter_is_clamped_to_plausible_range() -> None:
    camera = build_camera_model(800, 600, CameraParameters())
    report = measure_from_points(
        (0.0, 300.0),
        (790.0, 300.0),
        camera,
        ManualMeasurementParameters(),
        distance_centimeters=1000.0,
    )
    assert report.fusion_result.diameter_centimeters == 250.0
