import math

import pytest

from trunk_girth.camera_model_builder import CameraParameters, build_camera_model
from trunk_girth.measurement_models import ImageMetadata


def test_default_field_of_view_without_metadata() -> None:
    camera = build_camera_model(800, 600, CameraParameters())

    assert camera.focal_length_px == pytest.approx(400.0 / math.tan(math.radians(32.5)))
    assert camera.horizontal_fov_degrees == 65.0
    assert camera.vertical_fov_degrees == 50.0
    assert not camera.metadata_available
    assert camera.has_valid_focal_length


def test_focal_length_with_35mm_equivalent_derives_sensor() -> None:
    metadata = ImageMetadata(focal_length_mm=4.25, focal_length_35mm=26.0)
    camera = build_camera_model(4000, 3000, CameraParameters(), metadata)

    crop_factor = 26.0 / 4.25
    sensor_width = 36.0 / crop_factor
    assert camera.sensor_width_mm == pytest.approx(sensor_width)
    assert camera.focal_length_px == pytest.approx(4.25 * 4000 / sensor_width)
    assert camera.horizontal_fov_degrees == pytest.approx(
        math.degrees(2.0 * math.atan(sensor_width / (2.0 * 4.25)))
    )
    assert camera.metadata_available
    assert camera.focal_length_mm == 4.25


def test_focal_length_only_uses_default_sensor() -> None:
    camera = build_camera_model(1000, 750, CameraParameters(), ImageMetadata(focal_length_mm=4.0))
    assert camera.focal_length_px == pytest.approx(4.0 * 1000 / 4.8)


def test_35mm_equivalent_only() -> None:
    camera = build_camera_model(1200, 900, CameraParameters(), ImageMetadata(focal_length_35mm=28.0))
    assert camera.focal_length_px == pytest.approx(28.0 / 36.0 * 1200)
    assert camera.metadata_available


def test_invalid_metadata_values_are_ignored() -> None:
    camera = build_camera_model(
        800,
        600,
        CameraParameters(),
        ImageMetadata(focal_length_mm=0.0, focal_length_35mm=float("nan")),
    )
    assert not camera.metadata_available
    assert camera.focal_length_px == pytest.approx(400.0 / math.tan(math.radians(32.5)))


def test_degenerate_field_of_view_skips_focal_length() -> None:
    parameters = CameraParameters()
    parameters.default_horizontal_fov_degrees = 180.0
    camera = build_camera_model(400, 800, parameters)

    assert math.isnan(camera.focal_length_px)
    assert not camera.has_valid_focal_length


def test_out_of_range_field_of_view_is_rejected_on_construction() -> None:
    with pytest.raises(ValueError, match="default_horizontal_fov_degrees"):
        CameraParameters(default_horizontal_fov_degrees=0.0)


def test_focal_length_scales_with_decoded_width() -> None:
    metadata = ImageMetadata(focal_length_mm=4.0)
    full_size = build_camera_model(4000, 3000, CameraParameters(), metadata)
    downscaled = build_camera_model(1000, 750, CameraParameters(), metadata)
    assert full_size.focal_length_px == pytest.approx(4.0 * downscaled.focal_length_px)
