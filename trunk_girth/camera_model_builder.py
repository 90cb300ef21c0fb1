from __future__ import annotations

import math
from dataclasses import dataclass

from trunk_girth.configuration_loader import require_parameter_range
from trunk_girth.measurement_models import CameraModel, ImageMetadata

FULL_FRAME_SENSOR_WIDTH_MM = 36.0
FULL_FRAME_SENSOR_HEIGHT_MM = 24.0


@dataclass
class CameraParameters:
    default_sensor_width_mm: float = 4.8
    default_sensor_height_mm: float = 3.6
    default_horizontal_fov_degrees: float = 65.0
    default_vertical_fov_degrees: float = 50.0

    def __post_init__(self) -> None:
        require_parameter_range(self, "default_sensor_width_mm", minimum=0.0, exclusive=True)
        require_parameter_range(self, "default_sensor_height_mm", minimum=0.0, exclusive=True)
        require_parameter_range(
            self,
            "default_horizontal_fov_degrees",
            minimum=0.0,
            maximum=180.0,
            exclusive=True,
        )
        require_parameter_range(
            self,
            "default_vertical_fov_degrees",
            minimum=0.0,
            maximum=180.0,
            exclusive=True,
        )


def _field_of_view_degrees(sensor_size_mm: float, focal_length_mm: float) -> float:
    return math.degrees(2.0 * math.atan(sensor_size_mm / (2.0 * focal_length_mm)))


def _is_positive(value: float | None) -> bool:
    return value is not None and math.isfinite(value) and value > 0.0


def build_camera_model(
    image_width: int,
    image_height: int,
    parameters: CameraParameters,
    metadata: ImageMetadata | None = None,
) -> CameraModel:
    sensor_width_mm = float(parameters.default_sensor_width_mm)
    sensor_height_mm = float(parameters.default_sensor_height_mm)
    horizontal_fov_degrees = float(parameters.default_horizontal_fov_degrees)
    vertical_fov_degrees = float(parameters.default_vertical_fov_degrees)
    focal_length_mm = None
    focal_length_35mm = None

    if metadata is not None:
        if _is_positive(metadata.focal_length_mm):
            focal_length_mm = float(metadata.focal_length_mm)
        if _is_positive(metadata.focal_length_35mm):
            focal_length_35mm = float(metadata.focal_length_35mm)

    if focal_length_mm is not None:
        if focal_length_35mm is not None:
            crop_factor = focal_length_35mm / focal_length_mm
            sensor_width_mm = FULL_FRAME_SENSOR_WIDTH_MM / crop_factor
            sensor_height_mm = FULL_FRAME_SENSOR_HEIGHT_MM / crop_factor
        horizontal_fov_degrees = _field_of_view_degrees(sensor_width_mm, focal_length_mm)
        vertical_fov_degrees = _field_of_view_degrees(sensor_height_mm, focal_length_mm)
        focal_length_px = focal_length_mm * image_width / sensor_width_mm
    elif focal_length_35mm is not None:
        focal_length_px = focal_length_35mm / FULL_FRAME_SENSOR_WIDTH_MM * image_width
        horizontal_fov_degrees = _field_of_view_degrees(FULL_FRAME_SENSOR_WIDTH_MM, focal_length_35mm)
        vertical_fov_degrees = _field_of_view_degrees(FULL_FRAME_SENSOR_HEIGHT_MM, focal_length_35mm)
    elif 0.0 < horizontal_fov_degrees < 180.0:
        focal_length_px = (image_width / 2.0) / math.tan(math.radians(horizontal_fov_degrees) / 2.0)
    else:
        focal_length_px = math.nan

    return CameraModel(
        focal_length_px=float(focal_length_px),
        horizontal_fov_degrees=horizontal_fov_degrees,
        vertical_fov_degrees=vertical_fov_degrees,
        image_width=int(image_width),
        image_height=int(image_height),
        sensor_width_mm=sensor_width_mm,
        sensor_height_mm=sensor_height_mm,
        focal_length_mm=focal_length_mm,
        metadata_available=focal_length_mm is not None or focal_length_35mm is not None,
    )
