from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True)
class RasterImage:
    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(
                f"RasterImage pixels must be an HxWx4 RGBA array, got shape {self.pixels.shape}"
            )
        if self.pixels.shape[0] != self.height or self.pixels.shape[1] != self.width:
            raise ValueError(
                "RasterImage size mismatch: "
                f"declared {self.width}x{self.height}, buffer {self.pixels.shape[1]}x{self.pixels.shape[0]}"
            )

    @classmethod
    def from_rgb_array(cls, rgb_array: np.ndarray) -> RasterImage:
        rgb_array = np.asarray(rgb_array)
        if rgb_array.ndim != 3 or rgb_array.shape[2] not in (3, 4):
            raise ValueError(f"Expected an HxWx3 or HxWx4 array, got shape {rgb_array.shape}")
        height, width = int(rgb_array.shape[0]), int(rgb_array.shape[1])
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :, :3] = np.clip(rgb_array[:, :, :3], 0, 255).astype(np.uint8)
        if rgb_array.shape[2] == 4:
            pixels[:, :, 3] = np.clip(rgb_array[:, :, 3], 0, 255).astype(np.uint8)
        else:
            pixels[:, :, 3] = 255
        return cls(width=width, height=height, pixels=pixels)

    @property
    def rgb(self) -> np.ndarray:
        return self.pixels[:, :, :3]

    def grayscale(self) -> np.ndarray:
        rgb = self.rgb.astype(np.float64)
        return (rgb[:, :, 0] + rgb[:, :, 1] + rgb[:, :, 2]) / 3.0

    def luminance(self) -> np.ndarray:
        rgb = self.rgb.astype(np.float64)
        return 0.299 * rgb[:, :, 0] + 0.587 * rgb[:, :, 1] + 0.114 * rgb[:, :, 2]


@dataclass(frozen=True)
class TrunkBounds:
    x: int
    y: int
    width: int
    height: int
    trunk_center_x: int
    trunk_left_x: int
    trunk_right_x: int
    trunk_width_px: float
    breast_height_y: int

    @property
    def trunk_base_y(self) -> int:
        return self.y + self.height

    def to_record(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "trunk_center_x": self.trunk_center_x,
            "trunk_left_x": self.trunk_left_x,
            "trunk_right_x": self.trunk_right_x,
            "trunk_width_px": round(float(self.trunk_width_px), 2),
            "breast_height_y": self.breast_height_y,
        }


@dataclass(frozen=True)
class ImageMetadata:
    focal_length_mm: float | None = None
    focal_length_35mm: float | None = None


@dataclass(frozen=True)
class CameraModel:
    focal_length_px: float
    horizontal_fov_degrees: float
    vertical_fov_degrees: float
    image_width: int
    image_height: int
    sensor_width_mm: float
    sensor_height_mm: float
    focal_length_mm: float | None = None
    metadata_available: bool = False

    @property
    def has_valid_focal_length(self) -> bool:
        return math.isfinite(self.focal_length_px) and self.focal_length_px > 0.0


@dataclass(frozen=True)
class DetectedObject:
    label: str
    score: float
    bbox: tuple[float, float, float, float]

    @property
    def width(self) -> float:
        return float(self.bbox[2])

    @property
    def height(self) -> float:
        return float(self.bbox[3])


@dataclass(frozen=True)
class SemanticSegmentation:
    class_map: np.ndarray
    width: int
    height: int


@dataclass(frozen=True)
class SpeciesDescriptor:
    name: str
    common_name: str = ""
    scientific_name: str = ""
    average_height_meters: float | None = None
    average_dbh_centimeters: float | None = None
    crown_allometry_a: float | None = None
    crown_allometry_b: float | None = None
    minimum_circumference_centimeters: float | None = None
    maximum_circumference_centimeters: float | None = None

    @property
    def display_name(self) -> str:
        return self.common_name or self.name


@dataclass(frozen=True)
class ManualReferenceSelection:
    reference_type: str
    known_width_centimeters: float | None = None


@dataclass(frozen=True)
class ReferenceObservation:
    label: str
    detection_score: float
    bbox: tuple[float, float, float, float]
    estimated_distance_centimeters: float
    used_dimension: str
    reliability: float


@dataclass(frozen=True)
class DistanceHypothesis:
    method: str
    trunk_diameter_centimeters: float
    distance_centimeters: float | None
    weight: float
    confidence: float
    details: str = ""

    @property
    def effective_weight(self) -> float:
        return self.weight * (self.confidence / 100.0)

    def to_record(self) -> dict:
        return {
            "method": self.method,
            "trunk_diameter_centimeters": round(float(self.trunk_diameter_centimeters), 3),
            "circumference_centimeters": round(math.pi * float(self.trunk_diameter_centimeters), 3),
            "distance_centimeters": None
            if self.distance_centimeters is None
            else round(float(self.distance_centimeters), 1),
            "weight": round(float(self.weight), 4),
            "confidence": round(float(self.confidence), 2),
            "details": self.details,
        }


@dataclass(frozen=True)
class FusionResult:
    diameter_centimeters: float
    circumference_centimeters: float
    confidence: float
    dominant_method: str
    coefficient_of_variation: float
    hypotheses: tuple[DistanceHypothesis, ...]
    all_hypotheses: tuple[DistanceHypothesis, ...]
    methods_disagreed: bool = False
    primary_distance_centimeters: float | None = None

    def has_method(self, method: str) -> bool:
        return any(hypothesis.method == method for hypothesis in self.hypotheses)

    @property
    def has_reference_object(self) -> bool:
        return any(hypothesis.method.startswith("reference_") for hypothesis in self.hypotheses)

    def to_record(self) -> dict:
        return {
            "diameter_centimeters": round(float(self.diameter_centimeters), 3),
            "circumference_centimeters": round(float(self.circumference_centimeters), 3),
            "confidence": round(float(self.confidence), 2),
            "dominant_method": self.dominant_method,
            "coefficient_of_variation": round(float(self.coefficient_of_variation), 3),
            "methods_disagreed": self.methods_disagreed,
            "primary_distance_centimeters": None
            if self.primary_distance_centimeters is None
            else round(float(self.primary_distance_centimeters), 1),
            "fused_methods": [hypothesis.to_record() for hypothesis in self.hypotheses],
            "all_methods": [hypothesis.to_record() for hypothesis in self.all_hypotheses],
        }


@dataclass(frozen=True)
class AccuracyTip:
    priority: str
    message: str


@dataclass(frozen=True)
class MeasurementReport:
    fusion_result: FusionResult
    trunk_bounds: TrunkBounds | None
    camera_model: CameraModel
    segmentation_mode: str
    accuracy_tips: tuple[AccuracyTip, ...] = ()
    warnings: tuple[str, ...] = ()
    references: tuple[ReferenceObservation, ...] = field(default_factory=tuple)
    species: SpeciesDescriptor | None = None
