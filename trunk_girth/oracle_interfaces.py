from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

import numpy as np

from trunk_girth.measurement_models import DetectedObject, RasterImage, SemanticSegmentation


class ObjectDetector(Protocol):
    def detect(
        self,
        image: RasterImage,
        minimum_score: float,
        maximum_results: int,
    ) -> list[DetectedObject]: ...


class SemanticSegmenter(Protocol):
    def segment(self, image: RasterImage) -> SemanticSegmentation: ...


def parse_detection_records(records: list) -> list[DetectedObject]:
    detections = []
    for record_index, record in enumerate(records):
        try:
            label = str(record["class"])
            score = float(record["score"])
            bbox = tuple(float(value) for value in record["bbox"])
        except (KeyError, TypeError) as error:
            raise ValueError(f"Detection record {record_index} is missing class/score/bbox: {record}") from error
        if len(bbox) != 4:
            raise ValueError(f"Detection record {record_index} bbox must be [x, y, width, height], got {bbox}")
        detections.append(DetectedObject(label=label, score=score, bbox=bbox))
    return detections


class PrecomputedObjectDetector:

    def __init__(self, detections_file_path: Path) -> None:
        detections_file_path = Path(detections_file_path)
        if not detections_file_path.exists():
            raise FileNotFoundError(f"Detections file not found: {detections_file_path}")
        with detections_file_path.open("r", encoding="utf-8") as file:
            records = json.load(file)
        if not isinstance(records, list):
            raise ValueError(f"Detections file must hold a JSON list: {detections_file_path}")
        self.detections_file_path = detections_file_path
        self.detections = parse_detection_records(records)

    def detect(
        self,
        image: RasterImage,
        minimum_score: float,
        maximum_results: int,
    ) -> list[DetectedObject]:
        kept = [detection for detection in self.detections if detection.score >= minimum_score]
        kept.sort(key=lambda detection: detection.score, reverse=True)
        return kept[: int(maximum_results)]


class PrecomputedSemanticSegmenter:

    def __init__(self, class_map_file_path: Path) -> None:
        class_map_file_path = Path(class_map_file_path)
        if not class_map_file_path.exists():
            raise FileNotFoundError(f"Segmentation class map not found: {class_map_file_path}")
        class_map = np.load(class_map_file_path, allow_pickle=False)
        if class_map.ndim != 2:
            raise ValueError(f"Class map must be two-dimensional, got shape {class_map.shape}")
        self.class_map_file_path = class_map_file_path
        self.class_map = np.asarray(class_map, dtype=np.int32)

    def segment(self, image: RasterImage) -> SemanticSegmentation:
        return SemanticSegmentation(
            class_map=self.class_map,
            width=int(self.class_map.shape[1]),
            height=int(self.class_map.shape[0]),
        )
