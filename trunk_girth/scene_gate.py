from __future__ import annotations

from dataclasses import dataclass, field

from trunk_girth.measurement_errors import NotATreeError
from trunk_girth.measurement_models import DetectedObject


@dataclass
class SceneGateParameters:
    detection_minimum_score: float = 0.25
    maximum_detections: int = 20
    indoor_evidence_minimum_score: float = 0.5
    minimum_distinct_indoor_classes: int = 2
    hard_block_minimum_score: float = 0.40
    minimum_semantic_tree_fraction: float = 0.02
    indoor_only_classes: tuple[str, ...] = (
        "tv",
        "laptop",
        "mouse",
        "remote",
        "keyboard",
        "microwave",
        "oven",
        "toaster",
        "sink",
        "refrigerator",
        "bed",
        "couch",
        "toilet",
        "dining table",
        "book",
        "clock",
        "vase",
        "hair drier",
        "toothbrush",
        "cup",
        "wine glass",
        "fork",
        "knife",
        "spoon",
        "bowl",
    )
    hard_block_classes: tuple[str, ...] = (
        "tv",
        "laptop",
        "refrigerator",
        "microwave",
        "oven",
        "toaster",
        "bed",
        "couch",
        "toilet",
        "sink",
        "dining table",
        "pizza",
        "cake",
        "donut",
        "sandwich",
        "hot dog",
    )
    soft_warning_classes: tuple[str, ...] = (
        "person",
        "car",
        "bus",
        "truck",
        "motorcycle",
        "bicycle",
        "dog",
        "cat",
        "cow",
        "horse",
        "sheep",
        "bird",
    )


@dataclass(frozen=True)
class SceneGateOutcome:
    indoor_classes: tuple[str, ...]
    warnings: tuple[str, ...] = field(default_factory=tuple)


def evaluate_detected_objects(
    detections: list[DetectedObject],
    parameters: SceneGateParameters,
) -> SceneGateOutcome:
    indoor_only = set(parameters.indoor_only_classes)
    hard_block = set(parameters.hard_block_classes)
    soft_warning = set(parameters.soft_warning_classes)

    for detection in detections:
        if detection.label in hard_block and detection.score > float(parameters.hard_block_minimum_score):
            raise NotATreeError(
                f"Indoor scene: detected '{detection.label}' "
                f"({detection.score * 100:.0f}% confidence). Please photograph a tree outdoors.",
                details={"blocking_class": detection.label, "score": float(detection.score)},
            )

    indoor_classes = sorted(
        {
            detection.label
            for detection in detections
            if detection.label in indoor_only
            and detection.score >= float(parameters.indoor_evidence_minimum_score)
        }
    )
    if len(indoor_classes) >= int(parameters.minimum_distinct_indoor_classes):
        raise NotATreeError(
            f"Indoor scene: detected {', '.join(indoor_classes)}. Please photograph a tree outdoors.",
            details={"indoor_classes": indoor_classes},
        )

    warning_labels = sorted({detection.label for detection in detections if detection.label in soft_warning})
    warnings = tuple(
        f"Detected '{label}' in frame; make sure the tree trunk is the main subject."
        for label in warning_labels
    )
    return SceneGateOutcome(indoor_classes=tuple(indoor_classes), warnings=warnings)


def check_semantic_tree_fraction(semantic_tree_fraction: float, parameters: SceneGateParameters) -> None:
    if semantic_tree_fraction < float(parameters.minimum_semantic_tree_fraction):
        raise NotATreeError(
            f"Not a tree: only {semantic_tree_fraction * 100:.1f}% of the image is vegetation.",
            details={"semantic_tree_fraction": float(semantic_tree_fraction)},
        )
