from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from trunk_girth.accuracy_tips import build_accuracy_tips
from trunk_girth.camera_model_builder import CameraParameters, build_camera_model
from trunk_girth.carbon_stock_estimator import CarbonStockParameters, estimate_carbon_stock
from trunk_girth.color_rules import ColorRuleThresholds
from trunk_girth.configuration_loader import load_configuration, load_parameters
from trunk_girth.distance_estimators import (
    DistanceEstimationParameters,
    detect_manual_reference,
    estimate_distance_hypotheses,
    observe_reference_objects,
)
from trunk_girth.foliage_bark_segmenter import (
    SegmentationParameters,
    is_segmentation_empty,
    segment_tree_pixels,
)
from trunk_girth.hypothesis_fusion import FusionParameters, fuse_hypotheses
from trunk_girth.image_reader import load_raster_image, read_image_metadata
from trunk_girth.manual_measurement import ManualMeasurementParameters, measure_from_points
from trunk_girth.measurement_errors import (
    ImplausibleResultError,
    SegmentationEmptyError,
    TrunkNotFoundError,
)
from trunk_girth.measurement_models import (
    ImageMetadata,
    ManualReferenceSelection,
    MeasurementReport,
    RasterImage,
    SpeciesDescriptor,
)
from trunk_girth.oracle_interfaces import (
    ObjectDetector,
    PrecomputedObjectDetector,
    PrecomputedSemanticSegmenter,
    SemanticSegmenter,
)
from trunk_girth.progress_logging import log_progress
from trunk_girth.raster_preprocessor import gaussian_blur
from trunk_girth.result_outputs import (
    build_output_payload,
    create_run_directory,
    save_measurement_overlay_png,
    write_output_json,
)
from trunk_girth.scene_gate import (
    SceneGateParameters,
    check_semantic_tree_fraction,
    evaluate_detected_objects,
)
from trunk_girth.species_catalog import find_species, load_species_catalog
from trunk_girth.structural_validator import StructuralValidationParameters, validate_trunk_structure
from trunk_girth.tree_color_validator import ColorValidationParameters, require_tree_colors
from trunk_girth.trunk_localizer import TrunkLocalizerParameters, locate_trunk

ORACLE_FAILURES = (RuntimeError, OSError, ValueError)


@dataclass
class GirthEstimatorSettings:
    color_rules: ColorRuleThresholds = field(default_factory=ColorRuleThresholds)
    segmentation: SegmentationParameters = field(default_factory=SegmentationParameters)
    scene_gate: SceneGateParameters = field(default_factory=SceneGateParameters)
    color_validation: ColorValidationParameters = field(default_factory=ColorValidationParameters)
    trunk_localizer: TrunkLocalizerParameters = field(default_factory=TrunkLocalizerParameters)
    structural_validation: StructuralValidationParameters = field(
        default_factory=StructuralValidationParameters
    )
    camera: CameraParameters = field(default_factory=CameraParameters)
    distance_estimation: DistanceEstimationParameters = field(default_factory=DistanceEstimationParameters)
    fusion: FusionParameters = field(default_factory=FusionParameters)
    manual_measurement: ManualMeasurementParameters = field(default_factory=ManualMeasurementParameters)
    carbon_stock: CarbonStockParameters = field(default_factory=CarbonStockParameters)

    def parameter_sections(self) -> dict:
        return {
            "color_rules": self.color_rules,
            "segmentation": self.segmentation,
            "scene_gate": self.scene_gate,
            "color_validation": self.color_validation,
            "trunk_localizer": self.trunk_localizer,
            "structural_validation": self.structural_validation,
            "camera": self.camera,
            "distance_estimation": self.distance_estimation,
            "fusion": self.fusion,
            "manual_measurement": self.manual_measurement,
            "carbon_stock": self.carbon_stock,
        }


def load_girth_estimator_settings(configuration: dict | None) -> GirthEstimatorSettings:
    configuration = configuration or {}
    return GirthEstimatorSettings(
        color_rules=load_parameters(ColorRuleThresholds, configuration, "color_rules"),
        segmentation=load_parameters(SegmentationParameters, configuration, "segmentation"),
        scene_gate=load_parameters(SceneGateParameters, configuration, "scene_gate"),
        color_validation=load_parameters(ColorValidationParameters, configuration, "color_validation"),
        trunk_localizer=load_parameters(TrunkLocalizerParameters, configuration, "trunk_localizer"),
        structural_validation=load_parameters(
            StructuralValidationParameters,
            configuration,
            "structural_validation",
        ),
        camera=load_parameters(CameraParameters, configuration, "camera"),
        distance_estimation=load_parameters(
            DistanceEstimationParameters,
            configuration,
            "distance_estimation",
        ),
        fusion=load_parameters(FusionParameters, configuration, "fusion"),
        manual_measurement=load_parameters(ManualMeasurementParameters, configuration, "manual_measurement"),
        carbon_stock=load_parameters(CarbonStockParameters, configuration, "carbon_stock"),
    )


def measure_trunk_girth(
    image: RasterImage,
    settings: GirthEstimatorSettings,
    detector: ObjectDetector | None = None,
    segmenter: SemanticSegmenter | None = None,
    metadata: ImageMetadata | None = None,
    species: SpeciesDescriptor | None = None,
    manual_selection: ManualReferenceSelection | None = None,
    enable_progress_prints: bool = False,
) -> MeasurementReport:
    log_progress(enable_progress_prints, f"Input image: width={image.width}, height={image.height}")
    blurred_image = gaussian_blur(image, int(settings.segmentation.blur_radius))

    semantic_segmentation = None
    if segmenter is not None:
        try:
            semantic_segmentation = segmenter.segment(blurred_image)
        except ORACLE_FAILURES as error:
            log_progress(enable_progress_prints, f"Semantic segmenter failed, using color rules: {error}")

    detections = []
    if detector is not None:
        try:
            detections = detector.detect(
                image,
                float(settings.scene_gate.detection_minimum_score),
                int(settings.scene_gate.maximum_detections),
            )
        except ORACLE_FAILURES as error:
            log_progress(enable_progress_prints, f"Object detector failed, skipping references: {error}")
    log_progress(enable_progress_prints, f"Detections: count={len(detections)}")

    scene_outcome = evaluate_detected_objects(detections, settings.scene_gate)
    log_progress(
        enable_progress_prints,
        "Scene gate passed: "
        f"indoor_classes={list(scene_outcome.indoor_classes)}, warnings={len(scene_outcome.warnings)}",
    )

    segmentation = segment_tree_pixels(
        blurred_image,
        settings.color_rules,
        settings.segmentation,
        semantic_segmentation,
    )
    log_progress(
        enable_progress_prints,
        "Segmentation: "
        f"mode={segmentation.segmentation_mode}, "
        f"green_percent={segmentation.green_percent:.1f}, "
        f"trunk_percent={segmentation.trunk_percent:.1f}",
    )
    if semantic_segmentation is not None and segmentation.semantic_tree_fraction is not None:
        check_semantic_tree_fraction(segmentation.semantic_tree_fraction, settings.scene_gate)

    if not segmentation.used_semantic_mask:
        color_validation = require_tree_colors(image, settings.color_rules, settings.color_validation)
        log_progress(
            enable_progress_prints,
            "Color validation passed: "
            f"green_percent={color_validation.green_percent:.1f}, "
            f"brown_percent={color_validation.brown_percent:.1f}, "
            f"structural_signals={color_validation.structural_signal_count}",
        )

    if is_segmentation_empty(segmentation, settings.segmentation):
        raise SegmentationEmptyError(
            "No tree detected: too few foliage or bark pixels in the photo.",
            details={
                "green_percent": segmentation.green_percent,
                "trunk_percent": segmentation.trunk_percent,
            },
        )

    localization = locate_trunk(
        image,
        segmentation.probability_mask,
        settings.color_rules,
        settings.trunk_localizer,
        enable_progress_prints,
    )
    bounds = localization.bounds
    if bounds.trunk_width_px < float(settings.trunk_localizer.minimum_trunk_width_px):
        raise TrunkNotFoundError(
            f"Trunk not found: measured width {bounds.trunk_width_px:.1f}px is too narrow.",
            details={"trunk_bounds": bounds.to_record()},
        )

    validate_trunk_structure(
        image,
        bounds,
        settings.color_rules,
        settings.structural_validation,
        segmentation.used_semantic_mask,
    )
    log_progress(enable_progress_prints, "Structural validation passed")

    camera = build_camera_model(image.width, image.height, settings.camera, metadata)
    log_progress(
        enable_progress_prints,
        "Camera: "
        f"focal_length_px={camera.focal_length_px:.1f}, "
        f"horizontal_fov={camera.horizontal_fov_degrees:.1f}, "
        f"metadata_available={camera.metadata_available}",
    )

    references = observe_reference_objects(
        detections,
        camera,
        settings.distance_estimation,
        manual_selection,
    )
    if manual_selection is not None:
        manual_reference = detect_manual_reference(
            image,
            bounds,
            camera,
            manual_selection,
            settings.distance_estimation,
        )
        if manual_reference is not None:
            references.append(manual_reference)
    log_progress(enable_progress_prints, f"Reference objects: count={len(references)}")

    hypotheses = estimate_distance_hypotheses(
        image,
        bounds,
        camera,
        references,
        species,
        settings.distance_estimation,
        enable_progress_prints,
    )
    fusion_result = fuse_hypotheses(hypotheses, settings.fusion, enable_progress_prints)

    if not (
        float(settings.fusion.minimum_plausible_circumference_centimeters)
        <= fusion_result.circumference_centimeters
        <= float(settings.fusion.maximum_plausible_circumference_centimeters)
    ):
        raise ImplausibleResultError(
            f"Implausible circumference {fusion_result.circumference_centimeters:.1f}cm; "
            "please retake the photo from 2-3 m.",
            details={"measurement": fusion_result.to_record()},
        )

    return MeasurementReport(
        fusion_result=fusion_result,
        trunk_bounds=bounds,
        camera_model=camera,
        segmentation_mode=segmentation.segmentation_mode,
        accuracy_tips=tuple(build_accuracy_tips(fusion_result, camera)),
        warnings=scene_outcome.warnings,
        references=tuple(references),
        species=species,
    )


def _optional_path(value) -> Path | None:
    if value is None or value == "":
        return None
    return Path(value)


def resolve_species(species_name: str | None, catalog_path: Path | None) -> SpeciesDescriptor | None:
    if not species_name:
        return None
    species = find_species(load_species_catalog(catalog_path), species_name)
    if species is None:
        raise ValueError(f"Unknown species in input_data.species_name: {species_name}")
    return species


def resolve_manual_selection(input_config: dict) -> ManualReferenceSelection | None:
    reference_type = input_config.get("manual_reference_type")
    if not reference_type:
        return None
    known_width = input_config.get("manual_reference_width_centimeters")
    return ManualReferenceSelection(
        reference_type=str(reference_type),
        known_width_centimeters=None if known_width is None else float(known_width),
    )


def run_girth_estimation(config_path: Path, input_overrides: dict | None = None) -> Path:
    configuration = load_configuration(config_path)
    input_config = dict(configuration.get("input_data") or {})
    input_config.update({key: value for key, value in (input_overrides or {}).items() if value is not None})
    output_config = configuration.get("girth_estimator_output") or {}
    runtime_progress_logging = configuration.get("runtime_progress_logging") or {}
    enable_progress_prints = runtime_progress_logging.get("enable_progress_prints", True)
    settings = load_girth_estimator_settings(configuration)

    image_file_path = _optional_path(input_config.get("image_file_path"))
    if image_file_path is None:
        raise ValueError("input_data.image_file_path is required")
    image = load_raster_image(image_file_path)
    metadata = read_image_metadata(image_file_path, enable_progress_prints)

    detections_file_path = _optional_path(input_config.get("detections_file_path"))
    segmentation_file_path = _optional_path(input_config.get("segmentation_file_path"))
    detector = None if detections_file_path is None else PrecomputedObjectDetector(detections_file_path)
    segmenter = None if segmentation_file_path is None else PrecomputedSemanticSegmenter(segmentation_file_path)
    species = resolve_species(
        input_config.get("species_name"),
        _optional_path(input_config.get("species_catalog_path")),
    )
    manual_selection = resolve_manual_selection(input_config)

    report = measure_trunk_girth(
        image,
        settings,
        detector=detector,
        segmenter=segmenter,
        metadata=metadata,
        species=species,
        manual_selection=manual_selection,
        enable_progress_prints=enable_progress_prints,
    )

    output_root_directory = Path(output_config.get("output_root_directory_path", "output"))
    output_json_filename = output_config.get("output_json_filename", "trunk_girth_estimate.json")
    run_directory = create_run_directory(output_root_directory)

    carbon_stock = None
    if bool(settings.carbon_stock.enable_carbon_stock):
        carbon_stock = estimate_carbon_stock(report.fusion_result.diameter_centimeters, settings.carbon_stock)

    if bool(output_config.get("enable_diagnostic_overlay", True)):
        save_measurement_overlay_png(
            run_directory / output_config.get("overlay_png_filename", "trunk_girth_overlay.png"),
            report,
            int(output_config.get("figure_dpi_value", 150)),
            image,
        )

    input_summary = {
        "image_file_path": str(image_file_path),
        "image_width": image.width,
        "image_height": image.height,
        "detections_file_path": None if detections_file_path is None else str(detections_file_path),
        "segmentation_file_path": None if segmentation_file_path is None else str(segmentation_file_path),
        "species_name": input_config.get("species_name"),
        "manual_reference_type": None if manual_selection is None else manual_selection.reference_type,
    }
    output_payload = build_output_payload(report, input_summary, settings.parameter_sections(), carbon_stock)
    output_json_path = run_directory / output_json_filename
    write_output_json(output_json_path, output_payload)

    fusion_result = report.fusion_result
    print(f"Output run directory: {run_directory}")
    print(f"Output json: {output_json_path}")
    print(
        f"Estimated circumference: {fusion_result.circumference_centimeters:.1f}cm "
        f"(diameter {fusion_result.diameter_centimeters:.1f}cm, confidence {fusion_result.confidence:.0f}%, "
        f"method {fusion_result.dominant_method})"
    )
    return output_json_path


def run_manual_girth_estimation(config_path: Path, manual_inputs: dict) -> Path:
    configuration = load_configuration(config_path)
    input_config = dict(configuration.get("input_data") or {})
    input_config.update({key: value for key, value in manual_inputs.items() if value is not None})
    output_config = configuration.get("girth_estimator_output") or {}
    runtime_progress_logging = configuration.get("runtime_progress_logging") or {}
    enable_progress_prints = runtime_progress_logging.get("enable_progress_prints", True)
    settings = load_girth_estimator_settings(configuration)

    image = None
    metadata = None
    image_file_path = _optional_path(input_config.get("image_file_path"))
    if image_file_path is not None:
        image = load_raster_image(image_file_path)
        metadata = read_image_metadata(image_file_path, enable_progress_prints)
        image_width, image_height = image.width, image.height
    else:
        if input_config.get("image_width") is None or input_config.get("image_height") is None:
            raise ValueError("Manual mode needs image_file_path or both image_width and image_height")
        image_width = int(input_config["image_width"])
        image_height = int(input_config["image_height"])

    species = resolve_species(
        input_config.get("species_name"),
        _optional_path(input_config.get("species_catalog_path")),
    )
    camera = build_camera_model(image_width, image_height, settings.camera, metadata)
    tap_y = float(input_config.get("tap_y", image_height / 2.0))
    distance_centimeters = input_config.get("assumed_distance_centimeters")
    report = measure_from_points(
        (float(input_config["left_x"]), tap_y),
        (float(input_config["right_x"]), tap_y),
        camera,
        settings.manual_measurement,
        species=species,
        distance_centimeters=None if distance_centimeters is None else float(distance_centimeters),
    )
    fusion_result = report.fusion_result
    log_progress(
        enable_progress_prints,
        "Manual measurement: "
        f"focal_length_px={camera.focal_length_px:.1f}, "
        f"diameter={fusion_result.diameter_centimeters:.2f}cm, "
        f"circumference={fusion_result.circumference_centimeters:.2f}cm",
    )

    output_root_directory = Path(output_config.get("output_root_directory_path", "output"))
    output_json_filename = output_config.get("output_json_filename", "trunk_girth_estimate.json")
    run_directory = create_run_directory(output_root_directory)

    carbon_stock = None
    if bool(settings.carbon_stock.enable_carbon_stock):
        carbon_stock = estimate_carbon_stock(fusion_result.diameter_centimeters, settings.carbon_stock)

    if bool(output_config.get("enable_diagnostic_overlay", True)):
        save_measurement_overlay_png(
            run_directory / output_config.get("overlay_png_filename", "trunk_girth_overlay.png"),
            report,
            int(output_config.get("figure_dpi_value", 150)),
            image,
        )

    input_summary = {
        "image_file_path": None if image_file_path is None else str(image_file_path),
        "image_width": image_width,
        "image_height": image_height,
        "left_x": float(input_config["left_x"]),
        "right_x": float(input_config["right_x"]),
        "tap_y": tap_y,
        "species_name": input_config.get("species_name"),
    }
    output_payload = build_output_payload(report, input_summary, settings.parameter_sections(), carbon_stock)
    output_json_path = run_directory / output_json_filename
    write_output_json(output_json_path, output_payload)

    print(f"Output run directory: {run_directory}")
    print(f"Output json: {output_json_path}")
    print(
        f"Manual circumference: {fusion_result.circumference_centimeters:.1f}cm "
        f"(diameter {fusion_result.diameter_centimeters:.1f}cm, confidence {fusion_result.confidence:.0f}%)"
    )
    return output_json_path
