from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle

from trunk_girth.carbon_stock_estimator import CarbonStockEstimate
from trunk_girth.measurement_models import MeasurementReport, RasterImage

METHOD_COLORS = {
    "ground_plane": "#2a9d8f",
    "species_height": "#e9c46a",
    "bark_texture": "#f4a261",
    "crown_allometry": "#588157",
    "fov_fallback": "#8d99ae",
    "manual_points": "#264653",
}


def create_run_directory(root_directory: Path) -> Path:
    root_directory.mkdir(parents=True, exist_ok=True)
    run_indices = []
    for path in root_directory.iterdir():
        if not path.is_dir() or not path.name.startswith("run_"):
            continue
        suffix = path.name.removeprefix("run_")
        if suffix.isdigit():
            run_indices.append(int(suffix))
    next_index = (max(run_indices) + 1) if run_indices else 1
    run_directory = root_directory / f"run_{next_index:03d}"
    run_directory.mkdir(parents=True, exist_ok=False)
    return run_directory


def summarize_parameters(parameter_sections: dict) -> dict:
    return {section_name: asdict(parameters) for section_name, parameters in parameter_sections.items()}


def build_output_payload(
    report: MeasurementReport,
    input_summary: dict,
    parameter_sections: dict,
    carbon_stock: CarbonStockEstimate | None = None,
) -> dict:
    camera = report.camera_model
    return {
        "inputs": input_summary,
        "segmentation_mode_used": report.segmentation_mode,
        "species": None if report.species is None else report.species.display_name,
        "camera": {
            "focal_length_px": round(camera.focal_length_px, 2),
            "horizontal_fov_degrees": round(camera.horizontal_fov_degrees, 2),
            "vertical_fov_degrees": round(camera.vertical_fov_degrees, 2),
            "focal_length_mm": camera.focal_length_mm,
            "metadata_available": camera.metadata_available,
        },
        "trunk_bounds": None if report.trunk_bounds is None else report.trunk_bounds.to_record(),
        "reference_objects": [
            {
                "label": reference.label,
                "detection_score": round(reference.detection_score, 3),
                "estimated_distance_centimeters": round(reference.estimated_distance_centimeters, 1),
                "used_dimension": reference.used_dimension,
                "reliability": round(reference.reliability, 3),
            }
            for reference in report.references
        ],
        "measurement": report.fusion_result.to_record(),
        "accuracy_tips": [{"priority": tip.priority, "message": tip.message} for tip in report.accuracy_tips],
        "warnings": list(report.warnings),
        "carbon_stock": None if carbon_stock is None else carbon_stock.to_record(),
        "parameters": summarize_parameters(parameter_sections),
    }


def write_output_json(output_json_path: Path, output_payload: dict) -> None:
    with output_json_path.open("w", encoding="utf-8") as file:
        json.dump(output_payload, file, indent=2)


def save_measurement_overlay_png(
    output_file_path: Path,
    report: MeasurementReport,
    figure_dpi_value: int,
    image: RasterImage | None = None,
) -> None:
    fusion_result = report.fusion_result
    show_image = image is not None
    if show_image:
        figure, (image_axis, method_axis) = plt.subplots(
            1,
            2,
            figsize=(12.0, 6.5),
            gridspec_kw={"width_ratios": [1.0, 1.2]},
        )
    else:
        figure, method_axis = plt.subplots(figsize=(7.0, 5.0))

    if show_image:
        image_axis.imshow(image.rgb)
        bounds = report.trunk_bounds
        if bounds is not None:
            image_axis.add_patch(
                Rectangle(
                    (bounds.x, bounds.y),
                    bounds.width,
                    bounds.height,
                    fill=False,
                    edgecolor="#e63946",
                    linewidth=1.6,
                    label="Tree bounding box",
                )
            )
            image_axis.axvline(bounds.trunk_left_x, color="#ffb703", linewidth=1.2, label="Trunk edges")
            image_axis.axvline(bounds.trunk_right_x, color="#ffb703", linewidth=1.2)
            image_axis.axhline(
                bounds.breast_height_y,
                color="#023047",
                linestyle="--",
                linewidth=1.0,
                label="Breast height",
            )
            image_axis.legend(loc="lower right", fontsize=8)
        image_axis.set_title(f"Trunk width {0.0 if bounds is None else bounds.trunk_width_px:.1f}px")
        image_axis.set_axis_off()

    survivor_methods = {hypothesis.method for hypothesis in fusion_result.hypotheses}
    methods = [hypothesis.method for hypothesis in fusion_result.all_hypotheses]
    diameters = [hypothesis.trunk_diameter_centimeters for hypothesis in fusion_result.all_hypotheses]
    colors = [
        METHOD_COLORS.get(method, "#457b9d") if method in survivor_methods else "#d9d9d9"
        for method in methods
    ]
    method_axis.barh(range(len(methods)), diameters, color=colors, edgecolor="#333333", linewidth=0.5)
    method_axis.set_yticks(range(len(methods)))
    method_axis.set_yticklabels(methods)
    method_axis.axvline(
        fusion_result.diameter_centimeters,
        color="#e63946",
        linewidth=1.5,
        label=f"Fused diameter {fusion_result.diameter_centimeters:.1f}cm",
    )
    method_axis.set_xlabel("Trunk diameter (cm)")
    method_axis.set_title(
        f"Circumference {fusion_result.circumference_centimeters:.1f}cm "
        f"(confidence {fusion_result.confidence:.0f}%)"
    )
    method_axis.grid(axis="x", alpha=0.25)
    method_axis.legend(loc="best", fontsize=8)

    figure.tight_layout()
    figure.savefig(output_file_path, dpi=figure_dpi_value)
    plt.close(figure)
