from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from trunk_girth.color_rules import ColorRuleThresholds, is_trunk_colored
from trunk_girth.color_space_converter import compute_color_planes
from trunk_girth.configuration_loader import require_parameter_range
from trunk_girth.measurement_models import RasterImage, TrunkBounds
from trunk_girth.progress_logging import log_progress
from trunk_girth.raster_preprocessor import compute_centered_moving_average, morphological_close


@dataclass
class TrunkLocalizerParameters:
    run_saturation_length: int = 40
    run_decay: int = 3
    density_top_fraction: float = 0.35
    density_bottom_fraction: float = 0.95
    smoothing_window_size: int = 15
    center_search_width_fraction: float = 0.70
    breast_height_fraction: float = 0.65
    edge_scan_half_rows: int = 20
    edge_likelihood_threshold: float = 0.15
    minimum_scan_width_px: int = 5
    gradient_band_half_rows: int = 30
    gradient_search_width_fraction: float = 0.25
    minimum_gradient_width_px: float = 10.0
    bounding_box_close_radius: int = 5
    bounding_box_probability_threshold: float = 0.3
    minimum_trunk_width_px: float = 10.0

    def __post_init__(self) -> None:
        require_parameter_range(self, "run_saturation_length", minimum=1)
        require_parameter_range(self, "run_decay", minimum=0)
        require_parameter_range(self, "smoothing_window_size", minimum=1)
        require_parameter_range(self, "center_search_width_fraction", minimum=0.0, maximum=1.0, exclusive=True)
        require_parameter_range(self, "breast_height_fraction", minimum=0.0, maximum=1.0)
        require_parameter_range(self, "edge_scan_half_rows", minimum=0)


@dataclass(frozen=True)
class TrunkLocalization:
    bounds: TrunkBounds
    trunk_likelihood: np.ndarray
    smoothed_column_density: np.ndarray
    median_width_px: float
    gradient_width_px: float
    scan_row_count: int


def compute_trunk_likelihood(
    trunk_pixel_mask: np.ndarray,
    parameters: TrunkLocalizerParameters,
) -> np.ndarray:
    height, width = trunk_pixel_mask.shape
    run_length = np.zeros(width, dtype=np.float64)
    likelihood = np.zeros((height, width), dtype=np.float64)
    saturation_length = float(parameters.run_saturation_length)
    decay = float(parameters.run_decay)
    for row_index in range(height):
        row_is_trunk = trunk_pixel_mask[row_index]
        run_length = np.where(row_is_trunk, run_length + 1.0, np.maximum(0.0, run_length - decay))
        likelihood[row_index] = np.where(row_is_trunk, np.minimum(1.0, run_length / saturation_length), 0.0)
    return likelihood


def _find_plateau_peak(values: np.ndarray, search_start: int, search_end: int) -> int:
    search_values = values[search_start:search_end]
    if search_values.size == 0:
        return int(values.size // 2)
    peak_value = float(np.max(search_values))
    tolerance = 1e-9 * max(1.0, abs(peak_value))
    peak_offset = int(np.argmax(search_values >= peak_value - tolerance))
    plateau_end = peak_offset
    while plateau_end + 1 < search_values.size and search_values[plateau_end + 1] >= peak_value - tolerance:
        plateau_end += 1
    return search_start + (peak_offset + plateau_end) // 2


def _scan_row_edges(
    likelihood_row: np.ndarray,
    center_x: int,
    threshold: float,
) -> tuple[int, int]:
    width = likelihood_row.size
    left_x = center_x
    while left_x - 1 >= 0 and likelihood_row[left_x - 1] >= threshold:
        left_x -= 1
    # right edge is exclusive
    right_x = center_x
    while right_x < width and likelihood_row[right_x] >= threshold:
        right_x += 1
    return left_x, right_x


def _half_maximum_edges(smoothed_density: np.ndarray, center_x: int) -> tuple[int, int]:
    half_maximum = float(smoothed_density[center_x]) / 2.0
    left_x = center_x
    for x_index in range(center_x, -1, -1):
        if smoothed_density[x_index] < half_maximum:
            left_x = x_index
            break
    right_x = center_x
    for x_index in range(center_x, smoothed_density.size):
        if smoothed_density[x_index] < half_maximum:
            right_x = x_index
            break
    return left_x, right_x


def measure_gradient_width(
    grayscale: np.ndarray,
    center_x: int,
    breast_height_y: int,
    parameters: TrunkLocalizerParameters,
) -> float:
    height, width = grayscale.shape
    if width < 3 or height < 3:
        return 0.0
    band_top = max(1, breast_height_y - int(parameters.gradient_band_half_rows))
    band_bottom = min(height - 2, breast_height_y + int(parameters.gradient_band_half_rows))
    if band_bottom < band_top:
        return 0.0
    band = grayscale[band_top : band_bottom + 1]
    gradients = np.zeros(width, dtype=np.float64)
    gradients[1:-1] = np.mean(np.abs(band[:, 2:] - band[:, :-2]), axis=0)

    search_radius = int(width * float(parameters.gradient_search_width_fraction))
    left_edge, left_maximum = center_x, 0.0
    for x_index in range(center_x, max(0, center_x - search_radius) - 1, -1):
        if gradients[x_index] > left_maximum:
            left_maximum = float(gradients[x_index])
            left_edge = x_index
    right_edge, right_maximum = center_x, 0.0
    for x_index in range(center_x, min(width - 1, center_x + search_radius) + 1):
        if gradients[x_index] > right_maximum:
            right_maximum = float(gradients[x_index])
            right_edge = x_index
    return float(right_edge - left_edge)


def compute_tree_bounding_box(
    probability_mask: np.ndarray,
    parameters: TrunkLocalizerParameters,
) -> tuple[int, int, int, int]:
    height, width = probability_mask.shape
    closed_mask = morphological_close(probability_mask, int(parameters.bounding_box_close_radius))
    column_offsets = np.abs(np.arange(width) - width / 2.0)
    band_columns = column_offsets <= float(parameters.center_search_width_fraction) * width / 2.0
    tree_pixels = (closed_mask > float(parameters.bounding_box_probability_threshold)) & band_columns[None, :]
    tree_rows = np.nonzero(np.any(tree_pixels, axis=1))[0]
    tree_columns = np.nonzero(np.any(tree_pixels, axis=0))[0]
    if tree_rows.size == 0 or tree_columns.size == 0:
        return 0, 0, width, height
    x_minimum, x_maximum = int(tree_columns[0]), int(tree_columns[-1])
    y_minimum, y_maximum = int(tree_rows[0]), int(tree_rows[-1])
    return x_minimum, y_minimum, x_maximum - x_minimum + 1, y_maximum - y_minimum + 1


def locate_trunk(
    image: RasterImage,
    probability_mask: np.ndarray,
    thresholds: ColorRuleThresholds,
    parameters: TrunkLocalizerParameters,
    enable_progress_prints: bool = False,
) -> TrunkLocalization:
    width, height = image.width, image.height
    planes = compute_color_planes(image.rgb)
    trunk_likelihood = compute_trunk_likelihood(is_trunk_colored(planes, thresholds), parameters)

    density_top = int(height * float(parameters.density_top_fraction))
    density_bottom = int(height * float(parameters.density_bottom_fraction))
    column_density = np.sum(trunk_likelihood[density_top:density_bottom], axis=0)
    smoothed_density = compute_centered_moving_average(column_density, int(parameters.smoothing_window_size))

    search_margin = (1.0 - float(parameters.center_search_width_fraction)) / 2.0
    search_start = int(width * search_margin)
    search_end = int(width * (1.0 - search_margin))
    trunk_center_x = _find_plateau_peak(smoothed_density, search_start, search_end)

    breast_height_y = int(height * float(parameters.breast_height_fraction))
    scan_edges = []
    for row_offset in range(-int(parameters.edge_scan_half_rows), int(parameters.edge_scan_half_rows) + 1):
        scan_y = min(height - 1, max(0, breast_height_y + row_offset))
        left_x, right_x = _scan_row_edges(
            trunk_likelihood[scan_y],
            trunk_center_x,
            float(parameters.edge_likelihood_threshold),
        )
        if right_x - left_x > int(parameters.minimum_scan_width_px):
            scan_edges.append((right_x - left_x, left_x, right_x))

    scan_row_count = len(scan_edges)
    if scan_edges:
        scan_edges.sort()
        median_width, median_left, median_right = scan_edges[len(scan_edges) // 2]
    else:
        median_left, median_right = _half_maximum_edges(smoothed_density, trunk_center_x)
        median_width = median_right - median_left
        log_progress(
            enable_progress_prints,
            f"Trunk edge scan found no rows; half-maximum width={median_width}px",
        )

    gradient_width = measure_gradient_width(image.grayscale(), trunk_center_x, breast_height_y, parameters)
    if gradient_width > float(parameters.minimum_gradient_width_px):
        final_width = 0.5 * float(median_width) + 0.5 * gradient_width
    else:
        final_width = float(median_width)

    box_x, box_y, box_width, box_height = compute_tree_bounding_box(probability_mask, parameters)
    bounds = TrunkBounds(
        x=box_x,
        y=box_y,
        width=box_width,
        height=box_height,
        trunk_center_x=int(trunk_center_x),
        trunk_left_x=int(median_left),
        trunk_right_x=int(median_right),
        trunk_width_px=final_width,
        breast_height_y=breast_height_y,
    )
    log_progress(
        enable_progress_prints,
        "Trunk localized: "
        f"center_x={trunk_center_x}, median_width={median_width}px, "
        f"gradient_width={gradient_width:.0f}px, final_width={final_width:.1f}px, "
        f"scan_rows={scan_row_count}, bbox=({box_x},{box_y},{box_width},{box_height})",
    )
    return TrunkLocalization(
        bounds=bounds,
        trunk_likelihood=trunk_likelihood,
        smoothed_column_density=smoothed_density,
        median_width_px=float(median_width),
        gradient_width_px=gradient_width,
        scan_row_count=scan_row_count,
    )
