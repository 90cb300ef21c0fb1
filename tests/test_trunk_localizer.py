import numpy as np
import pytest

from trunk_girth.color_rules import ColorRuleThresholds
from trunk_girth.foliage_bark_segmenter import SegmentationParameters, segment_tree_pixels
from trunk_girth.measurement_models import RasterImage
from trunk_girth.raster_preprocessor import gaussian_blur
from trunk_girth.trunk_localizer import (
    TrunkLocalizerParameters,
    compute_trunk_likelihood,
    locate_trunk,
    measure_gradient_width,
)


def _locate(image: RasterImage):
    thresholds = ColorRuleThresholds()
    segmentation = segment_tree_pixels(gaussian_blur(image, 2), thresholds, SegmentationParameters())
    return locate_trunk(image, segmentation.probability_mask, thresholds, TrunkLocalizerParameters())


def test_synthetic_trunk_center_and_width(synthetic_tree_image: RasterImage) -> None:
    localization = _locate(synthetic_tree_image)
    bounds = localization.bounds

    assert abs(bounds.trunk_center_x - 200) <= 5
    assert bounds.trunk_width_px == pytest.approx(40.0, rel=0.10)
    assert bounds.trunk_left_x == 180
    assert bounds.trunk_right_x == 220
    assert localization.median_width_px == 40.0
    assert localization.gradient_width_px == 39.0
    assert bounds.trunk_width_px == pytest.approx(39.5)
    assert bounds.breast_height_y == 520
    assert localization.scan_row_count == 41


def test_plateau_resolves_to_its_middle(synthetic_tree_image: RasterImage) -> None:
    # full smoothing windows inside the 180..219 band cover columns 187..212
    assert _locate(synthetic_tree_image).bounds.trunk_center_x == 199


def test_bounding_box_spans_crown_band_and_trunk_base(synthetic_tree_image: RasterImage) -> None:
    bounds = _locate(synthetic_tree_image).bounds
    assert bounds.x == 60
    assert bounds.width == 281
    assert bounds.y == 0
    assert bounds.height == 800
    assert bounds.trunk_base_y == 800


def test_likelihood_builds_up_with_run_length_and_decays() -> None:
    trunk_mask = np.zeros((100, 3), dtype=bool)
    trunk_mask[:80, 1] = True
    trunk_mask[90:, 1] = True
    likelihood = compute_trunk_likelihood(trunk_mask, TrunkLocalizerParameters())

    assert likelihood[0, 1] == pytest.approx(1 / 40)
    assert likelihood[39, 1] == pytest.approx(1.0)
    assert likelihood[85, 1] == 0.0
    # 80 rows of run minus 10 gap rows decaying by 3 leaves 50, then +1
    assert likelihood[90, 1] == pytest.approx(1.0)
    assert np.all(likelihood[:, 0] == 0.0)


def test_gradient_width_finds_strongest_edges() -> None:
    grayscale = np.full((100, 120), 200.0)
    grayscale[:, 40:70] = 60.0
    width = measure_gradient_width(grayscale, 55, 50, TrunkLocalizerParameters())
    assert width == 29.0


def test_frame_without_trunk_colors_reports_narrow_width() -> None:
    rgb = np.zeros((200, 200, 3), dtype=np.uint8)
    rgb[:, :] = (135, 190, 235)
    image = RasterImage.from_rgb_array(rgb)
    localization = locate_trunk(
        image,
        np.zeros((200, 200)),
        ColorRuleThresholds(),
        TrunkLocalizerParameters(),
    )
    assert localization.bounds.trunk_width_px < 10.0
    assert (localization.bounds.x, localization.bounds.y) == (0, 0)
    assert (localization.bounds.width, localization.bounds.height) == (200, 200)
