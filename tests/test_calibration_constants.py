# Empirically tuned thresholds. Changing one of these changes which photos are
# accepted and what girth they measure, so a change must be deliberate.
import pytest

from trunk_girth.color_rules import ColorRuleThresholds
from trunk_girth.distance_estimators import DistanceEstimationParameters
from trunk_girth.foliage_bark_segmenter import SegmentationParameters
from trunk_girth.hypothesis_fusion import FusionParameters
from trunk_girth.scene_gate import SceneGateParameters
from trunk_girth.tree_color_validator import ColorValidationParameters
from trunk_girth.trunk_localizer import TrunkLocalizerParameters

pytestmark = pytest.mark.calibration


def test_rejection_thresholds() -> None:
    segmentation = SegmentationParameters()
    assert (segmentation.minimum_green_percent, segmentation.minimum_trunk_percent) == (3.0, 2.0)
    assert TrunkLocalizerParameters().minimum_trunk_width_px == 10.0
    fusion = FusionParameters()
    assert fusion.minimum_plausible_circumference_centimeters == 5.0
    assert fusion.maximum_plausible_circumference_centimeters == 700.0


def test_semantic_mask_thresholds() -> None:
    segmentation = SegmentationParameters()
    assert segmentation.semantic_primary_minimum_fraction == 0.04
    assert segmentation.semantic_mask_dilation_radius == 3
    assert SceneGateParameters().minimum_semantic_tree_fraction == 0.02


def test_color_validator_texture_cutoffs() -> None:
    parameters = ColorValidationParameters()
    assert parameters.natural_texture_variance == 25.0
    assert parameters.strong_texture_variance == 35.0
    assert parameters.textured_brown_minimum_percent == 15.0
    assert parameters.minimum_structural_signals == 2


def test_color_rule_score_ceilings() -> None:
    thresholds = ColorRuleThresholds()
    assert (
        thresholds.green_score_ceiling,
        thresholds.brown_score,
        thresholds.dark_bark_score,
        thresholds.light_bark_score,
    ) == (0.8, 0.9, 0.6, 0.4)
    assert (thresholds.green_hue_min, thresholds.green_hue_max) == (40.0, 170.0)
    assert (thresholds.brown_hue_min, thresholds.brown_hue_max) == (10.0, 45.0)


def test_distance_and_fusion_constants() -> None:
    distance = DistanceEstimationParameters()
    assert distance.camera_height_centimeters == 137.0
    assert distance.fov_fallback_weight == 0.20
    assert [tier[1] for tier in distance.fov_fill_distance_tiers] + [distance.fov_far_distance_centimeters] == [
        180.0,
        250.0,
        350.0,
        500.0,
    ]
    fusion = FusionParameters()
    assert fusion.iqr_multiplier == 1.5
    assert fusion.median_fallback_confidence == 30.0
