import pytest

from trunk_girth.accuracy_tips import build_accuracy_tips
from trunk_girth.camera_model_builder import CameraParameters, build_camera_model
from trunk_girth.carbon_stock_estimator import CarbonStockParameters, estimate_carbon_stock
from trunk_girth.measurement_models import DistanceHypothesis, FusionResult, ImageMetadata


def _fusion_result(methods: list[str], confidence: float, coefficient_of_variation: float) -> FusionResult:
    hypotheses = tuple(
        DistanceHypothesis(
            method=method,
            trunk_diameter_centimeters=30.0,
            distance_centimeters=250.0,
            weight=0.5,
            confidence=60.0,
        )
        for method in methods
    )
    return FusionResult(
        diameter_centimeters=30.0,
        circumference_centimeters=94.25,
        confidence=confidence,
        dominant_method=methods[0],
        coefficient_of_variation=coefficient_of_variation,
        hypotheses=hypotheses,
        all_hypotheses=hypotheses,
    )


def test_tips_for_low_confidence_photo_without_metadata() -> None:
    camera = build_camera_model(400, 800, CameraParameters())
    tips = build_accuracy_tips(_fusion_result(["ground_plane", "fov_fallback"], 60.0, 35.0), camera)
    priorities = [tip.priority for tip in tips]

    assert priorities == ["high", "medium", "medium", "medium"]
    assert "species" in tips[0].message


def test_reference_object_suppresses_species_and_person_tips() -> None:
    camera = build_camera_model(400, 800, CameraParameters(), ImageMetadata(focal_length_35mm=26.0))
    tips = build_accuracy_tips(_fusion_result(["reference_person", "ground_plane"], 80.0, 5.0), camera)
    assert tips == []


def test_agreeing_tree_only_methods_earn_info_tip() -> None:
    camera = build_camera_model(400, 800, CameraParameters(), ImageMetadata(focal_length_35mm=26.0))
    tips = build_accuracy_tips(
        _fusion_result(["ground_plane", "species_height", "bark_texture"], 90.0, 5.0),
        camera,
    )
    assert [tip.priority for tip in tips] == ["info"]


def test_carbon_stock_for_thirty_centimeter_trunk() -> None:
    estimate = estimate_carbon_stock(30.0, CarbonStockParameters())

    above_ground = 34.4703 - 8.0671 * 30.0 + 0.6589 * 900.0
    assert estimate.above_ground_biomass_kg == pytest.approx(above_ground)
    assert estimate.below_ground_biomass_kg == pytest.approx(0.15 * above_ground)
    assert estimate.carbon_kg == pytest.approx(0.5 * 1.15 * above_ground)
    assert estimate.co2_equivalent_kg == pytest.approx(estimate.carbon_kg * 44.0 / 12.0)
    assert estimate.oxygen_kg == pytest.approx(estimate.co2_equivalent_kg * 0.727)


def test_carbon_stock_never_negative() -> None:
    estimate = estimate_carbon_stock(6.0, CarbonStockParameters())
    assert estimate.above_ground_biomass_kg >= 0.0
