import pytest

from trunk_girth.color_rules import ColorRuleThresholds
from trunk_girth.measurement_errors import StructuralRejectionError
from trunk_girth.measurement_models import RasterImage, TrunkBounds
from trunk_girth.structural_validator import (
    StructuralValidationParameters,
    run_structural_checks,
    validate_trunk_structure,
)


def _synthetic_bounds(**overrides) -> TrunkBounds:
    values = {
        "x": 60,
        "y": 0,
        "width": 281,
        "height": 800,
        "trunk_center_x": 199,
        "trunk_left_x": 180,
        "trunk_right_x": 220,
        "trunk_width_px": 39.5,
        "breast_height_y": 520,
    }
    values.update(overrides)
    return TrunkBounds(**values)


def test_synthetic_tree_passes_all_checks(synthetic_tree_image: RasterImage) -> None:
    checks = validate_trunk_structure(
        synthetic_tree_image,
        _synthetic_bounds(),
        ColorRuleThresholds(),
        StructuralValidationParameters(),
    )
    assert [check.name for check in checks] == [
        "trunk_to_image_width",
        "trunk_to_box_width",
        "box_aspect_ratio",
        "vertical_continuity",
        "canopy_presence",
        "box_coverage",
    ]
    assert all(check.passed for check in checks)


def test_wide_trunk_is_rejected_with_all_check_results(synthetic_tree_image: RasterImage) -> None:
    with pytest.raises(StructuralRejectionError) as error_info:
        validate_trunk_structure(
            synthetic_tree_image,
            _synthetic_bounds(trunk_width_px=150.0),
            ColorRuleThresholds(),
            StructuralValidationParameters(),
        )
    assert error_info.value.category == "structural_rejection"
    assert "trunk_to_image_width" in str(error_info.value)
    assert len(error_info.value.details["checks"]) == 6


def test_flat_wide_box_fails_aspect_ratio(synthetic_tree_image: RasterImage) -> None:
    checks = run_structural_checks(
        synthetic_tree_image,
        _synthetic_bounds(height=100, width=300),
        ColorRuleThresholds(),
        StructuralValidationParameters(),
    )
    failed = {check.name for check in checks if not check.passed}
    assert "box_aspect_ratio" in failed


def test_box_filling_the_frame_fails_coverage(synthetic_tree_image: RasterImage) -> None:
    checks = run_structural_checks(
        synthetic_tree_image,
        _synthetic_bounds(x=0, width=400),
        ColorRuleThresholds(),
        StructuralValidationParameters(),
    )
    coverage = next(check for check in checks if check.name == "box_coverage")
    assert not coverage.passed


def test_missing_trunk_fails_continuity(synthetic_tree_image: RasterImage) -> None:
    checks = run_structural_checks(
        synthetic_tree_image,
        _synthetic_bounds(trunk_left_x=280, trunk_right_x=320, trunk_center_x=300),
        ColorRuleThresholds(),
        StructuralValidationParameters(),
    )
    continuity = next(check for check in checks if check.name == "vertical_continuity")
    assert not continuity.passed
    assert continuity.measured_value == 0.0


def test_semantic_mode_only_checks_trunk_to_image_width(synthetic_tree_image: RasterImage) -> None:
    checks = run_structural_checks(
        synthetic_tree_image,
        _synthetic_bounds(trunk_width_px=150.0, height=100, width=400),
        ColorRuleThresholds(),
        StructuralValidationParameters(),
        used_semantic_mask=True,
    )
    assert len(checks) == 1
    assert checks[0].name == "trunk_to_image_width"
    assert checks[0].passed


def test_box_hugging_the_trunk_fails_trunk_to_box_width(synthetic_tree_image: RasterImage) -> None:
    with pytest.raises(StructuralRejectionError) as error_info:
        validate_trunk_structure(
            synthetic_tree_image,
            _synthetic_bounds(x=175, width=50),
            ColorRuleThresholds(),
            StructuralValidationParameters(),
        )
    assert "trunk_to_box_width" in str(error_info.value)
    trunk_to_box = next(
        check for check in error_info.value.details["checks"] if check["name"] == "trunk_to_box_width"
    )
    assert trunk_to_box["passed"] is False
    assert trunk_to_box["measured_value"] == pytest.approx(39.5 / 50)


def test_bare_canopy_band_fails_canopy_presence(synthetic_tree_image: RasterImage) -> None:
    # box starts below the foliage, so its upper band holds only sky and bark
    checks = run_structural_checks(
        synthetic_tree_image,
        _synthetic_bounds(y=300, height=500),
        ColorRuleThresholds(),
        StructuralValidationParameters(),
    )
    canopy = next(check for check in checks if check.name == "canopy_presence")
    assert not canopy.passed
    assert canopy.measured_value == 0.0
    assert all(check.passed for check in checks if check.name != "canopy_presence")
