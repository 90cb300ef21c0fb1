from trunk_girth.measurement_models import AccuracyTip, CameraModel, FusionResult


def build_accuracy_tips(fusion_result: FusionResult, camera: CameraModel) -> list[AccuracyTip]:
    has_reference = fusion_result.has_reference_object
    has_species_height = fusion_result.has_method("species_height")
    tree_only_count = sum(
        fusion_result.has_method(method)
        for method in ("ground_plane", "species_height", "bark_texture", "crown_allometry")
    )

    tips = []
    if tree_only_count >= 3 and not has_reference:
        tips.append(
            AccuracyTip(
                priority="info",
                message=f"{tree_only_count} tree-only methods agreed on this photo; "
                "selecting the species improves accuracy further.",
            )
        )
    if not has_species_height and not has_reference:
        tips.append(
            AccuracyTip(
                priority="high",
                message="Select the tree species so its average height can be used to estimate distance.",
            )
        )
    if not has_reference and fusion_result.confidence < 70:
        tips.append(
            AccuracyTip(
                priority="medium",
                message="For the highest accuracy, have a person stand next to the tree.",
            )
        )
    if not camera.metadata_available:
        tips.append(
            AccuracyTip(
                priority="medium",
                message="Take the photo directly with the phone camera so focal length metadata is kept.",
            )
        )
    if fusion_result.coefficient_of_variation > 30:
        tips.append(
            AccuracyTip(
                priority="medium",
                message="Retake the photo from 2-3 m in good light with the whole tree visible.",
            )
        )
    return tips
