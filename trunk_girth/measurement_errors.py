class MeasurementRejectedError(ValueError):
    """Raised when a photo cannot produce a defensible girth measurement.

    Every subclass carries a stable ``category`` so that callers can decide
    between prompting for a retake and offering manual two-point input.
    """

    category = "measurement_rejected"

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class NotATreeError(MeasurementRejectedError):
    category = "not_a_tree"


class ColorValidationError(MeasurementRejectedError):
    category = "color_validation_failure"


class SegmentationEmptyError(MeasurementRejectedError):
    category = "segmentation_empty"


class TrunkNotFoundError(MeasurementRejectedError):
    category = "trunk_not_found"


class StructuralRejectionError(MeasurementRejectedError):
    category = "structural_rejection"


class ImplausibleResultError(MeasurementRejectedError):
    category = "implausible_result"


class ManualInputError(MeasurementRejectedError):
    category = "manual_input_error"
