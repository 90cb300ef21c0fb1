#!/usr/bin/env python3
import argparse
import sys
from pathlib import Path

from trunk_girth.measurement_errors import MeasurementRejectedError
from trunk_girth.measurement_pipeline import run_girth_estimation


def parse_arguments() -> argparse.Namespace:
    argument_parser = argparse.ArgumentParser(
        description="Estimate a tree trunk's circumference from a single photo"
    )
    argument_parser.add_argument(
        "--config",
        type=Path,
        default=Path("config_girth_estimator.yaml"),
        help="Path to girth estimator config YAML file",
    )
    argument_parser.add_argument("--image", type=Path, help="Photo of the tree (overrides input_data.image_file_path)")
    argument_parser.add_argument("--species", help="Species name, matched against the species catalog")
    argument_parser.add_argument(
        "--detections",
        type=Path,
        help="JSON list of object detections {class, score, bbox} for the same photo",
    )
    argument_parser.add_argument(
        "--segmentation",
        type=Path,
        help="Semantic segmentation class map saved as .npy for the same photo",
    )
    argument_parser.add_argument(
        "--reference-type",
        help="Manual reference held beside the trunk "
        "(credit-card, a4-paper, coin-*, ruler-30cm, hand-span, custom, person)",
    )
    argument_parser.add_argument(
        "--reference-width-cm",
        type=float,
        help="Known width of a custom reference object in centimeters",
    )
    return argument_parser.parse_args()


def main() -> None:
    arguments = parse_arguments()
    input_overrides = {
        "image_file_path": arguments.image,
        "species_name": arguments.species,
        "detections_file_path": arguments.detections,
        "segmentation_file_path": arguments.segmentation,
        "manual_reference_type": arguments.reference_type,
        "manual_reference_width_centimeters": arguments.reference_width_cm,
    }
    try:
        run_girth_estimation(arguments.config, input_overrides)
    except MeasurementRejectedError as error:
        print(f"Measurement rejected [{error.category}]: {error}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
