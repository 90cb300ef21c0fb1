#!/usr/bin/env python3
import argparse
import sys
from pathlib import Path

from trunk_girth.measurement_errors import MeasurementRejectedError
from trunk_girth.measurement_pipeline import run_manual_girth_estimation


def parse_arguments() -> argparse.Namespace:
    argument_parser = argparse.ArgumentParser(
        description="Estimate trunk circumference from two tapped trunk edge points"
    )
    argument_parser.add_argument(
        "--config",
        type=Path,
        default=Path("config_girth_estimator.yaml"),
        help="Path to girth estimator config YAML file",
    )
    argument_parser.add_argument("--left-x", type=float, required=True, help="Left trunk edge x in pixels")
    argument_parser.add_argument("--right-x", type=float, required=True, help="Right trunk edge x in pixels")
    argument_parser.add_argument("--y", type=float, help="Row of the tapped points in pixels")
    argument_parser.add_argument("--image", type=Path, help="Photo the points were tapped on (for EXIF and overlay)")
    argument_parser.add_argument("--image-width", type=int, help="Image width in pixels when no photo is given")
    argument_parser.add_argument("--image-height", type=int, help="Image height in pixels when no photo is given")
    argument_parser.add_argument("--species", help="Species name, matched against the species catalog")
    argument_parser.add_argument(
        "--distance-cm",
        type=float,
        help="Camera-to-trunk distance in centimeters (default from manual_measurement config)",
    )
    return argument_parser.parse_args()


def main() -> None:
    arguments = parse_arguments()
    manual_inputs = {
        "left_x": arguments.left_x,
        "right_x": arguments.right_x,
        "tap_y": arguments.y,
        "image_file_path": arguments.image,
        "image_width": arguments.image_width,
        "image_height": arguments.image_height,
        "species_name": arguments.species,
        "assumed_distance_centimeters": arguments.distance_cm,
    }
    try:
        run_manual_girth_estimation(arguments.config, manual_inputs)
    except MeasurementRejectedError as error:
        print(f"Measurement rejected [{error.category}]: {error}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
