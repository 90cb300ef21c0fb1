from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import ExifTags, Image, ImageOps

from trunk_girth.measurement_models import ImageMetadata, RasterImage
from trunk_girth.progress_logging import log_progress


def load_raster_image(image_file_path: Path) -> RasterImage:
    image_file_path = Path(image_file_path)
    if not image_file_path.exists():
        raise FileNotFoundError(f"Image file not found: {image_file_path}")
    with Image.open(image_file_path) as image:
        upright_image = ImageOps.exif_transpose(image)
        rgba_array = np.asarray(upright_image.convert("RGBA"), dtype=np.uint8)
    return RasterImage(
        width=int(rgba_array.shape[1]),
        height=int(rgba_array.shape[0]),
        pixels=np.ascontiguousarray(rgba_array),
    )


def _optional_positive_float(value) -> float | None:
    if value is None:
        return None
    number = float(value)
    if not np.isfinite(number) or number <= 0.0:
        return None
    return number


def read_image_metadata(image_file_path: Path, enable_progress_prints: bool = False) -> ImageMetadata | None:
    try:
        with Image.open(image_file_path) as image:
            exif = image.getexif()
            exif_fields = dict(exif.get_ifd(ExifTags.IFD.Exif))
    except (OSError, ValueError) as error:
        log_progress(enable_progress_prints, f"EXIF metadata unreadable: path={image_file_path}, error={error}")
        return None

    try:
        metadata = ImageMetadata(
            focal_length_mm=_optional_positive_float(exif_fields.get(ExifTags.Base.FocalLength)),
            focal_length_35mm=_optional_positive_float(exif_fields.get(ExifTags.Base.FocalLengthIn35mmFilm)),
        )
    except (TypeError, ValueError, ZeroDivisionError) as error:
        log_progress(enable_progress_prints, f"EXIF metadata malformed: path={image_file_path}, error={error}")
        return None

    if metadata.focal_length_mm is None and metadata.focal_length_35mm is None:
        log_progress(enable_progress_prints, f"EXIF metadata has no focal length: path={image_file_path}")
        return None
    log_progress(
        enable_progress_prints,
        "EXIF metadata: "
        f"focal_length_mm={metadata.focal_length_mm}, "
        f"focal_length_35mm={metadata.focal_length_35mm}",
    )
    return metadata
