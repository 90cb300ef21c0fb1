import numpy as np
from scipy import ndimage

from trunk_girth.measurement_models import RasterImage


def build_gaussian_kernel(radius: int) -> np.ndarray:
    sigma = radius / 2.0
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    offset_y, offset_x = np.meshgrid(offsets, offsets, indexing="ij")
    kernel = np.exp(-(offset_x**2 + offset_y**2) / (2.0 * sigma * sigma))
    return kernel / np.sum(kernel)


def gaussian_blur(image: RasterImage, radius: int = 2) -> RasterImage:
    """Blur RGB channels; the outer ``radius`` rows and columns are copied unmodified."""
    radius = int(radius)
    if radius <= 0 or image.width <= 2 * radius or image.height <= 2 * radius:
        return RasterImage(width=image.width, height=image.height, pixels=image.pixels.copy())

    kernel = build_gaussian_kernel(radius)
    blurred_pixels = image.pixels.copy()
    interior = (slice(radius, image.height - radius), slice(radius, image.width - radius))
    for channel_index in range(3):
        channel = image.pixels[:, :, channel_index].astype(np.float64)
        filtered = ndimage.correlate(channel, kernel, mode="nearest")
        blurred_pixels[interior[0], interior[1], channel_index] = np.clip(
            np.rint(filtered[interior]),
            0,
            255,
        ).astype(np.uint8)
    return RasterImage(width=image.width, height=image.height, pixels=blurred_pixels)


def dilate_mask(mask: np.ndarray, radius: int) -> np.ndarray:
    if radius <= 0:
        return np.asarray(mask, dtype=np.float64).copy()
    window_size = 2 * int(radius) + 1
    return ndimage.grey_dilation(
        np.asarray(mask, dtype=np.float64),
        size=(window_size, window_size),
        mode="nearest",
    )


def erode_mask(mask: np.ndarray, radius: int) -> np.ndarray:
    if radius <= 0:
        return np.asarray(mask, dtype=np.float64).copy()
    window_size = 2 * int(radius) + 1
    return ndimage.grey_erosion(
        np.asarray(mask, dtype=np.float64),
        size=(window_size, window_size),
        mode="nearest",
    )


def morphological_close(mask: np.ndarray, radius: int = 3) -> np.ndarray:
    return erode_mask(dilate_mask(mask, radius), radius)


def compute_local_variance(grayscale: np.ndarray, window_size: int = 5) -> np.ndarray:
    grayscale = np.asarray(grayscale, dtype=np.float64)
    local_mean = ndimage.uniform_filter(grayscale, size=window_size, mode="nearest")
    local_mean_of_squares = ndimage.uniform_filter(grayscale**2, size=window_size, mode="nearest")
    return np.maximum(local_mean_of_squares - local_mean**2, 0.0)


def compute_centered_moving_average(values: np.ndarray, window_size: int) -> np.ndarray:
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        return values.copy()
    half_window = int(window_size) // 2
    cumulative = np.concatenate([[0.0], np.cumsum(values)])
    indices = np.arange(values.size)
    window_start = np.maximum(0, indices - half_window)
    window_end = np.minimum(values.size - 1, indices + half_window) + 1
    return (cumulative[window_end] - cumulative[window_start]) / (window_end - window_start)
