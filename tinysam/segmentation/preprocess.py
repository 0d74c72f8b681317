"""
Encoder Input Preprocessing.

Resizes an image so its longer edge equals the encoder input size,
anchors it in the top-left corner of a square canvas and normalizes
each RGB channel into a 1 x 3 x T x T float32 tensor.
"""

from __future__ import annotations

import math
from typing import Tuple
import numpy as np
from numpy.typing import NDArray
import cv2

from tinysam.core.constants import ENCODER_INPUT_SIZE, PIXEL_MEAN, PIXEL_STD
from tinysam.core.contracts import PreprocessedImage, SourceImage
from tinysam.core.errors import PlatformError


_MEAN = np.asarray(PIXEL_MEAN, dtype=np.float32)
_STD = np.asarray(PIXEL_STD, dtype=np.float32)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def resized_shape(width: int, height: int, target_size: int) -> Tuple[int, int]:
    """
    Size of the image after scaling its longer edge to target_size.

    Returns:
        (new_width, new_height)
    """
    scale = target_size / max(width, height)
    # Very thin images keep at least one pixel on the short edge
    return (
        max(1, _round_half_up(width * scale)),
        max(1, _round_half_up(height * scale)),
    )


def _rgb_raster(image: SourceImage) -> NDArray[np.uint8]:
    pixels = image.pixels
    if pixels is None or not isinstance(pixels, np.ndarray):
        raise PlatformError(f"No pixel raster available for {image.identity}")

    if pixels.ndim == 2:
        pixels = cv2.cvtColor(pixels, cv2.COLOR_GRAY2RGB)
    elif pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise PlatformError(
            f"Unsupported raster shape {pixels.shape} for {image.identity}"
        )

    if pixels.shape[0] == 0 or pixels.shape[1] == 0:
        raise PlatformError(f"Empty raster for {image.identity}")

    if pixels.dtype != np.uint8:
        pixels = np.clip(pixels, 0, 255).astype(np.uint8)

    return np.ascontiguousarray(pixels[..., :3])


def preprocess_image(
    image: SourceImage,
    target_size: int = ENCODER_INPUT_SIZE,
) -> PreprocessedImage:
    """
    Build the encoder input tensor for an image.

    The padded area on the right/bottom stays at 0 in the normalized
    space; it is not the normalized value of a black pixel.

    Args:
        image: Source image (RGB, RGBA or grayscale uint8)
        target_size: Edge length T of the square encoder input

    Returns:
        PreprocessedImage with a (1, 3, T, T) tensor and original size

    Raises:
        PlatformError: If the pixel raster cannot be obtained
    """
    rgb = _rgb_raster(image)
    original_height, original_width = rgb.shape[:2]

    new_width, new_height = resized_shape(original_width, original_height, target_size)
    shrinking = max(original_width, original_height) > target_size
    resized = cv2.resize(
        rgb,
        (new_width, new_height),
        interpolation=cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR,
    )

    normalized = (resized.astype(np.float32) - _MEAN) / _STD

    tensor = np.zeros((1, 3, target_size, target_size), dtype=np.float32)
    tensor[0, :, :new_height, :new_width] = normalized.transpose(2, 0, 1)

    return PreprocessedImage(
        tensor=tensor,
        original_width=int(original_width),
        original_height=int(original_height),
    )
