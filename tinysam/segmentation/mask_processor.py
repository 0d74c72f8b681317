"""
Mask Postprocessing.

Converts the decoder's raw mask scores into an RGBA image whose alpha
channel carries the binary mask (255 where the score is positive).
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from loguru import logger

from tinysam.core.contracts import MaskImage


def mask_to_image(
    mask: NDArray,
    width: int,
    height: int,
) -> MaskImage:
    """
    Encode a flat or 2D mask buffer as a MaskImage.

    Args:
        mask: One score per pixel, row-major
        width: Mask width
        height: Mask height

    Returns:
        MaskImage with RGB 0 and alpha in {0, 255}

    Raises:
        ValueError: If the buffer size is not width * height
    """
    flat = np.asarray(mask).reshape(-1)
    if flat.size != width * height:
        raise ValueError(
            f"Mask buffer has {flat.size} values, expected {width}x{height}"
        )

    rgba = np.zeros((height, width, 4), dtype=np.uint8)
    rgba[..., 3] = np.where(flat.reshape(height, width) > 0, 255, 0).astype(np.uint8)
    return MaskImage(rgba)


def decoder_output_to_image(tensor: NDArray) -> MaskImage:
    """
    Encode the first mask of a (1, C, H, W) decoder output.
    """
    if tensor.ndim != 4:
        raise ValueError(f"Expected a (1, C, H, W) mask tensor, got shape {tensor.shape}")

    height, width = int(tensor.shape[2]), int(tensor.shape[3])
    if tensor.shape[1] > 1:
        logger.debug(f"Decoder returned {tensor.shape[1]} masks, using the first")

    return mask_to_image(tensor[0, 0], width, height)
