"""
Decoder input (feed) construction.

Turns clicks and a cached embedding into the named tensors the
decoder graph expects. Every call is a fresh decode conditioned only
on the points; the previous mask is never fed back.
"""

from __future__ import annotations

from typing import Dict, Sequence
import numpy as np
from numpy.typing import NDArray

from tinysam.core.constants import (
    DECODER_MASK_SIZE,
    ENCODER_INPUT_SIZE,
    PADDING_POINT_LABEL,
)
from tinysam.core.contracts import Click


def scale_clicks(
    clicks: Sequence[Click],
    original_width: int,
    original_height: int,
    input_size: int = ENCODER_INPUT_SIZE,
) -> NDArray[np.float32]:
    """
    Map click coordinates into encoder input space.

    Uses the same scale the preprocessor applied to the image, so the
    dimensions must be the ones stored with the embedding.

    Returns:
        (N, 2) array of x, y
    """
    scale = input_size / max(original_width, original_height)
    coords = np.array([[c.x, c.y] for c in clicks], dtype=np.float32).reshape(-1, 2)
    return coords * np.float32(scale)


def build_decoder_feeds(
    clicks: Sequence[Click],
    embedding: NDArray[np.float32],
    original_width: int,
    original_height: int,
    input_size: int = ENCODER_INPUT_SIZE,
    mask_size: int = DECODER_MASK_SIZE,
) -> Dict[str, NDArray[np.float32]]:
    """
    Build the full decoder input set.

    One padding point at (0, 0) with label -1 is appended after the
    clicks, as the decoder requires.

    Args:
        clicks: Non-empty click list in original image pixels
        embedding: Cached encoder output, passed through unchanged
        original_width: Width of the image that produced the embedding
        original_height: Height of the image that produced the embedding
        input_size: Encoder input edge length
        mask_size: Edge length of the mask_input tensor

    Returns:
        Mapping of decoder input name to tensor

    Raises:
        ValueError: If clicks is empty
    """
    if not clicks:
        raise ValueError("At least one click is required to build decoder inputs")

    n = len(clicks)
    point_coords = np.zeros((1, n + 1, 2), dtype=np.float32)
    point_labels = np.zeros((1, n + 1), dtype=np.float32)

    point_coords[0, :n] = scale_clicks(clicks, original_width, original_height, input_size)
    point_labels[0, :n] = [c.label for c in clicks]
    point_labels[0, n] = PADDING_POINT_LABEL

    return {
        "image_embeddings": embedding,
        "point_coords": point_coords,
        "point_labels": point_labels,
        "orig_im_size": np.array([original_height, original_width], dtype=np.float32),
        "mask_input": np.zeros((1, 1, mask_size, mask_size), dtype=np.float32),
        "has_mask_input": np.zeros((1,), dtype=np.float32),
    }
