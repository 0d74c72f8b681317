"""
Core data contracts for tinysam.

All stages exchange these types:
- Clicks in original image pixel space
- Source images with a stable cache identity
- Cached embeddings with the dimensions that produced them
- RGBA mask images with the mask encoded in alpha
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, List, Union
import numpy as np
from numpy.typing import NDArray
import cv2
from loguru import logger

from .errors import PlatformError


# ============================================================
# ENUMERATIONS
# ============================================================

class ClickType(Enum):
    """Whether a click pulls a region into the mask or pushes it out."""
    INCLUDE = "include"
    EXCLUDE = "exclude"

    @property
    def label(self) -> int:
        """Point label expected by the decoder."""
        return 1 if self is ClickType.INCLUDE else 0

    @classmethod
    def from_label(cls, label: int) -> ClickType:
        if label == 1:
            return cls.INCLUDE
        if label == 0:
            return cls.EXCLUDE
        raise ValueError(f"Click label must be 0 or 1, got {label}")

    @classmethod
    def parse(cls, value: Union[str, ClickType]) -> ClickType:
        if isinstance(value, ClickType):
            return value
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(
                f"Unknown click type '{value}'. Expected 'include' or 'exclude'"
            ) from None


# ============================================================
# CORE DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class Click:
    """A prompt point in original image pixel coordinates."""
    x: float
    y: float
    kind: ClickType = ClickType.INCLUDE

    @property
    def label(self) -> int:
        return self.kind.label

    @classmethod
    def from_label(cls, x: float, y: float, label: int) -> Click:
        return cls(x, y, ClickType.from_label(label))


class SourceImage:
    """
    An image to segment, plus the identity used to cache its embedding.

    Identity resolution order:
    1. Explicit identity given by the caller
    2. Resolved file path for file-backed images
    3. Weak identity from dimensions and object creation time

    The weak identity is fixed for the lifetime of one SourceImage object.
    Two objects wrapping the same pixels never share an embedding; pass an
    explicit identity when that matters.

    File-backed images are decoded lazily, so a cache hit never touches
    the file.
    """

    def __init__(
        self,
        pixels: Optional[NDArray[np.uint8]] = None,
        locator: Optional[str] = None,
        identity: Optional[str] = None,
    ):
        if pixels is None and locator is None:
            raise ValueError("SourceImage needs pixels or a locator")
        self._pixels = pixels
        self.locator = locator
        self._created_ns = time.time_ns()

        if identity is not None:
            self.identity = identity
        elif locator is not None:
            self.identity = locator
        else:
            h, w = pixels.shape[:2]
            self.identity = f"array_{w}x{h}_{self._created_ns}"
            logger.warning(
                f"No stable identity for {w}x{h} array image, embedding will only "
                f"be reused through this SourceImage object"
            )

    @classmethod
    def from_file(cls, path: Union[str, Path], identity: Optional[str] = None) -> SourceImage:
        """Reference an image file; pixels are read on first use."""
        return cls(locator=str(Path(path).resolve()), identity=identity)

    @classmethod
    def from_array(
        cls,
        pixels: NDArray[np.uint8],
        identity: Optional[str] = None,
    ) -> SourceImage:
        """Wrap an RGB, RGBA or grayscale uint8 array."""
        return cls(pixels=pixels, identity=identity)

    @classmethod
    def from_bytes(cls, data: bytes, identity: str) -> SourceImage:
        """Decode an encoded image (PNG, JPEG, ...) held in memory."""
        buffer = np.frombuffer(data, dtype=np.uint8)
        decoded = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
        if decoded is None:
            raise PlatformError(f"Could not decode image bytes for '{identity}'")
        return cls(pixels=_to_rgb_order(decoded), identity=identity)

    @property
    def pixels(self) -> NDArray[np.uint8]:
        """RGB(A) pixel raster, decoding the file on first access."""
        if self._pixels is None:
            decoded = cv2.imread(self.locator, cv2.IMREAD_UNCHANGED)
            if decoded is None:
                raise PlatformError(f"Could not read image from {self.locator}")
            self._pixels = _to_rgb_order(decoded)
        return self._pixels

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def __repr__(self) -> str:
        return f"SourceImage(identity={self.identity!r})"


def _to_rgb_order(image: NDArray[np.uint8]) -> NDArray[np.uint8]:
    """OpenCV decodes to BGR(A); everything downstream expects RGB(A)."""
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    return image


@dataclass(frozen=True)
class PreprocessedImage:
    """Encoder input tensor and the size of the image it came from."""
    tensor: NDArray[np.float32]  # 1 x 3 x T x T
    original_width: int
    original_height: int


@dataclass(frozen=True)
class EmbeddingEntry:
    """
    A cached encoder output.

    The dimensions are those of the image that produced the embedding and
    are the only ones valid for scaling clicks against it.
    """
    embedding: NDArray[np.float32]
    original_width: int
    original_height: int


@dataclass
class MaskImage:
    """
    Binary mask as an RGBA raster.

    RGB is always 0; alpha is 255 for foreground and 0 for background.
    Read alpha, not RGB, to recover the mask.
    """
    data: NDArray[np.uint8]  # H x W x 4

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def alpha(self) -> NDArray[np.uint8]:
        return self.data[..., 3]

    @property
    def foreground(self) -> NDArray[np.bool_]:
        return self.alpha > 0

    @property
    def area(self) -> int:
        return int(np.count_nonzero(self.alpha))

    def save(self, path: Union[str, Path]) -> None:
        """Write as PNG, keeping the alpha channel."""
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        if not cv2.imwrite(str(path), cv2.cvtColor(self.data, cv2.COLOR_RGBA2BGRA)):
            raise PlatformError(f"Could not write mask to {path}")


@dataclass
class SessionState:
    """Mutable state of one interactive segmentation session."""
    image_identity: str
    clicks: List[Click] = field(default_factory=list)
    last_mask: Optional[MaskImage] = None
