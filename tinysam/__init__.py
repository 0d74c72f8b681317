"""
tinysam - click-driven interactive image segmentation.

A two-stage inference pipeline: an image encoder computes one dense
embedding per image, and a lightweight decoder turns that embedding plus
user clicks into a mask. This package orchestrates the two stages:

1. Preprocess the image into the encoder's input tensor
2. Cache the embedding per image identity
3. Encode clicks into the decoder's named inputs
4. Convert the decoder output into an RGBA mask image
"""

from .core.constants import VERSION
from .core.contracts import Click, ClickType, MaskImage, SourceImage
from .core.config import InitOptions, SegmentationConfig, SessionOptions, load_config
from .core.errors import (
    BackendLoadError,
    NotFoundError,
    PlatformError,
    PreconditionError,
    SegmentationError,
)
from .pipeline.orchestrator import Segmenter
from .session.session_manager import SegmentationSession, SessionManager
from .api import (
    clear_all_sessions,
    clear_embedding_cache,
    configure,
    create_session,
    get_segmenter,
    initialize,
    precompute_embedding,
    segment,
)

__version__ = VERSION
