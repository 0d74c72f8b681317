"""
Core contracts, constants and configuration shared by every stage.
"""

from .contracts import (
    Click,
    ClickType,
    EmbeddingEntry,
    MaskImage,
    PreprocessedImage,
    SessionState,
    SourceImage,
)
from .errors import (
    BackendLoadError,
    NotFoundError,
    PlatformError,
    PreconditionError,
    SegmentationError,
)
