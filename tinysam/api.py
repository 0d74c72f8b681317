"""
Module-level API bound to a default Segmenter.

The default instance is created on first use from the default
configuration. Use configure() to replace it, or instantiate Segmenter
directly when several independent pipelines are needed.
"""

from __future__ import annotations

from typing import Optional, Sequence

from .backends import BackendLoader
from .core.config import InitOptions, SegmentationConfig
from .core.contracts import Click, MaskImage
from .pipeline.orchestrator import ImageLike, Segmenter
from .session.session_manager import SegmentationSession


_default_segmenter: Optional[Segmenter] = None


def get_segmenter() -> Segmenter:
    """Return the default Segmenter, creating it on first use."""
    global _default_segmenter
    if _default_segmenter is None:
        _default_segmenter = Segmenter()
    return _default_segmenter


def configure(
    config: Optional[SegmentationConfig] = None,
    backend_loader: Optional[BackendLoader] = None,
) -> Segmenter:
    """Replace the default Segmenter with one built from config."""
    global _default_segmenter
    _default_segmenter = Segmenter(config, backend_loader=backend_loader)
    return _default_segmenter


async def initialize(options: Optional[InitOptions] = None):
    await get_segmenter().initialize(options)


def create_session(image: ImageLike) -> SegmentationSession:
    return get_segmenter().create_session(image)


async def segment(image: ImageLike, clicks: Sequence[Click]) -> Optional[MaskImage]:
    return await get_segmenter().segment(image, clicks)


async def precompute_embedding(image: ImageLike) -> str:
    return await get_segmenter().precompute_embedding(image)


def clear_embedding_cache():
    get_segmenter().clear_embedding_cache()


def clear_all_sessions():
    get_segmenter().clear_all_sessions()
