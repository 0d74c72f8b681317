"""
Segmentation Orchestrator.

Executes the click-to-mask pipeline:

1. Resolve the image identity
2. Reuse the cached embedding, or preprocess + encode + cache it
3. Build decoder inputs from the clicks and the cached dimensions
4. Run the decoder
5. Convert the mask into an RGBA MaskImage
"""

from __future__ import annotations

import time
from typing import Optional, Sequence, Union
import numpy as np
from numpy.typing import NDArray
from loguru import logger

from tinysam.backends import BackendLoader, get_backend_loader
from tinysam.core.constants import ENCODER_INPUT_NAME
from tinysam.core.config import InitOptions, SegmentationConfig
from tinysam.core.contracts import Click, EmbeddingEntry, MaskImage, SourceImage
from tinysam.core.errors import PreconditionError
from tinysam.segmentation import build_decoder_feeds, decoder_output_to_image, preprocess_image
from tinysam.session.session_manager import SegmentationSession, SessionManager
from .embedding_cache import EmbeddingCache
from .init_gate import InitializationGate


ImageLike = Union[SourceImage, NDArray[np.uint8]]


def as_source_image(image: ImageLike) -> SourceImage:
    """Wrap bare arrays; they get a weak, per-call identity."""
    if isinstance(image, SourceImage):
        return image
    if isinstance(image, np.ndarray):
        return SourceImage.from_array(image)
    raise TypeError(f"Expected SourceImage or numpy array, got {type(image).__name__}")


class Segmenter:
    """
    Main segmentation entry point.

    Owns the backends, the embedding cache and the session store, so
    several independent Segmenters can coexist.

    Usage:
        segmenter = Segmenter()
        await segmenter.initialize()

        image = SourceImage.from_file("photo.jpg")
        session = segmenter.create_session(image)
        session.add_click(120, 80).add_click(40, 200, ClickType.EXCLUDE)
        mask = await session.segment(image)
    """

    def __init__(
        self,
        config: Optional[SegmentationConfig] = None,
        backend_loader: Optional[BackendLoader] = None,
        cache: Optional[EmbeddingCache] = None,
    ):
        """
        Initialize the segmenter.

        Args:
            config: Segmentation configuration
            backend_loader: Async model loader (defaults to config.backend)
            cache: Embedding cache (defaults to one sized by config)
        """
        self.config = config or SegmentationConfig()

        loader = backend_loader or get_backend_loader(self.config.backend)
        self.gate = InitializationGate(loader, self.config)
        self.cache = cache if cache is not None else EmbeddingCache(self.config.cache_max_entries)
        self.sessions = SessionManager(self)

    # ============================================================
    # INITIALIZATION
    # ============================================================

    async def initialize(self, options: Optional[InitOptions] = None):
        """Load the encoder and decoder backends (idempotent)."""
        await self.gate.initialize(options)

    @property
    def is_initialized(self) -> bool:
        return self.gate.is_ready

    # ============================================================
    # SEGMENTATION
    # ============================================================

    async def segment(
        self,
        image: ImageLike,
        clicks: Sequence[Click],
    ) -> Optional[MaskImage]:
        """
        Segment an image from a set of clicks.

        Args:
            image: Image to segment
            clicks: Clicks in original image pixels

        Returns:
            MaskImage, or None when there are no clicks

        Raises:
            PreconditionError: If initialize() has not completed
            PlatformError: If the image pixels cannot be read
        """
        if not self.gate.is_ready:
            raise PreconditionError("Please call initialize() before segment().")

        if not clicks:
            return None

        image = as_source_image(image)
        entry = await self._embedding_for(image)

        start_time = time.perf_counter()
        feeds = build_decoder_feeds(
            clicks,
            entry.embedding,
            entry.original_width,
            entry.original_height,
            input_size=self.config.encoder_input_size,
            mask_size=self.config.decoder_mask_size,
        )
        decoder = self.gate.decoder
        outputs = await decoder.run(feeds)
        mask = decoder_output_to_image(decoder.first_output(outputs))

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            f"Decoded {len(clicks)} click(s) for {image.identity} in {elapsed_ms:.1f}ms"
        )
        return mask

    async def precompute_embedding(self, image: ImageLike) -> str:
        """
        Encode and cache an image ahead of interactive use.

        Returns:
            The image identity the embedding is cached under

        Raises:
            PreconditionError: If the encoder is not loaded
        """
        if self.gate.encoder is None:
            raise PreconditionError(
                "Please call initialize() before precompute_embedding()."
            )

        image = as_source_image(image)
        await self._embedding_for(image)
        return image.identity

    async def _embedding_for(self, image: SourceImage) -> EmbeddingEntry:
        return await self.cache.get_or_compute(image.identity, lambda: self._encode(image))

    async def _encode(self, image: SourceImage) -> EmbeddingEntry:
        preprocessed = preprocess_image(image, self.config.encoder_input_size)

        start_time = time.perf_counter()
        encoder = self.gate.encoder
        outputs = await encoder.run({ENCODER_INPUT_NAME: preprocessed.tensor})
        embedding = encoder.first_output(outputs)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Encoded {image.identity} "
            f"({preprocessed.original_width}x{preprocessed.original_height}) "
            f"in {elapsed_ms:.0f}ms"
        )
        return EmbeddingEntry(
            embedding=embedding,
            original_width=preprocessed.original_width,
            original_height=preprocessed.original_height,
        )

    # ============================================================
    # SESSIONS AND CACHE MANAGEMENT
    # ============================================================

    def create_session(self, image: ImageLike) -> SegmentationSession:
        """Start an interactive session for an image."""
        return self.sessions.open(as_source_image(image))

    def clear_embedding_cache(self):
        self.cache.clear()

    def clear_all_sessions(self):
        self.sessions.clear()
