"""
Backend Initialization Gate.

Loads the encoder and decoder backends. Concurrent initialize() calls
collapse onto a single in-flight load; a failed load clears the gate
so the next call starts over.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional, Union
from loguru import logger

from tinysam.backends import BackendLoader, InferenceBackend, resolve_model_source
from tinysam.backends.model_source import describe
from tinysam.core.config import InitOptions, SegmentationConfig, SessionOptions
from tinysam.core.errors import BackendLoadError
from .shared_task import start_shared_task


class InitializationGate:
    """
    Owner of the loaded encoder and decoder backends.

    Guarantees:
    - At most one load in flight
    - Already loaded backends are reused unless a path is given explicitly
    - Every waiter sees the same outcome of a shared load
    """

    def __init__(self, loader: BackendLoader, config: Optional[SegmentationConfig] = None):
        self._loader = loader
        self.config = config or SegmentationConfig()

        self.encoder: Optional[InferenceBackend] = None
        self.decoder: Optional[InferenceBackend] = None

        self._pending: Optional[asyncio.Task] = None

    @property
    def is_initializing(self) -> bool:
        return self._pending is not None

    @property
    def is_ready(self) -> bool:
        return self.encoder is not None and self.decoder is not None

    async def initialize(self, options: Optional[InitOptions] = None):
        """
        Make sure both backends are loaded.

        Args:
            options: Optional model path / session option overrides

        Raises:
            BackendLoadError: If a model fails to load
        """
        if self._pending is not None:
            logger.debug("Initialization already in flight, waiting for it")
            return await asyncio.shield(self._pending)

        if self.is_ready and options is None:
            return

        self._pending = start_shared_task(self._load(options or InitOptions()), name="initialize")
        return await asyncio.shield(self._pending)

    async def _load(self, options: InitOptions):
        try:
            session_options = options.session_options or self.config.session_options

            if self.encoder is None or options.encoder_model_path is not None:
                self.encoder = await self._load_model(
                    "encoder",
                    options.encoder_model_path or self.config.encoder_model_path,
                    session_options,
                )

            if self.decoder is None or options.decoder_model_path is not None:
                self.decoder = await self._load_model(
                    "decoder",
                    options.decoder_model_path or self.config.decoder_model_path,
                    session_options,
                )

            logger.info("Segmentation backends initialized")
        except Exception as e:
            logger.error(f"Initialization failed: {e}")
            raise
        finally:
            self._pending = None

    async def _load_model(
        self,
        name: str,
        path: Union[str, bytes],
        session_options: SessionOptions,
    ) -> InferenceBackend:
        start_time = time.perf_counter()
        try:
            source = await resolve_model_source(path, self.config.download_timeout_s)
            backend = await self._loader(source, session_options)
        except Exception as e:
            logger.error(f"Loading {name} model from {describe(path)} failed: {e}")
            raise BackendLoadError(name, describe(path), e) from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(f"Loaded {name} model from {describe(path)} in {elapsed_ms:.0f}ms")
        return backend
