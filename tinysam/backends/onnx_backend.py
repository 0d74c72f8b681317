"""
ONNX Runtime inference backend.

Wraps onnxruntime.InferenceSession. Session runs are executed in a
worker thread so the event loop stays responsive while a model runs.
"""
from __future__ import annotations

import asyncio
from typing import Dict, List

import numpy as np
import onnxruntime as ort
from loguru import logger

from tinysam.core.config import SessionOptions
from .base import InferenceBackend
from .model_source import INLINE_BYTES_CONFIG_KEY, ModelSource


_OPTIMIZATION_LEVELS = {
    "disabled": ort.GraphOptimizationLevel.ORT_DISABLE_ALL,
    "basic": ort.GraphOptimizationLevel.ORT_ENABLE_BASIC,
    "extended": ort.GraphOptimizationLevel.ORT_ENABLE_EXTENDED,
    "all": ort.GraphOptimizationLevel.ORT_ENABLE_ALL,
}


def build_session_options(source: ModelSource, options: SessionOptions) -> ort.SessionOptions:
    """Translate SessionOptions into onnxruntime session options."""
    session_options = ort.SessionOptions()
    session_options.graph_optimization_level = _OPTIMIZATION_LEVELS[
        options.graph_optimization_level
    ]

    extra = dict(options.extra)
    if source.inline:
        extra.setdefault(INLINE_BYTES_CONFIG_KEY, "1")
    for key, value in extra.items():
        session_options.add_session_config_entry(key, value)

    return session_options


class OnnxBackend(InferenceBackend):
    """A model loaded into an onnxruntime InferenceSession."""

    def __init__(self, session: ort.InferenceSession):
        self._session = session
        self._output_names = [o.name for o in session.get_outputs()]

    @property
    def output_names(self) -> List[str]:
        return list(self._output_names)

    async def run(self, feeds: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        outputs = await asyncio.to_thread(self._session.run, self._output_names, feeds)
        return dict(zip(self._output_names, outputs))


async def load_onnx_backend(source: ModelSource, options: SessionOptions) -> OnnxBackend:
    """Create an InferenceSession for a resolved model source."""
    session_options = build_session_options(source, options)
    session = await asyncio.to_thread(
        ort.InferenceSession,
        source.model,
        sess_options=session_options,
        providers=list(options.execution_providers),
    )
    logger.debug(
        f"Loaded {source.description} with providers {session.get_providers()}"
    )
    return OnnxBackend(session)
