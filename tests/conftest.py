"""Shared fixtures: stub inference backends with call counters."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

import numpy as np
import pytest

from tinysam.backends import InferenceBackend, ModelSource
from tinysam.core.config import SegmentationConfig, SessionOptions
from tinysam.core.contracts import SourceImage
from tinysam.pipeline.orchestrator import Segmenter


EMBEDDING = np.full((1, 4, 2, 2), 0.5, dtype=np.float32)
MASK = np.array([1, -1, 0, 1], dtype=np.float32).reshape(1, 1, 2, 2)


class StubBackend(InferenceBackend):
    """Returns fixed outputs and records every run."""

    def __init__(self, outputs: Dict[str, np.ndarray], yield_control: bool = True):
        self.outputs = outputs
        self.yield_control = yield_control
        self.calls: List[Dict[str, np.ndarray]] = []

    @property
    def output_names(self) -> List[str]:
        return list(self.outputs.keys())

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def run(self, feeds):
        self.calls.append(feeds)
        if self.yield_control:
            await asyncio.sleep(0)
        return dict(self.outputs)


class StubLoader:
    """Backend loader handing out stub encoders and decoders."""

    def __init__(self, encoder: Optional[StubBackend] = None, decoder: Optional[StubBackend] = None):
        self.encoder = encoder or StubBackend({"image_embeddings": EMBEDDING})
        self.decoder = decoder or StubBackend({"masks": MASK, "iou_predictions": np.ones((1, 1))})
        self.loads: List[ModelSource] = []
        self.options: List[SessionOptions] = []
        self.failures_left = 0

    def load_count(self, name: str) -> int:
        return sum(1 for source in self.loads if name in source.description)

    async def __call__(self, source: ModelSource, options: SessionOptions) -> InferenceBackend:
        self.loads.append(source)
        self.options.append(options)
        await asyncio.sleep(0)
        if self.failures_left > 0:
            self.failures_left -= 1
            raise RuntimeError("model file is corrupt")
        return self.decoder if "decoder" in source.description else self.encoder


@pytest.fixture
def config() -> SegmentationConfig:
    return SegmentationConfig(
        encoder_model_path="models/encoder.onnx",
        decoder_model_path="models/decoder.onnx",
        encoder_input_size=64,
        decoder_mask_size=16,
    )


@pytest.fixture
def loader() -> StubLoader:
    return StubLoader()


@pytest.fixture
def segmenter(config: SegmentationConfig, loader: StubLoader) -> Segmenter:
    return Segmenter(config, backend_loader=loader)


@pytest.fixture
def image() -> SourceImage:
    pixels = np.random.default_rng(0).integers(0, 256, size=(48, 32, 3), dtype=np.uint8)
    return SourceImage.from_array(pixels, identity="test://image-1")


@pytest.fixture
def make_segmenter(config: SegmentationConfig):
    """Factory for extra Segmenters, each with its own stub loader."""
    def factory():
        stub_loader = StubLoader()
        return Segmenter(config, backend_loader=stub_loader), stub_loader
    return factory
