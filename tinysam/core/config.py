"""
Configuration module for tinysam.

Settings come from a YAML file with these sections (all optional):

    backend: onnx
    models:
      encoder: path, URL or data: URL
      decoder: path, URL or data: URL
      download_timeout_s: 120
    session:
      execution_providers: [CPUExecutionProvider]
      graph_optimization_level: all
      extra: {}
    sizes:
      encoder_input: 1024
      decoder_mask: 256
    cache:
      max_entries: null   # null = unbounded
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Dict, Any, Union

import yaml
from loguru import logger

from .constants import (
    DEFAULT_DECODER_MODEL_PATH,
    DEFAULT_ENCODER_MODEL_PATH,
    DECODER_MASK_SIZE,
    ENCODER_INPUT_SIZE,
)


GRAPH_OPTIMIZATION_LEVELS = ("disabled", "basic", "extended", "all")


@dataclass
class SessionOptions:
    """Options handed to the inference backend when a model is loaded.

    Attributes:
        execution_providers: Execution providers in priority order
        graph_optimization_level: One of disabled, basic, extended, all
        extra: Backend-specific session config entries
    """
    execution_providers: List[str] = field(default_factory=lambda: ["CPUExecutionProvider"])
    graph_optimization_level: str = "all"
    extra: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if self.graph_optimization_level not in GRAPH_OPTIMIZATION_LEVELS:
            available = ", ".join(GRAPH_OPTIMIZATION_LEVELS)
            raise ValueError(
                f"Unknown graph optimization level '{self.graph_optimization_level}'. "
                f"Available: {available}"
            )

    def with_extra(self, **entries: str) -> SessionOptions:
        """Copy with additional session config entries."""
        return SessionOptions(
            execution_providers=list(self.execution_providers),
            graph_optimization_level=self.graph_optimization_level,
            extra={**self.extra, **entries},
        )


@dataclass
class InitOptions:
    """Per-call overrides for initialize().

    A model path given here forces that model to be (re)loaded even when
    one is already loaded. The other model is kept as is.
    """
    encoder_model_path: Optional[Union[str, bytes]] = None
    decoder_model_path: Optional[Union[str, bytes]] = None
    session_options: Optional[SessionOptions] = None


@dataclass
class SegmentationConfig:
    """Main configuration for a Segmenter.

    Attributes:
        backend: Registered inference backend name
        encoder_model_path: Default encoder model source
        decoder_model_path: Default decoder model source
        session_options: Default backend session options
        encoder_input_size: Edge length of the square encoder input
        decoder_mask_size: Edge length of the decoder's mask input
        cache_max_entries: Bound on cached embeddings (None = unbounded)
        download_timeout_s: Timeout for fetching remote model files
    """
    backend: str = "onnx"
    encoder_model_path: str = DEFAULT_ENCODER_MODEL_PATH
    decoder_model_path: str = DEFAULT_DECODER_MODEL_PATH
    session_options: SessionOptions = field(default_factory=SessionOptions)
    encoder_input_size: int = ENCODER_INPUT_SIZE
    decoder_mask_size: int = DECODER_MASK_SIZE
    cache_max_entries: Optional[int] = None
    download_timeout_s: float = 120.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SegmentationConfig:
        """Build from the parsed YAML layout documented above."""
        models = data.get('models', {}) or {}
        session = data.get('session', {}) or {}
        sizes = data.get('sizes', {}) or {}
        cache = data.get('cache', {}) or {}

        defaults = cls()
        default_session = SessionOptions()
        return cls(
            backend=data.get('backend', defaults.backend),
            encoder_model_path=models.get('encoder', defaults.encoder_model_path),
            decoder_model_path=models.get('decoder', defaults.decoder_model_path),
            session_options=SessionOptions(
                execution_providers=session.get(
                    'execution_providers', default_session.execution_providers
                ),
                graph_optimization_level=session.get(
                    'graph_optimization_level', default_session.graph_optimization_level
                ),
                extra={str(k): str(v) for k, v in (session.get('extra') or {}).items()},
            ),
            encoder_input_size=sizes.get('encoder_input', defaults.encoder_input_size),
            decoder_mask_size=sizes.get('decoder_mask', defaults.decoder_mask_size),
            cache_max_entries=cache.get('max_entries', defaults.cache_max_entries),
            download_timeout_s=models.get('download_timeout_s', defaults.download_timeout_s),
        )


def load_config(config_path: Optional[Union[str, Path]] = None) -> SegmentationConfig:
    """Load configuration from a YAML file, or defaults.

    Args:
        config_path: Path to a YAML settings file, or None for defaults

    Returns:
        SegmentationConfig with all settings
    """
    if config_path is None:
        return SegmentationConfig()

    path = Path(config_path)
    if not path.exists():
        logger.warning(f"Config file {path} not found, using defaults")
        return SegmentationConfig()

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    logger.info(f"Loaded configuration from {path}")
    return SegmentationConfig.from_dict(data)
