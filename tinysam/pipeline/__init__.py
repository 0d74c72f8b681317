"""
Inference orchestration: backend initialization, embedding caching and
the click-to-mask pipeline.
"""

from .embedding_cache import EmbeddingCache
from .init_gate import InitializationGate
from .orchestrator import Segmenter
