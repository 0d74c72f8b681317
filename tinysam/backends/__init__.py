"""
Inference backend module.

To add a new backend:
1. Create a new file in this directory (e.g., tensorrt_backend.py)
2. Implement a class inheriting from InferenceBackend and an async loader
3. Register the loader in the BACKENDS dict below
"""
from typing import Dict, List

from .base import BackendLoader, InferenceBackend
from .model_source import ModelSource, resolve_model_source
from .onnx_backend import OnnxBackend, load_onnx_backend

# Registry of available backend loaders
BACKENDS: Dict[str, BackendLoader] = {
    "onnx": load_onnx_backend,
}


def get_backend_loader(name: str) -> BackendLoader:
    """Get a backend loader by name.

    Args:
        name: Backend name (e.g., "onnx")

    Returns:
        Async loader producing InferenceBackend instances

    Raises:
        ValueError: If the backend name is not registered
    """
    if name not in BACKENDS:
        available = ", ".join(BACKENDS.keys())
        raise ValueError(f"Unknown backend '{name}'. Available: {available}")

    return BACKENDS[name]


def list_backends() -> List[str]:
    """List available backend names."""
    return list(BACKENDS.keys())


__all__ = ['InferenceBackend', 'BackendLoader', 'ModelSource', 'OnnxBackend',
           'get_backend_loader', 'list_backends', 'load_onnx_backend',
           'resolve_model_source']
