"""
Base class for inference backends.

To add a new backend:
1. Create a new file in the backends/ directory
2. Inherit from InferenceBackend and implement its abstract members
3. Write an async loader `(ModelSource, SessionOptions) -> InferenceBackend`
4. Register the loader in backends/__init__.py BACKENDS dict

A tensor is a numpy array: it carries the dtype, the buffer and the shape.
"""
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, List

import numpy as np

from tinysam.core.config import SessionOptions
from .model_source import ModelSource


class InferenceBackend(ABC):
    """Abstract base class for a loaded model.

    Attributes:
        output_names: Output tensor names in declaration order
    """

    @property
    @abstractmethod
    def output_names(self) -> List[str]:
        """Output names of the model graph, in declaration order."""
        pass

    @abstractmethod
    async def run(self, feeds: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        """Run the model.

        Args:
            feeds: Named input tensors

        Returns:
            Named output tensors
        """
        pass

    def first_output(self, outputs: Dict[str, np.ndarray]) -> np.ndarray:
        """Pick the first declared output from a run() result."""
        return outputs[self.output_names[0]]


BackendLoader = Callable[[ModelSource, SessionOptions], Awaitable[InferenceBackend]]
