"""
Embedding cache.

Memoizes the encoder pass per image identity. Concurrent first-time
requests for one identity share a single in-flight computation.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from typing import Awaitable, Callable, Dict, List, Optional
from loguru import logger

from tinysam.core.contracts import EmbeddingEntry
from .shared_task import start_shared_task


class EmbeddingCache:
    """
    Identity-keyed store of encoder outputs.

    Unbounded by default. With max_entries set, the least recently used
    entry is evicted once the bound is exceeded.
    """

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive or None")
        self.max_entries = max_entries

        self._entries: OrderedDict[str, EmbeddingEntry] = OrderedDict()
        self._pending: Dict[str, asyncio.Task] = {}
        # Bumped by clear() so in-flight results are not written back
        self._generation = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: str) -> bool:
        return identity in self._entries

    def identities(self) -> List[str]:
        return list(self._entries.keys())

    def get(self, identity: str) -> Optional[EmbeddingEntry]:
        entry = self._entries.get(identity)
        if entry is not None and self.max_entries is not None:
            self._entries.move_to_end(identity)
        return entry

    def put(self, identity: str, entry: EmbeddingEntry):
        self._entries[identity] = entry
        self._entries.move_to_end(identity)

        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted embedding for {evicted}")

    def clear(self):
        """Drop every entry and detach in-flight computations."""
        count = len(self._entries)
        self._entries.clear()
        self._pending.clear()
        self._generation += 1
        logger.info(f"Embedding cache cleared ({count} entries)")

    def is_pending(self, identity: str) -> bool:
        return identity in self._pending

    async def get_or_compute(
        self,
        identity: str,
        compute: Callable[[], Awaitable[EmbeddingEntry]],
    ) -> EmbeddingEntry:
        """
        Return the cached entry, computing it at most once concurrently.

        Args:
            identity: Image identity
            compute: Coroutine factory running the encoder

        Returns:
            The cached or freshly computed entry
        """
        entry = self.get(identity)
        if entry is not None:
            logger.debug(f"Embedding cache hit for {identity}")
            return entry

        task = self._pending.get(identity)
        if task is None:
            logger.debug(f"Embedding cache miss for {identity}")
            task = start_shared_task(
                self._compute(identity, compute, self._generation),
                name=f"embedding:{identity}",
            )
            self._pending[identity] = task
        else:
            logger.debug(f"Joining in-flight embedding for {identity}")

        # Abandoning the wait must not cancel the shared computation
        return await asyncio.shield(task)

    async def _compute(
        self,
        identity: str,
        compute: Callable[[], Awaitable[EmbeddingEntry]],
        generation: int,
    ) -> EmbeddingEntry:
        try:
            entry = await compute()
            if generation == self._generation:
                self.put(identity, entry)
            return entry
        finally:
            if generation == self._generation:
                self._pending.pop(identity, None)
