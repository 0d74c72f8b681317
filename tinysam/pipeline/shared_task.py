"""
Tasks shared by several waiters.

Waiters attach through asyncio.shield, so one of them giving up never
cancels the work. If every waiter gives up and the work then fails, the
exception is still consumed and logged here instead of surfacing as
"Task exception was never retrieved".
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable
from loguru import logger


def _consume_exception(task: asyncio.Task):
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Shared task {task.get_name()} failed: {exc}")


def start_shared_task(coro: Awaitable[Any], name: str) -> asyncio.Task:
    """Schedule coro as a task whose failure is always observed."""
    task = asyncio.ensure_future(coro)
    task.set_name(name)
    task.add_done_callback(_consume_exception)
    return task
