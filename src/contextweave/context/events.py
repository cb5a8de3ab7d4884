"""Listener list for memory change notifications."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Union

from .types import MemoryChangedEvent

logger = logging.getLogger(__name__)

# Listeners may be plain functions or coroutine functions
MemoryListener = Callable[[MemoryChangedEvent], Union[None, Awaitable[Any]]]


class MemoryChangedNotifier:
    """Fire-and-forget fan-out of MemoryChangedEvent.

    Coroutine listeners are scheduled as tasks and never awaited, so a slow
    subscriber cannot hold up a refresh.
    """

    def __init__(self) -> None:
        self._listeners: list[MemoryListener] = []
        self._pending: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, callback: MemoryListener) -> None:
        self._listeners.append(callback)

    def unsubscribe(self, callback: MemoryListener) -> None:
        try:
            self._listeners.remove(callback)
        except ValueError:
            logger.debug(f"Listener not registered: {callback!r}")

    def emit(self, event: MemoryChangedEvent) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if asyncio.iscoroutine(result):
                    task = asyncio.ensure_future(result)
                    self._pending.add(task)
                    task.add_done_callback(self._on_task_done)
            except Exception as e:
                logger.error(f"Error in memory listener: {e}")

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Error in memory listener: {task.exception()}")
