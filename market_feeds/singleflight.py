"""Coalesce concurrent requests for the same key into one underlying call."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class SingleFlight:
    """At most one outstanding producer per key.

    The producer runs as its own task, so a waiter that gets cancelled does
    not take the shared fetch down with it.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._inflight: dict[str, asyncio.Task] = {}

    async def run(self, key: str, producer: Callable[[], Awaitable[Any]]) -> Any:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(producer())
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._release(k, t))
        else:
            logger.debug(f"Joining in-flight fetch {self.name}:{key}")
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Task):
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the outcome retrieved; waiters that are still around re-raise it.
        if not task.cancelled():
            task.exception()

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    def __len__(self) -> int:
        return len(self._inflight)
