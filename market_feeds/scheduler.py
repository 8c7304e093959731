"""Per-source FIFO that spaces outbound calls by a minimum gap."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from .backoff import BackoffTracker
from .errors import SourceCoolingDown
from .registry import SourceConfig

logger = logging.getLogger(__name__)


@dataclass
class QueueJob:
    key: str
    run: Callable[[], Awaitable[Any]]
    future: asyncio.Future


class RateLimitedScheduler:
    """Serialises jobs for one source.

    The drain task exists only while the queue is non-empty. Consecutive
    dispatches start at least ``min_gap_s`` apart, including across idle
    periods, and the backoff tracker is consulted right before each one.
    """

    def __init__(
        self,
        config: SourceConfig,
        backoff: BackoffTracker,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config
        self._backoff = backoff
        self._clock = clock
        self._sleep = sleep
        self._queue: deque[QueueJob] = deque()
        self._drainer: asyncio.Task | None = None
        self._last_dispatch: float | None = None
        self.dispatched = 0
        self.skipped = 0

    async def enqueue(self, key: str, run: Callable[[], Awaitable[Any]]) -> Any:
        future = asyncio.get_running_loop().create_future()
        self._queue.append(QueueJob(key=key, run=run, future=future))
        if self._drainer is None or self._drainer.done():
            self._drainer = asyncio.ensure_future(self._drain())
        return await future

    async def _wait_for_gap(self):
        if self._last_dispatch is None or self.config.min_gap_s <= 0:
            return
        while True:
            wait = self.config.min_gap_s - (self._clock() - self._last_dispatch)
            if wait <= 0:
                return
            await self._sleep(wait)

    async def _drain(self):
        while self._queue:
            job = self._queue.popleft()
            if job.future.done():
                continue

            try:
                await self._dispatch(job)
            except asyncio.CancelledError:
                # The job is already off the queue; aclose() cannot reach it.
                job.future.cancel()
                raise

    async def _dispatch(self, job: QueueJob):
        await self._wait_for_gap()

        if self._backoff.is_cooling_down():
            self.skipped += 1
            logger.debug(
                f"{self.config.name}: cooling down ({self._backoff.remaining():.0f}s left), "
                f"skipping {job.key}"
            )
            if not job.future.done():
                job.future.set_exception(SourceCoolingDown(self.config.name))
            return

        self._last_dispatch = self._clock()
        self.dispatched += 1
        try:
            result = await job.run()
        except Exception as e:
            if not job.future.done():
                job.future.set_exception(e)
        else:
            if not job.future.done():
                job.future.set_result(result)

    def pending(self) -> int:
        return len(self._queue)

    async def aclose(self):
        while self._queue:
            job = self._queue.popleft()
            job.future.cancel()
        if self._drainer is not None and not self._drainer.done():
            self._drainer.cancel()
            try:
                await self._drainer
            except asyncio.CancelledError:
                pass
        self._drainer = None
