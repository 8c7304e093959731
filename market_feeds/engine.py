"""Fetch orchestrator: the one entry point widgets use to get upstream data.

Per source the engine owns a cache, a backoff tracker, a rate-limited
scheduler and a single-flight coordinator. ``fetch`` answers from fresh
cache when it can, otherwise joins or starts one scheduled network
attempt, and on any failure degrades to stale cache, then to the source's
empty default. It never raises for upstream problems.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from .backoff import BackoffTracker
from .cache import TTLCache
from .errors import (
    FetchFailure,
    NetworkFailure,
    NoData,
    RateLimited,
    SourceCoolingDown,
    UnknownSourceError,
)
from .registry import SourceConfig, SourceRegistry, load_registry
from .scheduler import RateLimitedScheduler
from .singleflight import SingleFlight
from .status import ERROR, LOADING, OK, RATE_LIMITED, STALE, SourceStatus, StatusBoard

logger = logging.getLogger(__name__)

NetworkFn = Callable[[], Awaitable[Any]]


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    try:
        return len(value) == 0
    except TypeError:
        return False


@dataclass
class SourceSlot:
    """Everything the engine owns for one source."""
    config: SourceConfig
    cache: TTLCache
    backoff: BackoffTracker
    scheduler: RateLimitedScheduler
    flight: SingleFlight


class FetchEngine:
    """Cache + single-flight + backoff + scheduler, one set per source."""

    def __init__(
        self,
        registry: SourceRegistry | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        wall_clock: Callable[[], float] = time.time,
    ):
        self.registry = registry if registry is not None else load_registry()
        self._clock = clock
        self._sleep = sleep
        self._slots: dict[str, SourceSlot] = {
            cfg.name: self._make_slot(cfg) for cfg in self.registry
        }
        self._statuses = StatusBoard(wall_clock)

    def _make_slot(self, cfg: SourceConfig) -> SourceSlot:
        backoff = BackoffTracker(cfg, clock=self._clock)
        return SourceSlot(
            config=cfg,
            cache=TTLCache(cfg.cache_ttl_s, clock=self._clock),
            backoff=backoff,
            scheduler=RateLimitedScheduler(cfg, backoff, clock=self._clock, sleep=self._sleep),
            flight=SingleFlight(cfg.name),
        )

    def _slot(self, source: str) -> SourceSlot:
        try:
            return self._slots[source]
        except KeyError:
            raise UnknownSourceError(source) from None

    def config(self, source: str) -> SourceConfig:
        return self._slot(source).config

    # ── public surface ──

    async def fetch(
        self,
        source: str,
        key: str,
        network_fn: NetworkFn,
        fallback_fn: NetworkFn | None = None,
    ) -> Any:
        """Best available value for ``key``: fresh cache, new fetch, stale cache, empty default."""
        slot = self._slot(source)
        value, fresh = slot.cache.get(key)
        if fresh:
            logger.debug(f"Cache hit {source}:{key}")
            return value
        return await slot.flight.run(
            key, lambda: self._refresh(slot, key, network_fn, fallback_fn)
        )

    def invalidate(self, source: str, key: str | None = None):
        """Drop one cached key, or everything for ``source`` (cache and backoff)."""
        slot = self._slot(source)
        if key is not None:
            slot.cache.invalidate(key)
            return
        slot.cache.clear()
        slot.backoff.reset()
        self._statuses.clear(source)
        logger.info(f"Invalidated all cached data for {source}")

    def peek_stale(self, source: str, key: str) -> Any | None:
        entry = self._slot(source).cache.entry(key)
        return entry.value if entry is not None else None

    def is_cooling_down(self, source: str) -> bool:
        return self._slot(source).backoff.is_cooling_down()

    def status(self, source: str) -> SourceStatus:
        self._slot(source)
        return self._statuses.get(source)

    def subscribe(self, listener: Callable[[str, SourceStatus], None]) -> Callable[[], None]:
        return self._statuses.subscribe(listener)

    def health_report(self) -> dict:
        return {
            name: {
                "status": self._statuses.get(name).state,
                "cache": slot.cache.stats(),
                "backoff": slot.backoff.report(),
                "queue": {
                    "pending": slot.scheduler.pending(),
                    "dispatched": slot.scheduler.dispatched,
                    "skipped": slot.scheduler.skipped,
                },
                "in_flight": len(slot.flight),
            }
            for name, slot in self._slots.items()
        }

    def reset(self):
        for slot in self._slots.values():
            slot.cache.clear()
            slot.backoff.reset()
        self._statuses.clear()

    async def aclose(self):
        for slot in self._slots.values():
            await slot.scheduler.aclose()

    # ── internals ──

    def _best_available(self, slot: SourceSlot, key: str) -> Any:
        stale = slot.cache.get_stale(key)
        if stale is not None:
            return stale
        return slot.config.empty_value()

    async def _refresh(
        self,
        slot: SourceSlot,
        key: str,
        network_fn: NetworkFn,
        fallback_fn: NetworkFn | None,
    ) -> Any:
        name = slot.config.name
        if slot.backoff.is_cooling_down():
            logger.debug(
                f"{name} cooling down ({slot.backoff.remaining():.0f}s left), serving cached {key}"
            )
            return self._best_available(slot, key)
        try:
            return await slot.scheduler.enqueue(
                key, lambda: self._attempt(slot, key, network_fn, fallback_fn)
            )
        except (SourceCoolingDown, FetchFailure):
            return self._best_available(slot, key)

    async def _attempt(
        self,
        slot: SourceSlot,
        key: str,
        network_fn: NetworkFn,
        fallback_fn: NetworkFn | None,
    ) -> Any:
        # Runs inside the drain loop: cache and backoff are updated before the
        # next job for this source is considered.
        name = slot.config.name
        value, fresh = slot.cache.peek(key)
        if fresh:
            return value

        self._statuses.set(name, LOADING)
        started = self._clock()
        try:
            value = await self._call(slot, network_fn)
        except FetchFailure as e:
            if fallback_fn is None:
                self._record_failure(slot, key, e)
                raise
            logger.warning(f"{name} primary failed for {key}: {e}; trying fallback upstream")
            try:
                value = await self._call(slot, fallback_fn)
            except FetchFailure as fb_e:
                worst = max((e, fb_e), key=slot.config.backoff_for)
                self._record_failure(slot, key, worst)
                raise fb_e from e
            logger.info(f"{name} fallback upstream succeeded for {key}")

        slot.cache.put(key, value)
        slot.backoff.record_success(self._clock() - started)
        self._statuses.set(name, OK, "")
        return value

    async def _call(self, slot: SourceSlot, fn: NetworkFn) -> Any:
        timeout = slot.config.timeout_s
        try:
            value = await asyncio.wait_for(fn(), timeout=timeout)
        except FetchFailure:
            raise
        except asyncio.TimeoutError as e:
            raise NetworkFailure(f"timed out after {timeout}s") from e
        except Exception as e:
            raise NetworkFailure(f"{type(e).__name__}: {e}") from e
        if _is_empty(value):
            raise NoData("empty result")
        return value

    def _record_failure(self, slot: SourceSlot, key: str, failure: FetchFailure):
        name = slot.config.name
        logger.warning(f"{name} fetch failed for {key}: {failure}")
        slot.backoff.record_failure(failure)
        if isinstance(failure, RateLimited):
            self._statuses.set(name, RATE_LIMITED, str(failure))
        elif key in slot.cache:
            self._statuses.set(name, STALE, str(failure))
        else:
            self._statuses.set(name, ERROR, f"{name}: {failure}")


# ── process-wide instance ──

_engine: FetchEngine | None = None


def get_engine() -> FetchEngine:
    global _engine
    if _engine is None:
        _engine = FetchEngine()
    return _engine


def init_engine(registry: SourceRegistry | None = None, **kwargs) -> FetchEngine:
    global _engine
    _engine = FetchEngine(registry, **kwargs)
    return _engine


def reset_engine():
    """Clear every cache and backoff on the shared engine (e.g. on auth change)."""
    if _engine is not None:
        _engine.reset()


async def shutdown_engine():
    global _engine
    if _engine is not None:
        await _engine.aclose()
        _engine = None
