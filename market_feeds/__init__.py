"""Resilient upstream data access: TTL cache, single-flight, rate-limited queue, backoff."""

from .cache import CacheEntry, TTLCache
from .engine import FetchEngine, get_engine, init_engine, reset_engine, shutdown_engine
from .errors import (
    FetchFailure,
    MalformedResponse,
    NetworkFailure,
    NoData,
    RateLimited,
    SourceCoolingDown,
    UnknownSourceError,
)
from .registry import SourceConfig, SourceRegistry, load_registry
from .status import SourceStatus

__all__ = [
    "CacheEntry",
    "TTLCache",
    "FetchEngine",
    "get_engine",
    "init_engine",
    "reset_engine",
    "shutdown_engine",
    "FetchFailure",
    "MalformedResponse",
    "NetworkFailure",
    "NoData",
    "RateLimited",
    "SourceCoolingDown",
    "UnknownSourceError",
    "SourceConfig",
    "SourceRegistry",
    "load_registry",
    "SourceStatus",
]
