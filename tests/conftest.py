"""pytest configuration and shared fixtures."""

import asyncio

import httpx
import pytest

from market_feeds.engine import FetchEngine
from market_feeds.registry import SourceConfig, SourceRegistry


class FakeClock:
    """Monotonic clock the tests move by hand; ``sleep`` advances it instantly."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

    async def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.advance(max(seconds, 0.0))
        await asyncio.sleep(0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_config():
    def _make(name: str = "feed", **overrides) -> SourceConfig:
        params = {
            "cache_ttl_s": 90.0,
            "min_gap_s": 0.0,
            "backoff_s": 30.0,
            "rate_limit_backoff_s": 60.0,
        }
        params.update(overrides)
        return SourceConfig(name=name, **params)

    return _make


@pytest.fixture
def make_engine(clock):
    engines = []

    def _make(*configs: SourceConfig) -> FetchEngine:
        engine = FetchEngine(
            SourceRegistry(configs),
            clock=clock,
            sleep=clock.sleep,
            wall_clock=clock,
        )
        engines.append(engine)
        return engine

    return _make


@pytest.fixture
def engine(make_engine, make_config):
    """Engine with one source "feed": TTL 90s, no gap, 30s backoff, 60s after a rate limit."""
    return make_engine(make_config())


@pytest.fixture
def mock_client():
    """httpx client whose requests are answered by ``handler(request)``."""
    clients = []

    def _make(handler) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    return _make


class CallCounter:
    """Async network function stub returning queued results or raising queued errors."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.called_at: list[float] = []

    def bind(self, clock):
        self._clock = clock
        return self

    async def __call__(self):
        self.calls += 1
        if getattr(self, "_clock", None) is not None:
            self.called_at.append(self._clock())
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def network():
    return CallCounter
