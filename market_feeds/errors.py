"""Failure taxonomy for upstream fetches."""

from __future__ import annotations


class FetchFailure(Exception):
    """Base class for anything that makes one fetch attempt unusable."""

    kind: str = "failure"


class NetworkFailure(FetchFailure):
    """Connection error, timeout or non-2xx status."""

    kind = "network"


class RateLimited(FetchFailure):
    """Upstream explicitly throttled us (e.g. HTTP 429)."""

    kind = "rate_limited"

    def __init__(self, message: str = "rate limited", retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class MalformedResponse(FetchFailure):
    """Body is not parseable or does not match the expected shape."""

    kind = "malformed"


class NoData(FetchFailure):
    """Parsed fine but the result set is empty."""

    kind = "no_data"


class SourceCoolingDown(Exception):
    """Raised by the scheduler when a job is skipped because its source is in backoff."""


class UnknownSourceError(KeyError):
    """Source name is not in the registry."""
