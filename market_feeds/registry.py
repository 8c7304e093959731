"""Static description of every upstream data source."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, Iterable, Iterator

from .config import get_config
from .errors import RateLimited, UnknownSourceError

logger = logging.getLogger(__name__)

_EMPTY_KINDS = ("list", "dict", "none")


@dataclass(frozen=True)
class SourceConfig:
    """Per-upstream throttle, cache and backoff parameters."""
    name: str
    base_url: str = ""
    fallback_url: str | None = None
    min_gap_s: float = 0.0
    cache_ttl_s: float = 60.0
    backoff_s: float = 60.0
    rate_limit_backoff_s: float | None = None   # None -> 2x backoff_s
    max_backoff_s: float = 900.0
    retryable_status_codes: tuple[int, ...] = (429,)
    timeout_s: float = 10.0
    empty: str = "list"

    def __post_init__(self):
        if self.empty not in _EMPTY_KINDS:
            raise ValueError(f"{self.name}: empty must be one of {_EMPTY_KINDS}, got {self.empty!r}")
        if self.min_gap_s < 0 or self.cache_ttl_s < 0 or self.backoff_s < 0:
            raise ValueError(f"{self.name}: durations must be non-negative")

    def empty_value(self) -> Any:
        if self.empty == "list":
            return []
        if self.empty == "dict":
            return {}
        return None

    def backoff_for(self, failure: BaseException | None = None) -> float:
        """Cooldown window after ``failure``; rate limits wait longer."""
        if not isinstance(failure, RateLimited):
            return self.backoff_s
        window = self.rate_limit_backoff_s
        if window is None:
            window = self.backoff_s * 2
        if failure.retry_after is not None:
            window = max(window, min(failure.retry_after, self.max_backoff_s))
        return window


_FIELD_NAMES = {f.name for f in fields(SourceConfig)}


def _build_config(name: str, raw: dict) -> SourceConfig:
    unknown = set(raw) - _FIELD_NAMES
    if unknown:
        logger.warning(f"Ignoring unknown settings for source {name}: {sorted(unknown)}")
    kwargs = {k: v for k, v in raw.items() if k in _FIELD_NAMES and k != "name"}
    if "retryable_status_codes" in kwargs:
        kwargs["retryable_status_codes"] = tuple(int(c) for c in kwargs["retryable_status_codes"])
    if kwargs.get("empty") is None and "empty" in kwargs:
        kwargs["empty"] = "none"
    return SourceConfig(name=name, **kwargs)


class SourceRegistry:
    """Read-only lookup of SourceConfig by name."""

    def __init__(self, configs: Iterable[SourceConfig] = ()):
        self._configs: dict[str, SourceConfig] = {}
        for cfg in configs:
            if cfg.name in self._configs:
                raise ValueError(f"duplicate source: {cfg.name}")
            self._configs[cfg.name] = cfg

    @classmethod
    def from_config(cls, cfg: dict) -> "SourceRegistry":
        defaults = cfg.get("defaults") or {}
        configs = []
        for name, overrides in (cfg.get("sources") or {}).items():
            configs.append(_build_config(name, {**defaults, **(overrides or {})}))
        return cls(configs)

    def get(self, name: str) -> SourceConfig:
        try:
            return self._configs[name]
        except KeyError:
            raise UnknownSourceError(name) from None

    def names(self) -> list[str]:
        return list(self._configs)

    def __contains__(self, name: object) -> bool:
        return name in self._configs

    def __iter__(self) -> Iterator[SourceConfig]:
        return iter(self._configs.values())

    def __len__(self) -> int:
        return len(self._configs)


def load_registry() -> SourceRegistry:
    return SourceRegistry.from_config(get_config())
