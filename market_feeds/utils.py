"""Cache-key helpers."""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import urlencode


def normalize_cache_key(path: str, params: Mapping[str, Any] | None = None) -> str:
    """Stable key for a request: path plus query params sorted by name.

    A query string already embedded in ``path`` is merged with ``params``.
    Empty fragments (``a=1&&b=2``, trailing ``&``) are dropped.
    """
    base, _, query = path.partition("?")
    pairs = [p for p in query.split("&") if p]
    if params:
        pairs.extend(
            urlencode({k: v}) for k, v in params.items() if v is not None
        )
    return base + "?" + "&".join(sorted(pairs))


def symbols_key(symbols: list[str]) -> str:
    """Order-insensitive key for a batch of ticker symbols."""
    return ",".join(sorted({s.strip().upper() for s in symbols if s and s.strip()}))
