"""CoinGecko coins/markets snapshot and other endpoints.

One shared snapshot backs the ticker tape, heatmap, top movers and the
prediction engine, so every caller goes through the same cache key and
concurrent widgets collapse into one request. Other endpoints (global
stats, per-coin charts) go through ``get`` on the same paced queue.
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qsl

from ..utils import normalize_cache_key
from .base import FeedSource

logger = logging.getLogger(__name__)

MARKETS_PATH = "/api/v3/coins/markets"
GLOBAL_PATH = "/api/v3/global"


class CoinGeckoSource(FeedSource):
    """Free-tier CoinGecko (~10-30 req/min); spaced by the source's min gap."""

    name = "coingecko"

    async def markets(self, per_page: int = 50, vs_currency: str = "usd") -> list[dict]:
        params = {
            "vs_currency": vs_currency,
            "order": "market_cap_desc",
            "per_page": per_page,
            "sparkline": "false",
            "price_change_percentage": "24h,7d,30d",
        }
        key = normalize_cache_key(MARKETS_PATH, params)

        async def _load(base_url: str) -> list[dict]:
            data = await self._get_json(base_url.rstrip("/") + MARKETS_PATH, params, expect=list)
            return [c for c in data if isinstance(c, dict) and c.get("id")]

        return await self._fetch(key, _load)

    async def get(
        self,
        path: str,
        params: dict | None = None,
        expect: type | tuple[type, ...] = (dict, list),
    ):
        """Any CoinGecko endpoint, cached per normalised path and paced with the snapshot."""
        base, _, query = path.partition("?")
        merged = dict(parse_qsl(query))
        merged.update({k: v for k, v in (params or {}).items() if v is not None})
        key = normalize_cache_key(base, merged)

        async def _load(base_url: str):
            return await self._get_json(base_url.rstrip("/") + base, merged or None, expect=expect)

        return await self._fetch(key, _load)

    async def global_stats(self) -> dict | None:
        """Total market cap, volume and dominance from ``/api/v3/global``."""
        data = await self.get(GLOBAL_PATH, expect=dict)
        if not isinstance(data, dict):
            return None
        return data.get("data") or None

    async def coin(self, coin_id: str) -> dict | None:
        """Single entry out of the shared snapshot."""
        for c in await self.markets():
            if c.get("id") == coin_id:
                return c
        return None
