"""GDELT DOC API: conflict and supply-chain news articles."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ..utils import normalize_cache_key
from .base import FeedSource

logger = logging.getLogger(__name__)

CONFLICT_QUERY = "conflict war military"
SUPPLY_CHAIN_QUERY = (
    '"supply chain" OR "shipping disruption" OR "semiconductor shortage" OR '
    '"port congestion" OR "freight rates" OR "trade war" OR "food security" OR '
    '"energy crisis" OR "rare earth" OR "chip shortage"'
)

# First match wins; anything else is "logistics".
CATEGORY_PATTERNS = [
    ("shipping", re.compile(r"ship|port|freight|container|maritime|canal|vessel")),
    ("semiconductor", re.compile(r"semiconductor|chip|wafer|fab|tsmc|intel|nvidia")),
    ("energy", re.compile(r"oil|gas|energy|opec|pipeline|refiner|lng|coal")),
    ("food", re.compile(r"food|grain|wheat|rice|famine|fertilizer|crop")),
    ("trade", re.compile(r"tariff|trade war|sanction|embargo|export ban|import")),
]


@dataclass(frozen=True)
class GdeltArticle:
    title: str
    url: str
    domain: str
    language: str
    source_country: str
    tone: float
    date_added: str
    image: str | None = None
    category: str = ""


def _parse_tone(raw) -> float:
    if raw is None:
        return 0.0
    try:
        return float(str(raw).split(",")[0])
    except ValueError:
        return 0.0


def categorize(title: str) -> str:
    lower = title.lower()
    for category, pattern in CATEGORY_PATTERNS:
        if pattern.search(lower):
            return category
    return "logistics"


def parse_articles(data: dict) -> list[GdeltArticle]:
    items = []
    for a in data.get("articles") or []:
        title = (a.get("title") or "").strip()
        if not title:
            continue
        items.append(GdeltArticle(
            title=title,
            url=a.get("url", ""),
            domain=a.get("domain", ""),
            language=a.get("language") or "English",
            source_country=a.get("sourcecountry", ""),
            tone=_parse_tone(a.get("tone")),
            date_added=a.get("seendate", ""),
            image=a.get("socialimage") or None,
            category=categorize(title),
        ))
    return items


class GdeltSource(FeedSource):
    """GDELT article lists; one cache key per query/timespan/size."""

    name = "gdelt"

    async def articles(
        self,
        query: str = CONFLICT_QUERY,
        timespan: str = "24h",
        max_records: int = 30,
    ) -> list[GdeltArticle]:
        params = {
            "query": query,
            "mode": "ArtList",
            "maxrecords": str(max_records),
            "format": "json",
            "timespan": timespan,
            "sort": "DateDesc",
        }
        key = normalize_cache_key("/doc", params)

        async def _load(base_url: str) -> list[GdeltArticle]:
            # GDELT answers over-complex or too-frequent queries with a text page.
            data = await self._get_json(base_url, params, expect=dict)
            return parse_articles(data)

        return await self._fetch(key, _load)

    async def supply_chain_articles(self) -> list[GdeltArticle]:
        return await self.articles(SUPPLY_CHAIN_QUERY, timespan="7d", max_records=40)
