"""ACLED conflict events (last 30 days)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from .base import FeedSource

logger = logging.getLogger(__name__)

EVENTS_KEY = "events:30d"


@dataclass
class ConflictEvent:
    id: str
    event_date: str
    event_type: str
    sub_event_type: str
    actor1: str
    actor2: str
    country: str
    admin1: str
    location: str
    latitude: float
    longitude: float
    fatalities: int
    notes: str = ""
    source: str = ""


def _to_float(v) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return float("nan")


def _to_int(v) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return 0


def parse_events(data: dict) -> list[ConflictEvent]:
    return [
        ConflictEvent(
            id=str(e.get("data_id") or e.get("event_id_cnty") or ""),
            event_date=e.get("event_date", ""),
            event_type=e.get("event_type", ""),
            sub_event_type=e.get("sub_event_type", ""),
            actor1=e.get("actor1", ""),
            actor2=e.get("actor2") or "",
            country=e.get("country", ""),
            admin1=e.get("admin1", ""),
            location=e.get("location", ""),
            latitude=_to_float(e.get("latitude")),
            longitude=_to_float(e.get("longitude")),
            fatalities=_to_int(e.get("fatalities")),
            notes=e.get("notes") or "",
            source=e.get("source") or "",
        )
        for e in data.get("data") or []
    ]


class AcledSource(FeedSource):
    """One cached 30-day pull; filters are applied per call on top of it."""

    name = "acled"

    async def _all_events(self) -> list[ConflictEvent]:
        params = {
            "limit": "500",
            "order": "desc",
            "event_date": (date.today() - timedelta(days=30)).isoformat(),
            "event_date_where": ">=",
        }

        async def _load(base_url: str) -> list[ConflictEvent]:
            return parse_events(await self._get_json(base_url, params, expect=dict))

        return await self._fetch(EVENTS_KEY, _load)

    async def events(
        self,
        country: str | None = None,
        event_type: str | None = None,
        limit: int = 100,
    ) -> list[ConflictEvent]:
        data = await self._all_events()
        if country:
            needle = country.lower()
            data = [e for e in data if needle in e.country.lower()]
        if event_type:
            data = [e for e in data if e.event_type == event_type]
        return data[:limit]
