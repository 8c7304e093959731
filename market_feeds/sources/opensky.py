"""OpenSky Network live aircraft state vectors.

https://openskynetwork.github.io/opensky-api/rest.html
Anonymous access; state vectors come back as positional arrays.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..utils import normalize_cache_key
from .base import FeedSource

logger = logging.getLogger(__name__)

STATES_PATH = "/states/all"

# ICAO 24-bit address blocks allocated to military operators
MILITARY_PREFIXES = (
    "ae", "af",     # US
    "43c",          # UK
    "3f", "3e",     # Germany
    "380",          # France
    "340",          # Italy
)

BOUNDS_KEYS = ("lamin", "lomin", "lamax", "lomax")


@dataclass(frozen=True)
class Aircraft:
    icao24: str
    callsign: str
    origin_country: str
    longitude: float
    latitude: float
    baro_altitude: float | None
    velocity: float | None
    true_track: float | None
    on_ground: bool
    squawk: str | None
    category: int = 0


def is_military_icao(icao24: str) -> bool:
    return icao24.lower().startswith(MILITARY_PREFIXES)


def _at(row: list, i: int):
    return row[i] if len(row) > i else None


def parse_states(data: dict) -> list[Aircraft]:
    """State vectors with a position; rows without lat/lon are dropped."""
    out = []
    for row in data.get("states") or []:
        if not isinstance(row, list) or _at(row, 5) is None or _at(row, 6) is None:
            continue
        out.append(Aircraft(
            icao24=str(row[0] or ""),
            callsign=(_at(row, 1) or "").strip(),
            origin_country=_at(row, 2) or "",
            longitude=float(row[5]),
            latitude=float(row[6]),
            baro_altitude=_at(row, 7),
            velocity=_at(row, 9),
            true_track=_at(row, 10),
            on_ground=bool(_at(row, 8)),
            squawk=_at(row, 14),
            category=_at(row, 17) or 0,
        ))
    return out


class OpenSkySource(FeedSource):
    """Live aircraft, optionally inside a lat/lon box; one cache key per box."""

    name = "opensky"

    async def aircraft(self, bounds: dict | None = None) -> list[Aircraft]:
        params = None
        if bounds:
            missing = [k for k in BOUNDS_KEYS if k not in bounds]
            if missing:
                raise ValueError(f"bounds missing {missing}")
            params = {k: bounds[k] for k in BOUNDS_KEYS}
        key = normalize_cache_key(STATES_PATH, params)

        async def _load(base_url: str) -> list[Aircraft]:
            data = await self._get_json(base_url.rstrip("/") + STATES_PATH, params, expect=dict)
            return parse_states(data)

        return await self._fetch(key, _load)

    async def military(self, bounds: dict | None = None) -> list[Aircraft]:
        return [a for a in await self.aircraft(bounds) if is_military_icao(a.icao24)]
