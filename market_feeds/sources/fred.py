"""FRED (Federal Reserve Economic Data) macro series.

https://fred.stlouisfed.org/docs/api/fred/
The API key is read from ``FRED_API_KEY``; without one the source returns
its empty default and never touches the network.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from datetime import date, timedelta

import pandas as pd

from ..errors import NoData
from .base import FeedSource

logger = logging.getLogger(__name__)

# Key macro series we track: (id, label, unit)
FRED_SERIES = [
    ("DFF", "Fed Funds Rate", "%"),
    ("CPIAUCSL", "CPI (All Urban)", "Index"),
    ("UNRATE", "Unemployment Rate", "%"),
    ("T10Y2Y", "10Y-2Y Spread", "%"),
    ("GDP", "Real GDP", "B$"),
    ("M2SL", "M2 Money Supply", "B$"),
    ("DTWEXBGS", "Trade-Weighted USD", "Index"),
    ("VIXCLS", "VIX", "Index"),
]
_SERIES_META = {sid: (label, unit) for sid, label, unit in FRED_SERIES}

DASHBOARD_SERIES = [sid for sid, _, _ in FRED_SERIES[:4]]


@dataclass
class FredSeries:
    series_id: str
    label: str
    unit: str
    latest_value: float
    previous_value: float
    change: float
    observations: list[dict] = field(default_factory=list)   # last 12 months


def summarize_observations(
    series_id: str,
    raw: list[dict],
    months: int = 12,
) -> FredSeries | None:
    """Collapse raw observations to one value per month (the last one)."""
    df = pd.DataFrame(raw)
    if df.empty or not {"date", "value"} <= set(df.columns):
        return None
    # FRED marks missing values with "."
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    df = df.dropna(subset=["value"])
    if df.empty:
        return None
    df["month"] = df["date"].astype(str).str[:7]
    monthly = df.drop_duplicates(subset=["month"], keep="last").reset_index(drop=True)

    latest = float(monthly["value"].iloc[-1])
    prev = float(monthly["value"].iloc[-2]) if len(monthly) > 1 else latest
    tail = monthly.tail(months)
    label, unit = _SERIES_META.get(series_id, (series_id, ""))
    return FredSeries(
        series_id=series_id,
        label=label,
        unit=unit,
        latest_value=latest,
        previous_value=prev,
        change=latest - prev,
        observations=[
            {"date": m, "value": float(v)} for m, v in zip(tail["month"], tail["value"])
        ],
    )


class FredSource(FeedSource):
    """FRED observations, one cache key per series."""

    name = "fred"

    def __init__(self, *args, api_key: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._api_key = api_key

    def _key(self) -> str | None:
        if self._api_key is None:
            self._api_key = os.environ.get("FRED_API_KEY", "")
        return self._api_key or None

    def has_key(self) -> bool:
        return self._key() is not None

    def clear_key(self):
        """Forget the API key and everything fetched with it (auth change)."""
        self._api_key = None
        self.engine.invalidate(self.name)

    async def series(self, series_id: str, history_days: int = 730) -> FredSeries | None:
        api_key = self._key()
        if api_key is None:
            return self.config.empty_value()

        params = {
            "series_id": series_id,
            "api_key": api_key,
            "file_type": "json",
            "observation_start": (date.today() - timedelta(days=history_days)).isoformat(),
            "sort_order": "asc",
        }

        async def _load(base_url: str) -> FredSeries:
            data = await self._get_json(
                base_url.rstrip("/") + "/series/observations", params, expect=dict
            )
            summary = summarize_observations(series_id, data.get("observations") or [])
            if summary is None:
                raise NoData(f"fred: no observations for {series_id}")
            return summary

        return await self._fetch(series_id, _load)

    async def fetch_all(self, series_ids: list[str] | None = None) -> list[FredSeries]:
        ids = series_ids or DASHBOARD_SERIES
        results = await asyncio.gather(*(self.series(sid) for sid in ids))
        return [r for r in results if r]

    async def build_context(self) -> str | None:
        """Plain-text macro summary for the prediction prompt."""
        data = await self.fetch_all([sid for sid, _, _ in FRED_SERIES])
        if not data:
            return None
        lines = []
        for s in data:
            sign = "+" if s.change >= 0 else ""
            val = (
                f"{s.latest_value / 1000:.1f}T"
                if abs(s.latest_value) > 1000
                else f"{s.latest_value:.2f}"
            )
            lines.append(f"  {s.label}: {val} {s.unit} ({sign}{s.change:.2f} MoM)")
        return "FRED MACRO DATA (LIVE):\n" + "\n".join(lines)
