"""NASA FIRMS fire/thermal hotspots (CSV)."""

from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass

import pandas as pd

from ..errors import MalformedResponse
from .base import FeedSource

logger = logging.getLogger(__name__)

SATELLITES = ("VIIRS_SNPP_NRT", "MODIS_NRT")


@dataclass
class Hotspot:
    latitude: float
    longitude: float
    brightness: float
    confidence: str
    acq_date: str
    acq_time: str
    satellite: str
    frp: float   # fire radiative power


def _column(df: pd.DataFrame, name: str, default) -> pd.Series:
    if name in df.columns:
        return df[name]
    return pd.Series(default, index=df.index)


def parse_hotspots(text: str, min_frp: float = 10.0) -> list[Hotspot]:
    """Parse a FIRMS area CSV, keeping high-confidence or strong (frp > min_frp) points."""
    body = text.strip()
    if not body:
        return []
    if body.startswith(("<", "{")):
        raise MalformedResponse(f"firms: expected CSV, got {body[:80]!r}")
    try:
        df = pd.read_csv(io.StringIO(body), dtype={"acq_time": str, "confidence": str})
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as e:
        raise MalformedResponse(f"firms: unreadable CSV: {e}") from e
    if not {"latitude", "longitude"} <= set(df.columns):
        raise MalformedResponse(f"firms: missing coordinates, columns={list(df.columns)}")

    bright_col = "bright_ti4" if "bright_ti4" in df.columns else "brightness"
    out = pd.DataFrame({
        "latitude": pd.to_numeric(df["latitude"], errors="coerce"),
        "longitude": pd.to_numeric(df["longitude"], errors="coerce"),
        "brightness": pd.to_numeric(_column(df, bright_col, 0.0), errors="coerce"),
        "confidence": _column(df, "confidence", "n"),
        "acq_date": _column(df, "acq_date", ""),
        "acq_time": _column(df, "acq_time", ""),
        "satellite": _column(df, "satellite", ""),
        "frp": pd.to_numeric(_column(df, "frp", 0.0), errors="coerce"),
    })
    out = out.dropna(subset=["latitude", "longitude"]).copy()
    out["brightness"] = out["brightness"].fillna(0.0)
    out["frp"] = out["frp"].fillna(0.0)
    out[["confidence", "acq_date", "acq_time", "satellite"]] = (
        out[["confidence", "acq_date", "acq_time", "satellite"]].fillna("").astype(str)
    )
    keep = out["confidence"].str.lower().isin(["h", "high"]) | (out["frp"] > min_frp)
    return [Hotspot(**row) for row in out[keep].to_dict(orient="records")]


class FirmsSource(FeedSource):
    """Global hotspots; map key from ``FIRMS_MAP_KEY`` (NASA demo key otherwise)."""

    name = "firms"

    def __init__(self, *args, map_key: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.map_key = map_key or os.environ.get("FIRMS_MAP_KEY", "DEMO_KEY")

    async def hotspots(self, satellite: str = "VIIRS_SNPP_NRT", day_range: int = 1) -> list[Hotspot]:
        if satellite not in SATELLITES:
            raise ValueError(f"unknown FIRMS satellite: {satellite}")
        if day_range not in (1, 2, 10):
            raise ValueError("day_range must be 1, 2 or 10")
        key = f"{satellite}/world/{day_range}"

        async def _load(base_url: str) -> list[Hotspot]:
            text = await self._get_text(f"{base_url.rstrip('/')}/{self.map_key}/{key}")
            return parse_hotspots(text)

        return await self._fetch(key, _load)
