"""Yahoo Finance quotes via yfinance (indices, metals, energy, FX, bonds)."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import pandas as pd

from ..errors import NetworkFailure, NoData
from ..utils import symbols_key
from .base import FeedSource

logger = logging.getLogger(__name__)

INDICES = ["^GSPC", "^DJI", "^IXIC", "^RUT", "^FTSE", "^GDAXI", "^FCHI", "^N225", "000001.SS", "^HSI", "^BSESN"]
METALS = ["GC=F", "SI=F", "PL=F", "PA=F", "HG=F"]
ENERGY = ["CL=F", "BZ=F", "NG=F"]
FOREX = ["DX-Y.NYB", "EURUSD=X", "GBPUSD=X", "USDJPY=X", "USDCNY=X", "USDCHF=X", "AUDUSD=X", "USDCAD=X"]
BONDS = ["^IRX", "^FVX", "^TNX", "^TYX"]


@dataclass
class Quote:
    symbol: str
    last: float
    prev: float | None
    change: float | None
    pct: float | None
    quote_time: str


def quotes_from_download(data: pd.DataFrame, symbols: list[str]) -> dict[str, Quote]:
    """Last/previous close per symbol from a ``yf.download`` frame; symbols with no data are omitted."""
    out: dict[str, Quote] = {}
    if data is None or data.empty:
        return out
    is_multi = isinstance(data.columns, pd.MultiIndex)
    for symbol in symbols:
        try:
            frame = data[symbol] if is_multi else data
        except KeyError:
            continue
        if "Close" not in frame.columns:
            continue
        close = pd.to_numeric(frame["Close"], errors="coerce").dropna()
        if close.empty:
            continue
        last = float(close.iloc[-1])
        prev = float(close.iloc[-2]) if len(close) >= 2 else None
        change = last - prev if prev is not None else None
        pct = (change / prev * 100.0) if prev not in (None, 0) else None
        ts = pd.to_datetime(close.index[-1], errors="coerce")
        out[symbol] = Quote(
            symbol=symbol,
            last=last,
            prev=prev,
            change=change,
            pct=pct,
            quote_time=ts.strftime("%Y-%m-%d %H:%M:%S") if pd.notna(ts) else "",
        )
    return out


class YahooSource(FeedSource):
    """Batch quotes; yfinance is blocking, so it runs in a worker thread."""

    name = "yahoo"

    def _yf(self):
        try:
            import yfinance as yf

            return yf
        except Exception as exc:
            raise NetworkFailure("yfinance unavailable") from exc

    def _download(self, symbols: list[str]) -> pd.DataFrame:
        yf = self._yf()
        try:
            return yf.download(
                tickers=" ".join(symbols),
                period="5d",
                interval="1d",
                auto_adjust=False,
                progress=False,
                group_by="ticker",
                threads=True,
            )
        except Exception as exc:
            raise NetworkFailure(f"yahoo: {type(exc).__name__}: {exc}") from exc

    async def quotes(self, symbols: list[str]) -> dict[str, Quote]:
        key = symbols_key(symbols)
        if not key:
            return {}
        wanted = key.split(",")

        async def _load(_base_url: str) -> dict[str, Quote]:
            data = await asyncio.to_thread(self._download, wanted)
            quotes = quotes_from_download(data, wanted)
            if not quotes:
                raise NoData(f"yahoo: no quotes for {key}")
            missing = set(wanted) - set(quotes)
            if missing:
                logger.debug(f"yahoo: no data for {sorted(missing)}")
            return quotes

        return await self._fetch(key, _load)

    async def quote(self, symbol: str) -> Quote | None:
        return (await self.quotes([symbol])).get(symbol.strip().upper())


def gold_silver_ratio(quotes: dict[str, Quote]) -> float | None:
    gold, silver = quotes.get("GC=F"), quotes.get("SI=F")
    if not gold or not silver or silver.last == 0:
        return None
    return gold.last / silver.last
