"""Upstream adapters that feed the fetch engine."""

from .acled import AcledSource, ConflictEvent
from .base import FeedSource
from .coingecko import CoinGeckoSource
from .firms import FirmsSource, Hotspot
from .fred import FredSeries, FredSource
from .gdelt import GdeltArticle, GdeltSource
from .opensky import Aircraft, OpenSkySource
from .yahoo import Quote, YahooSource

__all__ = [
    "FeedSource",
    "AcledSource",
    "ConflictEvent",
    "CoinGeckoSource",
    "FirmsSource",
    "Hotspot",
    "FredSeries",
    "FredSource",
    "GdeltArticle",
    "GdeltSource",
    "Aircraft",
    "OpenSkySource",
    "Quote",
    "YahooSource",
]


def default_sources(engine=None) -> list[FeedSource]:
    return [
        CoinGeckoSource(engine),
        YahooSource(engine),
        FredSource(engine),
        AcledSource(engine),
        GdeltSource(engine),
        FirmsSource(engine),
        OpenSkySource(engine),
    ]
