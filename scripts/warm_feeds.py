#!/usr/bin/env python3
"""Warm every dashboard feed once and print the engine health report.

Usage:
    python scripts/warm_feeds.py [--only coingecko,fred] [--json]
"""

import argparse
import asyncio
import json
import logging
import sys
import time

from market_feeds import get_engine, shutdown_engine
from market_feeds.sources import (
    AcledSource,
    CoinGeckoSource,
    FirmsSource,
    FredSource,
    GdeltSource,
    OpenSkySource,
    YahooSource,
)
from market_feeds.sources.yahoo import INDICES, METALS

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("warm-feeds")


def _warmers(engine):
    return {
        "coingecko": (CoinGeckoSource(engine), lambda s: s.markets()),
        "yahoo": (YahooSource(engine), lambda s: s.quotes(INDICES + METALS)),
        "fred": (FredSource(engine), lambda s: s.fetch_all()),
        "acled": (AcledSource(engine), lambda s: s.events()),
        "gdelt": (GdeltSource(engine), lambda s: s.articles()),
        "firms": (FirmsSource(engine), lambda s: s.hotspots()),
        "opensky": (OpenSkySource(engine), lambda s: s.aircraft()),
    }


async def warm(only: list[str]) -> dict:
    engine = get_engine()
    warmers = _warmers(engine)
    selected = [n for n in warmers if not only or n in only]

    async def _one(name):
        source, call = warmers[name]
        t0 = time.time()
        try:
            result = await call(source)
        finally:
            await source.close()
        size = len(result) if result is not None else 0
        logger.info("  %s: %d item(s) in %.1fs [%s]", name, size, time.time() - t0,
                    engine.status(name).state)
        return name, size

    results = dict(await asyncio.gather(*(_one(n) for n in selected)))
    report = engine.health_report()
    await shutdown_engine()
    return {"items": results, "health": report}


def main():
    parser = argparse.ArgumentParser(description="Warm dashboard feed caches")
    parser.add_argument("--only", default="", help="Comma-separated source names")
    parser.add_argument("--json", action="store_true", help="Print the full health report as JSON")
    args = parser.parse_args()

    only = [s.strip() for s in args.only.split(",") if s.strip()]
    result = asyncio.run(warm(only))

    empty = [n for n, size in result["items"].items() if size == 0]
    if args.json:
        print(json.dumps(result, indent=2, default=str))
    if empty:
        logger.warning("No data from: %s", ", ".join(empty))
    return 0 if not empty else 1


if __name__ == "__main__":
    sys.exit(main())
