"""NASA FIRMS hotspot CSV parsing and adapter."""

import httpx
import pytest

from market_feeds.errors import MalformedResponse
from market_feeds.sources.firms import FirmsSource, parse_hotspots

VIIRS_CSV = """latitude,longitude,bright_ti4,scan,track,acq_date,acq_time,satellite,instrument,confidence,version,bright_ti5,frp,daynight
34.12,-118.45,367.0,0.39,0.36,2024-05-01,0312,N,VIIRS,h,2.0NRT,290.1,5.2,N
-3.50,25.10,330.2,0.41,0.37,2024-05-01,1120,N,VIIRS,n,2.0NRT,298.0,14.8,D
51.00,10.00,310.0,0.40,0.36,2024-05-01,1125,N,VIIRS,l,2.0NRT,285.0,2.1,D
,12.00,310.0,0.40,0.36,2024-05-01,1125,N,VIIRS,h,2.0NRT,285.0,50.0,D
"""

MODIS_CSV = """latitude,longitude,brightness,acq_date,acq_time,satellite,confidence,frp
12.5,100.2,320.5,2024-05-01,0630,Terra,85,22.0
"""


@pytest.fixture
def firms_engine(make_engine, make_config):
    return make_engine(make_config(
        "firms", base_url="https://firms.modaps.eosdis.nasa.gov/api/area/csv", cache_ttl_s=600,
    ))


class TestParseHotspots:

    def test_keeps_high_confidence_or_strong(self):
        spots = parse_hotspots(VIIRS_CSV)
        assert [(s.latitude, s.longitude) for s in spots] == [(34.12, -118.45), (-3.5, 25.1)]
        first = spots[0]
        assert first.confidence == "h"
        assert first.acq_time == "0312"
        assert first.brightness == 367.0
        assert first.satellite == "N"

    def test_modis_columns(self):
        spots = parse_hotspots(MODIS_CSV)
        assert len(spots) == 1
        assert spots[0].brightness == 320.5
        assert spots[0].confidence == "85"
        assert spots[0].frp == 22.0

    def test_min_frp_threshold(self):
        assert len(parse_hotspots(VIIRS_CSV, min_frp=20.0)) == 1

    def test_empty_body(self):
        assert parse_hotspots("") == []
        assert parse_hotspots("  \n") == []

    def test_error_pages_are_malformed(self):
        with pytest.raises(MalformedResponse):
            parse_hotspots("<!DOCTYPE html><html>Invalid MAP_KEY</html>")
        with pytest.raises(MalformedResponse):
            parse_hotspots('{"error": "Invalid API call."}')

    def test_missing_coordinates(self):
        with pytest.raises(MalformedResponse):
            parse_hotspots("acq_date,frp\n2024-05-01,3.0\n")


class TestFirmsSource:

    @pytest.mark.asyncio
    async def test_hotspots_url_and_cache(self, firms_engine, mock_client):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, text=VIIRS_CSV)

        source = FirmsSource(firms_engine, mock_client(handler), map_key="abc123")
        spots = await source.hotspots()
        assert len(spots) == 2
        assert requests[0].url.path == "/api/area/csv/abc123/VIIRS_SNPP_NRT/world/1"
        await source.hotspots()
        assert len(requests) == 1
        await source.close()

    def test_map_key_defaults(self, firms_engine, monkeypatch):
        monkeypatch.delenv("FIRMS_MAP_KEY", raising=False)
        assert FirmsSource(firms_engine).map_key == "DEMO_KEY"
        monkeypatch.setenv("FIRMS_MAP_KEY", "env-key")
        assert FirmsSource(firms_engine).map_key == "env-key"

    @pytest.mark.asyncio
    async def test_rejects_bad_arguments(self, firms_engine):
        source = FirmsSource(firms_engine, map_key="k")
        with pytest.raises(ValueError):
            await source.hotspots(satellite="LANDSAT")
        with pytest.raises(ValueError):
            await source.hotspots(day_range=3)

    @pytest.mark.asyncio
    async def test_no_fires_today_degrades_to_empty(self, firms_engine, mock_client):
        header = VIIRS_CSV.splitlines()[0] + "\n"
        source = FirmsSource(firms_engine, mock_client(lambda req: httpx.Response(200, text=header)), map_key="k")
        assert await source.hotspots() == []
        assert firms_engine.health_report()["firms"]["backoff"]["last_failure"] == "no_data"
        await source.close()
