"""Source registry and settings loading tests."""

import pytest

from market_feeds.config import get_config, reload_config
from market_feeds.errors import NetworkFailure, RateLimited, UnknownSourceError
from market_feeds.registry import SourceConfig, SourceRegistry, load_registry


class TestSourceConfig:
    """Per-source parameters."""

    def test_empty_values_are_fresh_objects(self):
        cfg = SourceConfig(name="x", empty="list")
        first = cfg.empty_value()
        first.append(1)
        assert cfg.empty_value() == []
        assert SourceConfig(name="x", empty="dict").empty_value() == {}
        assert SourceConfig(name="x", empty="none").empty_value() is None

    def test_invalid_empty_kind(self):
        with pytest.raises(ValueError):
            SourceConfig(name="x", empty="tuple")

    def test_negative_duration_rejected(self):
        with pytest.raises(ValueError):
            SourceConfig(name="x", min_gap_s=-1)

    def test_generic_failure_uses_backoff(self):
        cfg = SourceConfig(name="x", backoff_s=120, rate_limit_backoff_s=300)
        assert cfg.backoff_for(NetworkFailure("down")) == 120
        assert cfg.backoff_for(None) == 120

    def test_rate_limit_waits_longer(self):
        cfg = SourceConfig(name="x", backoff_s=120, rate_limit_backoff_s=300)
        assert cfg.backoff_for(RateLimited()) == 300

    def test_rate_limit_defaults_to_twice_backoff(self):
        cfg = SourceConfig(name="x", backoff_s=45)
        assert cfg.backoff_for(RateLimited()) == 90

    def test_retry_after_extends_window_up_to_cap(self):
        cfg = SourceConfig(name="x", backoff_s=60, rate_limit_backoff_s=120, max_backoff_s=600)
        assert cfg.backoff_for(RateLimited(retry_after=30)) == 120
        assert cfg.backoff_for(RateLimited(retry_after=400)) == 400
        assert cfg.backoff_for(RateLimited(retry_after=7200)) == 600

    def test_frozen(self):
        cfg = SourceConfig(name="x")
        with pytest.raises(AttributeError):
            cfg.cache_ttl_s = 1


class TestSourceRegistry:
    """Lookup and construction from settings."""

    def test_unknown_source(self):
        registry = SourceRegistry([SourceConfig(name="a")])
        with pytest.raises(UnknownSourceError):
            registry.get("b")
        with pytest.raises(KeyError):
            registry.get("b")

    def test_duplicate_source(self):
        with pytest.raises(ValueError):
            SourceRegistry([SourceConfig(name="a"), SourceConfig(name="a")])

    def test_from_config_merges_defaults(self):
        registry = SourceRegistry.from_config({
            "defaults": {"cache_ttl_s": 60, "backoff_s": 60, "retryable_status_codes": [429, 503]},
            "sources": {
                "coingecko": {"min_gap_s": 6, "cache_ttl_s": 90},
                "fred": {"empty": None},
                "plain": None,
            },
        })
        assert registry.names() == ["coingecko", "fred", "plain"]
        cg = registry.get("coingecko")
        assert cg.min_gap_s == 6
        assert cg.cache_ttl_s == 90
        assert cg.backoff_s == 60
        assert cg.retryable_status_codes == (429, 503)
        assert registry.get("fred").empty_value() is None
        assert registry.get("plain").cache_ttl_s == 60
        assert "plain" in registry
        assert len(registry) == 3

    def test_unknown_settings_are_ignored(self):
        registry = SourceRegistry.from_config({"sources": {"x": {"colour": "red", "cache_ttl_s": 5}}})
        assert registry.get("x").cache_ttl_s == 5


class TestSettings:
    """Packaged settings.yaml."""

    def test_default_table(self):
        registry = load_registry()
        cg = registry.get("coingecko")
        assert cg.min_gap_s == 6
        assert cg.cache_ttl_s == 90
        for name in ("yahoo", "fred", "acled", "gdelt", "firms", "opensky"):
            assert name in registry
        assert registry.get("fred").empty_value() is None
        assert registry.get("yahoo").empty_value() == {}
        assert registry.get("acled").cache_ttl_s == 600
        assert registry.get("acled").backoff_s == 120
        assert registry.get("opensky").cache_ttl_s == 15

    def test_settings_override_via_env(self, tmp_path, monkeypatch):
        path = tmp_path / "feeds.yaml"
        path.write_text("sources:\n  only:\n    cache_ttl_s: 5\n")
        monkeypatch.setenv("MARKET_FEEDS_SETTINGS", str(path))
        try:
            reload_config()
            assert list(get_config()["sources"]) == ["only"]
            assert load_registry().names() == ["only"]
        finally:
            monkeypatch.delenv("MARKET_FEEDS_SETTINGS")
            reload_config()
        assert "coingecko" in get_config()["sources"]

    def test_proxy_with_direct_fallback(self, tmp_path, monkeypatch):
        path = tmp_path / "feeds.yaml"
        path.write_text(
            "sources:\n"
            "  coingecko:\n"
            "    base_url: https://feeds.example.internal/coingecko\n"
            "    fallback_url: https://api.coingecko.com\n"
        )
        monkeypatch.setenv("MARKET_FEEDS_SETTINGS", str(path))
        try:
            reload_config()
            cg = load_registry().get("coingecko")
        finally:
            monkeypatch.delenv("MARKET_FEEDS_SETTINGS")
            reload_config()
        assert cg.base_url == "https://feeds.example.internal/coingecko"
        assert cg.fallback_url == "https://api.coingecko.com"
