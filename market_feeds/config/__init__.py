import os
import yaml
from pathlib import Path

_config = None


def settings_path() -> Path:
    override = os.environ.get("MARKET_FEEDS_SETTINGS")
    if override:
        return Path(override).expanduser()
    return Path(__file__).parent / "settings.yaml"


def get_config() -> dict:
    global _config
    if _config is None:
        with open(settings_path(), "r") as f:
            _config = yaml.safe_load(f) or {}
    return _config


def reload_config():
    global _config
    _config = None
    return get_config()
