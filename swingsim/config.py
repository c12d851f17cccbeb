# swingsim/config.py
import copy
import os
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONFIG: Dict[str, Any] = {
    'system': {
        'log_level': 'INFO',
        'random_seed': None,
    },
    'market': {
        'base_prices': {
            'BTCUSDT': 20000.0,
            'ETHUSDT': 1500.0,
            'BNBUSDT': 300.0,
            'XRPUSDT': 0.5,
            'ADAUSDT': 0.35,
        },
        'default_base_price': 20000.0,
        'volatility': 0.005,
        'seed_jitter': 0.1,
        'seed_points': 20,
        'seed_spacing_seconds': 60,
        'history_capacity': 100,
    },
    'timers': {
        'price_interval_seconds': 3,
        'order_check_interval_seconds': 10,
        'cooldown_seconds': 10,
    },
    'strategy': {
        'mode': 'simulation',
        'pair': 'BTCUSDT',
        'rate_percentage': 1.5,
        'amount': 0.01,
        'last_action': 'sell',
    },
    'wallet': {
        'base': 1.0,
        'quote': 20000.0,
    },
    'audit': {
        'trade_log': 'logs/trades.csv',
    },
}


class ConfigError(Exception):
    pass


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[str] = "config.yaml", overrides: Optional[dict] = None) -> Dict[str, Any]:
    """
    Loads the YAML config and merges it over the built-in defaults.
    A missing file is not an error: the defaults are used as-is.
    """
    raw: Dict[str, Any] = {}
    if path and os.path.exists(path):
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ConfigError(f"{path}: top level must be a mapping, got {type(raw).__name__}")

    config = _deep_merge(DEFAULT_CONFIG, raw)
    if overrides:
        config = _deep_merge(config, overrides)
    return config
