"""
Load config from config.yaml with optional env overrides.
Single source of truth for server port, refresh cadence, acceptance threshold,
per-coin constants and per-coin source priority.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List

# Defaults if no YAML or env
_DEFAULTS: Dict[str, Any] = {
    "server": {"host": "0.0.0.0", "port": 3000},
    "logging": {"level": "INFO"},
    "refresh": {
        "interval_seconds": 600,
        "min_coins": 2,
        "parallel": False,
    },
    "alerts": {
        "drop_threshold_pct": -0.5,
        "ring_size": 10,
        "api_limit": 5,
    },
    "http": {
        "timeout_s": 15.0,
        "user_agent": "Mozilla/5.0 (compatible; mining-monitor)",
        "min_interval_s": 1.0,
    },
    "breaker": {"failure_threshold": 3, "cooldown_seconds": 300.0},
    "prices": {
        "provider": "coingecko",
        "pre_call_delay_s": 0.5,
        "fallback": {"BTC": 92000.0, "BCH": 450.0, "XEC": 0.00003},
    },
    "coins": {
        "BTC": {
            "name": "Bitcoin",
            "algorithm": "SHA-256",
            "block_reward": 3.125,
            "block_time_seconds": 600,
            "gecko_id": "bitcoin",
            "sources": ["blockchain_info", "mempool_space", "blockchair"],
        },
        "BCH": {
            "name": "Bitcoin Cash",
            "algorithm": "SHA-256",
            "block_reward": 3.125,
            "block_time_seconds": 600,
            "gecko_id": "bitcoin-cash",
            "sources": ["blockchair"],
        },
        "XEC": {
            "name": "eCash",
            "algorithm": "SHA-256",
            "block_reward": 1812500,
            "block_time_seconds": 537,
            "gecko_id": "ecash",
            "sources": ["blockchair"],
        },
    },
}


def _config_yaml_path() -> Path:
    """Config.yaml lives at repo root (parent of package dir) unless MINING_MONITOR_CONFIG is set."""
    override = os.environ.get("MINING_MONITOR_CONFIG")
    if override:
        return Path(override)
    return Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    import yaml

    config_path = _config_yaml_path()
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _env_overrides() -> dict:
    overrides: dict = {}
    port = os.environ.get("PORT")
    if port:
        overrides.setdefault("server", {})["port"] = int(port)
    host = os.environ.get("HOST")
    if host:
        overrides.setdefault("server", {})["host"] = host
    level = os.environ.get("LOG_LEVEL")
    if level:
        overrides.setdefault("logging", {})["level"] = level.upper()
    interval = os.environ.get("REFRESH_INTERVAL_SECONDS")
    if interval:
        overrides.setdefault("refresh", {})["interval_seconds"] = float(interval)
    min_coins_env = os.environ.get("MIN_COINS")
    if min_coins_env:
        overrides.setdefault("refresh", {})["min_coins"] = int(min_coins_env)
    return overrides


def get_config() -> dict:
    """Return merged config: defaults <- config.yaml <- env."""
    from_yaml = _load_yaml()
    merged = _deep_merge(_DEFAULTS, from_yaml)
    # A YAML coins table replaces the default one instead of extending it.
    yaml_coins = from_yaml.get("coins")
    if isinstance(yaml_coins, dict) and yaml_coins:
        merged["coins"] = yaml_coins
    merged = _deep_merge(merged, _env_overrides())
    return merged


# Convenience accessors
def server_host() -> str:
    return str(get_config()["server"]["host"])


def server_port() -> int:
    return int(get_config()["server"]["port"])


def log_level() -> str:
    return str(get_config()["logging"]["level"]).upper()


def refresh_interval_seconds() -> float:
    return float(get_config()["refresh"]["interval_seconds"])


def min_coins() -> int:
    return int(get_config()["refresh"]["min_coins"])


def parallel_resolution() -> bool:
    return bool(get_config()["refresh"]["parallel"])


def drop_threshold_pct() -> float:
    return float(get_config()["alerts"]["drop_threshold_pct"])


def alert_ring_size() -> int:
    return int(get_config()["alerts"]["ring_size"])


def alert_api_limit() -> int:
    return int(get_config()["alerts"]["api_limit"])


def http_timeout_s() -> float:
    return float(get_config()["http"]["timeout_s"])


def http_user_agent() -> str:
    return str(get_config()["http"]["user_agent"])


def min_interval_s() -> float:
    return float(get_config()["http"]["min_interval_s"])


def breaker_settings() -> Dict[str, float]:
    b = get_config()["breaker"]
    return {
        "failure_threshold": int(b["failure_threshold"]),
        "cooldown_seconds": float(b["cooldown_seconds"]),
    }


def price_settings() -> Dict[str, Any]:
    return dict(get_config()["prices"])


def coins() -> Dict[str, Dict[str, Any]]:
    """Ordered ticker -> coin settings mapping. Order is the resolution order of a cycle."""
    return {str(k).upper(): dict(v) for k, v in get_config()["coins"].items()}


def coin_ids() -> List[str]:
    return list(coins())
