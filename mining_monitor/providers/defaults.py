"""
Default provider registry configuration.

Registers built-in adapters and builds per-coin chains and the price adapter
from config. To add a new source, register it here and list it under a coin's
`sources` in config.yaml.
"""
from __future__ import annotations

import functools
import logging
from typing import Any, Dict, List, Mapping, Optional

from .. import config
from ..core.errors import ConfigError
from .chain import CoinSourceChain
from .prices.coingecko import CoinGeckoPriceAdapter
from .registry import ProviderRegistry
from .resilience import PacingPolicy
from .sources.blockchain_info import BlockchainInfoSource
from .sources.blockchair import BlockchairSource
from .sources.explorer_scrape import ExplorerScrapeSource
from .sources.mempool_space import MempoolSpaceSource

logger = logging.getLogger(__name__)

BUILTIN_SOURCES = {
    "blockchain_info": BlockchainInfoSource,
    "blockchair": BlockchairSource,
    "mempool_space": MempoolSpaceSource,
    "explorer_scrape": ExplorerScrapeSource,
}


def create_default_registry(
    coin_table: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> ProviderRegistry:
    """Create a registry with all built-in adapters, configured from config."""
    table = coin_table if coin_table is not None else config.coins()
    registry = ProviderRegistry(pacing=PacingPolicy(min_interval_s=config.min_interval_s()))
    for name, cls in BUILTIN_SOURCES.items():
        registry.register_source(
            name,
            functools.partial(
                cls,
                table,
                timeout_s=config.http_timeout_s(),
                user_agent=config.http_user_agent(),
            ),
        )
    return registry


def create_coin_chains(
    registry: Optional[ProviderRegistry] = None,
    coin_table: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> List[CoinSourceChain]:
    """Build one fallback chain per configured coin, in configured order."""
    table = coin_table if coin_table is not None else config.coins()
    reg = registry or create_default_registry(table)
    breaker = config.breaker_settings()
    chains: List[CoinSourceChain] = []
    for coin_id, coin in table.items():
        sources = list(coin.get("sources") or [])
        if not sources:
            raise ConfigError(f"{coin_id}: no sources configured")
        chains.append(
            reg.build_chain(
                coin_id,
                sources,
                failure_threshold=int(breaker["failure_threshold"]),
                cooldown_seconds=float(breaker["cooldown_seconds"]),
            )
        )
        logger.debug("Chain %s: %s", coin_id, " -> ".join(sources))
    return chains


def create_price_adapter(
    coin_table: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> CoinGeckoPriceAdapter:
    """Build the price adapter with the configured fallback table."""
    table = coin_table if coin_table is not None else config.coins()
    settings = config.price_settings()
    provider = settings.get("provider", "coingecko")
    if provider != "coingecko":
        raise ConfigError(f"Unknown price provider '{provider}'. Available: ['coingecko']")
    gecko_ids: Dict[str, str] = {
        coin_id: str(coin["gecko_id"]) for coin_id, coin in table.items() if coin.get("gecko_id")
    }
    return CoinGeckoPriceAdapter(
        gecko_ids,
        fallback_prices=settings.get("fallback") or {},
        pre_call_delay_s=float(settings.get("pre_call_delay_s", 0.5)),
        timeout_s=min(config.http_timeout_s(), 10.0),
        user_agent=config.http_user_agent(),
    )
