"""
Provider registry: central catalog of available source adapters.

Adapters register themselves here. The registry is config-driven: each coin's
`sources` list in config.yaml determines which adapters are tried in what
order for that coin.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from ..core.errors import ConfigError
from .base import ProviderHealth, SourceAdapter
from .chain import CoinSourceChain
from .resilience import CircuitBreaker, PacingPolicy

logger = logging.getLogger(__name__)

SourceFactory = Union[Callable[[], SourceAdapter], SourceAdapter]


class ProviderRegistry:
    """
    Registry mapping adapter names to factories/instances.

    Usage:
        registry = ProviderRegistry()
        registry.register_source("blockchain_info", BlockchainInfoSource)
        registry.register_source("blockchair", BlockchairSource)

        chain = registry.build_chain("BTC", ["blockchain_info", "blockchair"])

    Chains built from one registry share breakers, health records and the
    pacing policy, so an adapter serving several coins has a single state.
    """

    def __init__(self, pacing: Optional[PacingPolicy] = None) -> None:
        self._factories: Dict[str, Any] = {}
        self._instances: Dict[str, SourceAdapter] = {}
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._health: Dict[str, ProviderHealth] = {}
        self._pacing = pacing or PacingPolicy(min_interval_s=0.0)

    def register_source(self, name: str, factory: SourceFactory) -> None:
        """Register a source adapter by name (class, zero-arg callable, or instance)."""
        self._factories[name] = factory
        self._instances.pop(name, None)
        logger.debug("Registered source adapter: %s", name)

    def get_source(self, name: str) -> SourceAdapter:
        """Get or instantiate a source adapter by name."""
        if name not in self._instances:
            factory = self._factories.get(name)
            if factory is None:
                raise KeyError(
                    f"Unknown source adapter '{name}'. "
                    f"Available: {list(self._factories)}"
                )
            if isinstance(factory, type) or not hasattr(factory, "fetch"):
                self._instances[name] = factory()
            else:
                self._instances[name] = factory
        return self._instances[name]

    @property
    def source_names(self) -> List[str]:
        return list(self._factories)

    def build_chain(
        self,
        coin_id: str,
        priority: List[str],
        *,
        failure_threshold: int = 3,
        cooldown_seconds: float = 300.0,
    ) -> CoinSourceChain:
        """Build the ordered fallback chain for one coin from a priority list."""
        unknown = [n for n in priority if n not in self._factories]
        if unknown:
            raise ConfigError(
                f"{coin_id}: unknown source adapter(s) {unknown}. "
                f"Available: {list(self._factories)}"
            )
        return CoinSourceChain(
            coin_id,
            [self.get_source(n) for n in priority],
            pacing=self._pacing,
            breakers=self._breakers,
            health=self._health,
            failure_threshold=failure_threshold,
            cooldown_seconds=cooldown_seconds,
        )

    def get_health(self) -> Dict[str, ProviderHealth]:
        return dict(self._health)

    def get_breaker_states(self) -> Dict[str, str]:
        return {name: cb.state for name, cb in self._breakers.items()}
