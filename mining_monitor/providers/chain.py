"""
Source chains: ordered per-coin fallback over source adapters.

A chain tries its adapters in priority order and returns the first record
that comes back whole. Circuit breakers skip adapters known to be down and a
shared pacing policy spaces out calls to the same upstream host.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .base import CoinRecord, FetchFailure, FetchResult, ProviderHealth, SourceAdapter
from .resilience import CircuitBreaker, PacingPolicy

logger = logging.getLogger(__name__)


class CoinSourceChain:
    """
    Ordered chain of source adapters for one coin with automatic fallback.

    No partial merging: a candidate's record is accepted whole or rejected
    whole. When every candidate fails the chain returns a FetchFailure that
    joins all candidate reasons.
    """

    def __init__(
        self,
        coin_id: str,
        adapters: List[SourceAdapter],
        *,
        pacing: Optional[PacingPolicy] = None,
        breakers: Optional[Dict[str, CircuitBreaker]] = None,
        health: Optional[Dict[str, ProviderHealth]] = None,
        failure_threshold: int = 3,
        cooldown_seconds: float = 300.0,
    ) -> None:
        self._coin_id = coin_id.upper()
        self._adapters = list(adapters)
        self._pacing = pacing or PacingPolicy(min_interval_s=0.0)
        # Breakers and health may be shared between chains so one adapter
        # serving several coins has a single state.
        self._breakers = breakers if breakers is not None else {}
        self._health = health if health is not None else {}

        for a in self._adapters:
            name = a.provider_name
            self._breakers.setdefault(
                name,
                CircuitBreaker(
                    provider_name=name,
                    failure_threshold=failure_threshold,
                    cooldown_seconds=cooldown_seconds,
                ),
            )
            self._health.setdefault(name, ProviderHealth(provider_name=name))

    @property
    def coin_id(self) -> str:
        return self._coin_id

    @property
    def provider_names(self) -> List[str]:
        return [a.provider_name for a in self._adapters]

    def resolve(self) -> FetchResult:
        """
        Fetch this chain's coin using the adapters in priority order.
        Never raises.
        """
        errors: List[str] = []
        for adapter in self._adapters:
            name = adapter.provider_name
            breaker = self._breakers[name]
            health = self._health[name]

            if breaker.is_open:
                errors.append(f"{name}: circuit breaker OPEN")
                continue

            self._pacing.wait(adapter.host_for(self._coin_id))
            try:
                result = adapter.fetch(self._coin_id)
            except Exception as exc:
                # Adapters must not raise; treat a contract breach like any failure.
                logger.exception("%s raised while fetching %s", name, self._coin_id)
                result = FetchFailure(self._coin_id, name, f"{type(exc).__name__}: {exc}")

            if isinstance(result, CoinRecord) and result.is_valid():
                breaker.record_success()
                health.record_success()
                return result

            if isinstance(result, FetchFailure):
                msg = f"{name}: {result.reason}"
            else:
                msg = f"{name}: invalid record (difficulty={getattr(result, 'difficulty', None)})"
            errors.append(msg)
            breaker.record_failure(msg)
            health.record_failure(msg)

        reason = "; ".join(errors) if errors else "no sources configured"
        logger.warning("All sources failed for %s: %s", self._coin_id, reason)
        return FetchFailure(coin_id=self._coin_id, provider_name="chain", reason=reason)

    def get_health(self) -> Dict[str, ProviderHealth]:
        """Return health status for the providers in this chain."""
        return {a.provider_name: self._health[a.provider_name] for a in self._adapters}

    def get_breaker_states(self) -> Dict[str, str]:
        """Return circuit breaker state for each provider in this chain."""
        return {a.provider_name: self._breakers[a.provider_name].state for a in self._adapters}
