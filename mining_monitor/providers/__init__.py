"""
Provider architecture for mining metrics acquisition.

Source adapters fetch difficulty and hashrate for one upstream endpoint each;
the price adapter fetches USD quotes with a static fallback table. Per-coin
chains try source adapters in config-driven priority order with circuit
breakers and per-host pacing.
"""

from __future__ import annotations

from .base import (
    CoinRecord,
    FetchFailure,
    FetchResult,
    PriceAdapter,
    ProviderHealth,
    ProviderStatus,
    SourceAdapter,
)
from .chain import CoinSourceChain
from .registry import ProviderRegistry
from .resilience import CircuitBreaker, PacingPolicy

__all__ = [
    "CoinRecord",
    "FetchFailure",
    "FetchResult",
    "PriceAdapter",
    "SourceAdapter",
    "ProviderHealth",
    "ProviderStatus",
    "ProviderRegistry",
    "CoinSourceChain",
    "CircuitBreaker",
    "PacingPolicy",
]
