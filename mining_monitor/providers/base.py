"""
Provider interfaces and data contracts.

All source adapters implement SourceAdapter: fetch(coin_id) returns either a
CoinRecord or a FetchFailure, never raises. The price adapter implements
PriceAdapter and degrades to a fallback table instead of failing.

Data is returned via frozen dataclasses for immutability and type safety.
"""

from __future__ import annotations

import enum
import math
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Protocol, Union, runtime_checkable


class ProviderStatus(enum.Enum):
    """Health status of a data provider."""

    OK = "OK"
    DEGRADED = "DEGRADED"
    DOWN = "DOWN"


@dataclass(frozen=True)
class CoinRecord:
    """Immutable, normalized metrics for one coin as produced by one adapter."""

    id: str
    symbol: str
    name: str
    algorithm: str
    difficulty: float = 0.0
    network_hashrate: float = 0.0
    block_reward: float = 0.0
    block_time_seconds: float = 0.0
    data_source: str = "unknown"
    price: float = 0.0
    previous_difficulty: float = 0.0
    difficulty_change_pct: str = "0.00"

    def is_valid(self) -> bool:
        return bool(self.id) and math.isfinite(self.difficulty) and self.difficulty > 0

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape served by the API (camelCase keys)."""
        return {
            "id": self.id,
            "symbol": self.symbol,
            "name": self.name,
            "algorithm": self.algorithm,
            "difficulty": self.difficulty,
            "previousDifficulty": self.previous_difficulty,
            "difficultyChangePct": self.difficulty_change_pct,
            "networkHashrate": self.network_hashrate,
            "price": self.price,
            "blockReward": self.block_reward,
            "blockTimeSeconds": self.block_time_seconds,
            "dataSource": self.data_source,
        }


@dataclass(frozen=True)
class FetchFailure:
    """Failure signal for one coin from one adapter (or from a whole chain)."""

    coin_id: str
    provider_name: str
    reason: str


FetchResult = Union[CoinRecord, FetchFailure]


@dataclass
class ProviderHealth:
    """Mutable health state for a single provider instance."""

    provider_name: str
    status: ProviderStatus = ProviderStatus.OK
    last_ok_at: Optional[str] = None
    fail_count: int = 0
    last_error: Optional[str] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def record_success(self) -> None:
        with self._lock:
            self.status = ProviderStatus.OK
            self.fail_count = 0
            self.last_ok_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
            self.last_error = None

    def record_failure(self, error: str) -> None:
        with self._lock:
            self.fail_count += 1
            self.last_error = error[:500]
            if self.fail_count >= 5:
                self.status = ProviderStatus.DOWN
            elif self.fail_count >= 2:
                self.status = ProviderStatus.DEGRADED

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "provider": self.provider_name,
                "status": self.status.value,
                "lastOkAt": self.last_ok_at,
                "failCount": self.fail_count,
                "lastError": self.last_error,
            }


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for per-provider difficulty/hashrate sources."""

    @property
    def provider_name(self) -> str: ...

    @property
    def host(self) -> str:
        """Upstream host used for pacing (one minimum interval per host)."""
        ...

    def host_for(self, coin_id: str) -> str:
        """Host actually contacted for `coin_id`; the pacing key for that call."""
        ...

    def fetch(self, coin_id: str) -> FetchResult:
        """Fetch current metrics for a coin (e.g., 'BTC', 'BCH'). Never raises."""
        ...


@runtime_checkable
class PriceAdapter(Protocol):
    """Protocol for USD quote providers."""

    @property
    def provider_name(self) -> str: ...

    def fetch_prices(self, coin_ids: Iterable[str]) -> Dict[str, float]:
        """Return coin_id -> USD price for every requested coin. Never raises."""
        ...
