"""
In-memory snapshot store: the last published coin list and a bounded ring of
recent difficulty-drop alerts.

The published Snapshot is an immutable value swapped under a lock, so a
reader holds either the old snapshot or the new one, never a mix. Only the
aggregation cycle writes; the API layer reads.
"""
from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Iterable, List, Optional, Tuple

from .providers.base import CoinRecord

DEFAULT_ALERT_RING_SIZE = 10


@dataclass(frozen=True)
class Alert:
    """A detected difficulty drop for one coin."""

    id: str
    coin: str
    change_pct: str
    timestamp: str
    coin_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "coin": self.coin,
            "coinId": self.coin_id,
            "changePct": self.change_pct,
            # older dashboards read `change`
            "change": self.change_pct,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class Snapshot:
    """Published state: coins in resolution order and the accepted-cycle timestamp."""

    coins: Tuple[CoinRecord, ...] = ()
    last_update: Optional[str] = None

    def get(self, coin_id: str) -> Optional[CoinRecord]:
        for c in self.coins:
            if c.id == coin_id:
                return c
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastUpdate": self.last_update,
            "data": [c.to_dict() for c in self.coins],
        }


EMPTY_SNAPSHOT = Snapshot()


class SnapshotStore:
    """Process-wide holder of the published Snapshot and the alert ring."""

    def __init__(self, alert_ring_size: int = DEFAULT_ALERT_RING_SIZE) -> None:
        self._lock = threading.Lock()
        self._snapshot: Snapshot = EMPTY_SNAPSHOT
        self._alerts: Deque[Alert] = deque(maxlen=max(1, int(alert_ring_size)))

    @property
    def snapshot(self) -> Snapshot:
        with self._lock:
            return self._snapshot

    def publish(
        self,
        coins: Iterable[CoinRecord],
        last_update: str,
        alerts: Iterable[Alert] = (),
    ) -> Snapshot:
        """
        Install a new snapshot and append its alerts in one step.
        Raises ValueError on duplicate coin ids; the current snapshot is kept.
        """
        records = tuple(coins)
        ids = [c.id for c in records]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate coin ids in snapshot: {ids}")
        new = Snapshot(coins=records, last_update=last_update)
        with self._lock:
            self._snapshot = new
            # deque(maxlen) drops the oldest entries first
            self._alerts.extend(alerts)
        return new

    def append_alerts(self, alerts: Iterable[Alert]) -> None:
        """Append alerts to the ring without touching the published snapshot."""
        with self._lock:
            self._alerts.extend(alerts)

    def recent_alerts(self, limit: Optional[int] = None) -> List[Alert]:
        """Most recent alerts, oldest first; at most `limit` when given."""
        with self._lock:
            items = list(self._alerts)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def reset(self) -> None:
        with self._lock:
            self._snapshot = EMPTY_SNAPSHOT
            self._alerts.clear()
