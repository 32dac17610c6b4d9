"""
Ingestion API: cycle context and one-cycle execution.

One cycle fetches prices, resolves every configured coin through its source
chain, computes difficulty deltas against the previously published snapshot,
records drop alerts and publishes the new snapshot only when enough coins
resolved. A rejected cycle still records its alerts; its coins are dropped
and the previous snapshot stays in place.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..core.errors import ConfigError
from ..providers.base import CoinRecord, FetchFailure, FetchResult, PriceAdapter
from ..providers.chain import CoinSourceChain
from ..store import Alert, Snapshot, SnapshotStore

logger = logging.getLogger(__name__)

DEFAULT_MIN_COINS = 2
DEFAULT_DROP_THRESHOLD_PCT = -0.5


@dataclass
class CycleResult:
    """Outcome of one cycle. `accepted` is True only when a snapshot was published."""

    accepted: bool
    resolved: int = 0
    expected: int = 0
    min_coins: int = 0
    alerts: List[Alert] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.accepted


@dataclass
class CycleContext:
    """Holds the store, per-coin chains and price adapter a cycle works against."""

    store: SnapshotStore
    chains: List[CoinSourceChain]
    price_adapter: PriceAdapter
    min_coins: int = DEFAULT_MIN_COINS
    drop_threshold_pct: float = DEFAULT_DROP_THRESHOLD_PCT
    parallel: bool = False
    max_workers: int = 4
    now: Callable[[], datetime] = field(default=lambda: datetime.now(timezone.utc), repr=False)

    def __post_init__(self) -> None:
        if self.min_coins < 1:
            raise ConfigError(f"min_coins must be >= 1 (got {self.min_coins})")
        ids = [c.coin_id for c in self.chains]
        if len(ids) != len(set(ids)):
            raise ConfigError(f"duplicate coin chains: {ids}")

    @property
    def coin_ids(self) -> List[str]:
        return [c.coin_id for c in self.chains]


def get_cycle_context(
    store: Optional[SnapshotStore] = None,
    *,
    chains: Optional[List[CoinSourceChain]] = None,
    price_adapter: Optional[PriceAdapter] = None,
) -> CycleContext:
    """
    Build a cycle context from config.
    If chains or price_adapter are provided, they are used instead of creating defaults (for tests).
    """
    from .. import config
    from ..providers.defaults import create_coin_chains, create_price_adapter

    coin_table = config.coins()
    if chains is None:
        chains = create_coin_chains(coin_table=coin_table)
    if price_adapter is None:
        price_adapter = create_price_adapter(coin_table)
    return CycleContext(
        store=store or SnapshotStore(alert_ring_size=config.alert_ring_size()),
        chains=chains,
        price_adapter=price_adapter,
        min_coins=config.min_coins(),
        drop_threshold_pct=config.drop_threshold_pct(),
        parallel=config.parallel_resolution(),
    )


def resolve_all(ctx: CycleContext) -> List[Tuple[str, FetchResult]]:
    """Resolve every chain independently; results keep configured coin order."""
    if ctx.parallel and len(ctx.chains) > 1:
        with ThreadPoolExecutor(max_workers=max(1, ctx.max_workers), thread_name_prefix="resolve") as pool:
            futures = [(c.coin_id, pool.submit(c.resolve)) for c in ctx.chains]
            return [(coin_id, fut.result()) for coin_id, fut in futures]
    return [(c.coin_id, c.resolve()) for c in ctx.chains]


def difficulty_change_pct(new: float, old: float) -> float:
    """Signed percent change of `new` vs `old`, rounded to 2 decimals."""
    return round((new - old) / old * 100.0, 2)


def apply_deltas(
    records: Sequence[CoinRecord],
    previous: Snapshot,
    prices: Mapping[str, float],
    *,
    drop_threshold_pct: float = DEFAULT_DROP_THRESHOLD_PCT,
    now: Optional[datetime] = None,
) -> Tuple[List[CoinRecord], List[Alert]]:
    """
    Attach price, previous difficulty and change vs the previous snapshot.
    Returns the enriched records and the alerts for drops below the threshold.
    """
    ts = now or datetime.now(timezone.utc)
    ts_iso = ts.isoformat(timespec="seconds")
    ts_ms = int(ts.timestamp() * 1000)

    out: List[CoinRecord] = []
    alerts: List[Alert] = []
    for rec in records:
        old = previous.get(rec.id)
        price = float(prices.get(rec.id) or 0.0)
        if old is not None and old.difficulty > 0:
            pct = difficulty_change_pct(rec.difficulty, old.difficulty)
            out.append(dataclasses.replace(
                rec,
                price=price,
                previous_difficulty=old.difficulty,
                difficulty_change_pct=f"{pct:.2f}",
            ))
            if pct < drop_threshold_pct:
                alerts.append(Alert(
                    id=f"{ts_ms}{rec.id}",
                    coin=rec.name,
                    coin_id=rec.id,
                    change_pct=f"{pct:.2f}",
                    timestamp=ts_iso,
                ))
        else:
            out.append(dataclasses.replace(
                rec,
                price=price,
                previous_difficulty=rec.difficulty,
                difficulty_change_pct="0.00",
            ))
    return out, alerts


def run_one_cycle(ctx: CycleContext, *, log: logging.Logger | None = None) -> CycleResult:
    """
    Run one refresh: prices, per-coin resolution, deltas/alerts, acceptance, publish.
    Never raises; an unexpected error is logged and reported as a rejected cycle.
    Uses log for progress/warnings; if None, uses module logger.
    """
    _log = log if log is not None else logger
    expected = len(ctx.chains)
    started = time.monotonic()
    try:
        _log.info("Starting data fetch cycle (%d coins)", expected)
        previous = ctx.store.snapshot
        prices = ctx.price_adapter.fetch_prices(ctx.coin_ids)

        succeeded: List[CoinRecord] = []
        failures: Dict[str, str] = {}
        for coin_id, result in resolve_all(ctx):
            if isinstance(result, FetchFailure):
                failures[coin_id] = result.reason
            else:
                succeeded.append(result)

        now = ctx.now()
        records, alerts = apply_deltas(
            succeeded,
            previous,
            prices,
            drop_threshold_pct=ctx.drop_threshold_pct,
            now=now,
        )
        # Drops are recorded even when the snapshot itself is rejected.
        ctx.store.append_alerts(alerts)
        for a in alerts:
            _log.warning("Difficulty drop alert: %s %s%%", a.coin, a.change_pct)

        if len(records) < ctx.min_coins:
            _log.error(
                "Not enough data (got %d/%d, need %d); keeping previous snapshot",
                len(records), expected, ctx.min_coins,
            )
            return CycleResult(
                accepted=False,
                resolved=len(records),
                expected=expected,
                min_coins=ctx.min_coins,
                alerts=alerts,
                failures=failures,
            )

        ctx.store.publish(records, now.isoformat(timespec="seconds"))
        _log.info(
            "Updated %d/%d coins in %.1fs: %s",
            len(records), expected, time.monotonic() - started,
            ", ".join(f"{r.symbol} ({r.data_source})" for r in records),
        )
        return CycleResult(
            accepted=True,
            resolved=len(records),
            expected=expected,
            min_coins=ctx.min_coins,
            alerts=alerts,
            failures=failures,
        )
    except Exception as exc:
        _log.exception("Fatal error in data fetch cycle")
        return CycleResult(
            accepted=False,
            expected=expected,
            min_coins=ctx.min_coins,
            error=f"{type(exc).__name__}: {exc}",
        )
