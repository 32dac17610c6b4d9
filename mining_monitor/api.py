"""
Read-mostly REST API using FastAPI. No secrets, no auth.
Endpoints only read the published snapshot; POST /api/refresh runs one cycle
through the scheduler and waits for it.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__, config
from .ingest import CycleContext, get_cycle_context, run_one_cycle
from .scheduler import RefreshScheduler

logger = logging.getLogger(__name__)

SERVICE_NAME = "Mining Monitor Backend"


def create_app(
    ctx: Optional[CycleContext] = None,
    scheduler: Optional[RefreshScheduler] = None,
    *,
    start_scheduler: bool = True,
) -> FastAPI:
    """
    Build the API around a cycle context and its scheduler.
    With start_scheduler, the lifespan starts the timer (first cycle runs at startup).
    """
    ctx = ctx or get_cycle_context()
    scheduler = scheduler or RefreshScheduler(
        lambda: run_one_cycle(ctx),
        interval_seconds=config.refresh_interval_seconds(),
    )
    alert_limit = config.alert_api_limit()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_scheduler:
            scheduler.start()
        try:
            yield
        finally:
            if start_scheduler:
                scheduler.stop(timeout=5.0)

    app = FastAPI(title="Mining Monitor API", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        allow_credentials=False,
    )
    app.state.ctx = ctx
    app.state.scheduler = scheduler

    @app.get("/api/coins")
    def coins() -> Dict[str, Any]:
        snap = ctx.store.snapshot
        return {"success": True, **snap.to_dict()}

    @app.get("/api/alerts")
    def alerts() -> Dict[str, Any]:
        return {
            "success": True,
            "alerts": [a.to_dict() for a in ctx.store.recent_alerts(alert_limit)],
        }

    @app.post("/api/refresh")
    def refresh() -> Dict[str, Any]:
        logger.info("Manual refresh requested")
        result = scheduler.trigger()
        snap = ctx.store.snapshot
        return {
            "success": result.accepted,
            "lastUpdate": snap.last_update,
            "coinsCount": len(snap.coins),
        }

    @app.get("/api/providers")
    def providers() -> Dict[str, Any]:
        out: Dict[str, Dict[str, Any]] = {}
        for chain in ctx.chains:
            states = chain.get_breaker_states()
            for name, health in chain.get_health().items():
                out[name] = {**health.to_dict(), "breaker": states.get(name)}
        return {"success": True, "providers": list(out.values())}

    @app.get("/health")
    def health() -> Dict[str, Any]:
        snap = ctx.store.snapshot
        return {
            "status": "ok",
            "lastUpdate": snap.last_update,
            "coinsCount": len(snap.coins),
            "coins": [f"{c.symbol} ({c.data_source})" for c in snap.coins],
        }

    @app.get("/")
    def root() -> Dict[str, Any]:
        sources: List[str] = [
            f"{chain.coin_id}: {' -> '.join(chain.provider_names)}" for chain in ctx.chains
        ]
        sources.append(f"Prices: {ctx.price_adapter.provider_name}")
        return {
            "name": SERVICE_NAME,
            "version": __version__,
            "status": "running",
            "cryptos": ctx.coin_ids,
            "sources": sources,
            "refreshIntervalSeconds": scheduler.interval_seconds,
            "minCoins": ctx.min_coins,
        }

    return app
