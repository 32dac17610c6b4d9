"""
Blockchain.info stats source (Bitcoin only).

Uses the public blockchain.com stats API (no authentication required):
  GET https://blockchain.info/stats?format=json
Fields used: `difficulty`, `hash_rate` (GH/s).
"""
from __future__ import annotations

from typing import Any, Tuple

from ...units import non_negative, to_ehs, to_float
from .base import HttpSourceAdapter, PayloadError, UnsupportedCoin

BLOCKCHAIN_INFO_BASE_URL = "https://blockchain.info"


class BlockchainInfoSource(HttpSourceAdapter):
    """Fetch Bitcoin difficulty and hashrate from blockchain.info."""

    name = "blockchain_info"
    label = "Blockchain.info API"
    base_url = BLOCKCHAIN_INFO_BASE_URL

    def _request(self, coin_id: str) -> Any:
        if coin_id != "BTC":
            raise UnsupportedCoin(coin_id)
        return self._get_json(f"{self.base_url}/stats", params={"format": "json"})

    def _parse(self, coin_id: str, payload: Any) -> Tuple[float, float]:
        if not isinstance(payload, dict):
            raise PayloadError(f"unexpected response type {type(payload).__name__}")
        difficulty = to_float(payload.get("difficulty"))
        if difficulty is None:
            raise PayloadError("response missing difficulty")
        hashrate_ghs = non_negative(to_float(payload.get("hash_rate")))
        return difficulty, to_ehs(hashrate_ghs, "GH/s")
