"""
Blockchair stats source.

Uses the public Blockchair API (no authentication required):
  GET https://api.blockchair.com/{chain}/stats
Fields used: `data.difficulty`, `data.hashrate_24h` (H/s).
"""
from __future__ import annotations

from typing import Any, Tuple

from ...units import non_negative, to_ehs, to_float
from .base import HttpSourceAdapter, PayloadError, UnsupportedCoin

BLOCKCHAIR_BASE_URL = "https://api.blockchair.com"

_COIN_TO_CHAIN = {
    "BTC": "bitcoin",
    "BCH": "bitcoin-cash",
    "XEC": "ecash",
    "LTC": "litecoin",
    "DOGE": "dogecoin",
    "DASH": "dash",
    "BSV": "bitcoin-sv",
}


class BlockchairSource(HttpSourceAdapter):
    """Fetch difficulty and 24h hashrate for several chains from Blockchair."""

    name = "blockchair"
    label = "Blockchair API"
    base_url = BLOCKCHAIR_BASE_URL

    def _request(self, coin_id: str) -> Any:
        chain = _COIN_TO_CHAIN.get(coin_id)
        if chain is None:
            raise UnsupportedCoin(coin_id)
        return self._get_json(f"{self.base_url}/{chain}/stats")

    def _parse(self, coin_id: str, payload: Any) -> Tuple[float, float]:
        if not isinstance(payload, dict):
            raise PayloadError(f"unexpected response type {type(payload).__name__}")
        stats = payload.get("data")
        if not isinstance(stats, dict):
            raise PayloadError("response missing data")
        difficulty = to_float(stats.get("difficulty"))
        if difficulty is None:
            raise PayloadError("response missing data.difficulty")
        hashrate = non_negative(to_float(stats.get("hashrate_24h")))
        return difficulty, to_ehs(hashrate, "H/s")
