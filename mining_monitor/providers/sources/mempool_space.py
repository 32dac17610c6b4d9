"""
mempool.space mining source (Bitcoin only).

  GET https://mempool.space/api/v1/mining/hashrate/3d
Fields used: `currentDifficulty`, `currentHashrate` (H/s).
"""
from __future__ import annotations

from typing import Any, Tuple

from ...units import non_negative, to_ehs, to_float
from .base import HttpSourceAdapter, PayloadError, UnsupportedCoin

MEMPOOL_BASE_URL = "https://mempool.space"


class MempoolSpaceSource(HttpSourceAdapter):
    name = "mempool_space"
    label = "mempool.space API"
    base_url = MEMPOOL_BASE_URL

    def _request(self, coin_id: str) -> Any:
        if coin_id != "BTC":
            raise UnsupportedCoin(coin_id)
        return self._get_json(f"{self.base_url}/api/v1/mining/hashrate/3d")

    def _parse(self, coin_id: str, payload: Any) -> Tuple[float, float]:
        if not isinstance(payload, dict):
            raise PayloadError(f"unexpected response type {type(payload).__name__}")
        difficulty = to_float(payload.get("currentDifficulty"))
        if difficulty is None:
            raise PayloadError("response missing currentDifficulty")
        hashrate = non_negative(to_float(payload.get("currentHashrate")))
        return difficulty, to_ehs(hashrate, "H/s")
