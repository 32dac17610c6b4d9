"""
CoinGecko price adapter.

Uses the public CoinGecko API (no authentication required):
  GET https://api.coingecko.com/api/v3/simple/price?ids={ids}&vs_currencies=usd

Never fails a cycle: on timeout, non-2xx or parse error the static fallback
table is returned for the requested coins.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

import requests

from ...units import non_negative, to_float

logger = logging.getLogger(__name__)

COINGECKO_BASE_URL = "https://api.coingecko.com"
HTTP_TIMEOUT_S = 10.0


class CoinGeckoPriceAdapter:
    """Fetch USD prices for the tracked coin set from CoinGecko."""

    def __init__(
        self,
        gecko_ids: Mapping[str, str],
        fallback_prices: Optional[Mapping[str, float]] = None,
        *,
        pre_call_delay_s: float = 0.5,
        timeout_s: float = HTTP_TIMEOUT_S,
        user_agent: str = "Mozilla/5.0 (compatible; mining-monitor)",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._gecko_ids = {k.upper(): v for k, v in gecko_ids.items()}
        self._fallback = {k.upper(): float(v) for k, v in (fallback_prices or {}).items()}
        self._pre_call_delay_s = pre_call_delay_s
        self._timeout_s = timeout_s
        self._headers = {"User-Agent": user_agent}
        self._sleep = sleep

    @property
    def provider_name(self) -> str:
        return "coingecko"

    def fallback_prices(self, coin_ids: Iterable[str]) -> Dict[str, float]:
        return {c.upper(): self._fallback.get(c.upper(), 0.0) for c in coin_ids}

    def fetch_prices(self, coin_ids: Iterable[str]) -> Dict[str, float]:
        wanted = [c.upper() for c in coin_ids]
        if self._pre_call_delay_s > 0:
            self._sleep(self._pre_call_delay_s)
        try:
            observed = self._request(wanted)
        except (requests.RequestException, ValueError, TypeError) as exc:
            logger.warning(
                "CoinGecko failed (%s: %s), using fallback prices",
                type(exc).__name__, exc,
            )
            return self.fallback_prices(wanted)
        logger.info(
            "Prices: %s",
            "  ".join(f"{c}={observed[c]:g}" for c in wanted),
        )
        return observed

    def _request(self, coin_ids: list[str]) -> Dict[str, float]:
        ids = [self._gecko_ids[c] for c in coin_ids if c in self._gecko_ids]
        if not ids:
            raise ValueError("no CoinGecko ids configured for requested coins")
        resp = requests.get(
            f"{COINGECKO_BASE_URL}/api/v3/simple/price",
            params={"ids": ",".join(ids), "vs_currencies": "usd"},
            headers=self._headers,
            timeout=self._timeout_s,
        )
        if resp.status_code == 429:
            raise requests.HTTPError("CoinGecko rate limit (HTTP 429)", response=resp)
        resp.raise_for_status()
        data: Any = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"unexpected response type {type(data).__name__}")

        out: Dict[str, float] = {}
        for coin_id in coin_ids:
            entry = data.get(self._gecko_ids.get(coin_id, ""))
            price = to_float(entry.get("usd")) if isinstance(entry, dict) else None
            out[coin_id] = non_negative(price)
        return out
