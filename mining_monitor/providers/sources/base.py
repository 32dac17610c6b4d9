"""
Shared plumbing for HTTP source adapters.

Subclasses implement `_request(coin_id)` (returns the parsed payload) and
`_parse(coin_id, payload)` (returns difficulty and hashrate in EH/s). Any
exception raised along the way is converted into a FetchFailure here, so
adapters honour the never-raise contract without repeating try/except.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlparse

import requests

from ..base import CoinRecord, FetchFailure, FetchResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 15.0
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; mining-monitor)"


class UnsupportedCoin(LookupError):
    """Adapter has no endpoint for the requested coin."""


class PayloadError(ValueError):
    """Upstream payload is missing a required field or has an unexpected shape."""


class HttpSourceAdapter:
    """Base class for single-endpoint JSON/HTML source adapters."""

    name = "http"
    label = "HTTP source"
    base_url = ""

    def __init__(
        self,
        coin_table: Optional[Mapping[str, Mapping[str, Any]]] = None,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None,
    ) -> None:
        if coin_table is None:
            from ... import config

            coin_table = config.coins()
        self._coins = {k.upper(): dict(v) for k, v in coin_table.items()}
        self._timeout_s = timeout_s
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._session = session

    @property
    def provider_name(self) -> str:
        return self.name

    @property
    def host(self) -> str:
        return urlparse(self.base_url).netloc or self.name

    def host_for(self, coin_id: str) -> str:
        return self.host

    def supports(self, coin_id: str) -> bool:
        return coin_id.upper() in self._coins

    def fetch(self, coin_id: str) -> FetchResult:
        coin_id = coin_id.upper()
        try:
            self._coin(coin_id)
            payload = self._request(coin_id)
            difficulty, hashrate_ehs = self._parse(coin_id, payload)
        except UnsupportedCoin as exc:
            return self._failure(coin_id, f"unsupported coin: {exc}")
        except requests.Timeout:
            return self._failure(coin_id, f"timeout after {self._timeout_s:.0f}s")
        except requests.RequestException as exc:
            return self._failure(coin_id, f"{type(exc).__name__}: {exc}")
        except (PayloadError, ValueError, KeyError, TypeError) as exc:
            return self._failure(coin_id, f"malformed payload: {type(exc).__name__}: {exc}")

        if not (math.isfinite(difficulty) and math.isfinite(hashrate_ehs)):
            return self._failure(coin_id, f"malformed payload: non-finite value ({difficulty}, {hashrate_ehs})")
        if difficulty <= 0:
            return self._failure(coin_id, f"non-positive difficulty ({difficulty})")

        record = self._build_record(coin_id, difficulty, hashrate_ehs)
        logger.info(
            "%s %s: difficulty=%.3e hashrate=%.4f EH/s",
            self.name, coin_id, record.difficulty, record.network_hashrate,
        )
        return record

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    def _request(self, coin_id: str) -> Any:
        raise NotImplementedError

    def _parse(self, coin_id: str, payload: Any) -> Tuple[float, float]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get(self, url: str, **kwargs: Any) -> requests.Response:
        getter = self._session.get if self._session is not None else requests.get
        resp = getter(url, headers=self._headers, timeout=self._timeout_s, **kwargs)
        if resp.status_code == 429:
            raise requests.HTTPError(f"{self.name} rate limit (HTTP 429)", response=resp)
        resp.raise_for_status()
        return resp

    def _get_json(self, url: str, **kwargs: Any) -> Any:
        return self._get(url, **kwargs).json()

    def _coin(self, coin_id: str) -> Dict[str, Any]:
        coin = self._coins.get(coin_id)
        if coin is None:
            raise UnsupportedCoin(coin_id)
        return coin

    def _build_record(self, coin_id: str, difficulty: float, hashrate_ehs: float) -> CoinRecord:
        coin = self._coin(coin_id)
        return CoinRecord(
            id=coin_id,
            symbol=coin_id,
            name=str(coin.get("name") or coin_id),
            algorithm=str(coin.get("algorithm") or ""),
            difficulty=float(difficulty),
            network_hashrate=max(0.0, float(hashrate_ehs)),
            block_reward=float(coin.get("block_reward") or 0),
            block_time_seconds=float(coin.get("block_time_seconds") or 0),
            data_source=self.label,
        )

    def _failure(self, coin_id: str, reason: str) -> FetchFailure:
        logger.warning("%s %s failed: %s", self.name, coin_id, reason)
        return FetchFailure(coin_id=coin_id, provider_name=self.name, reason=reason)
