"""
Source adapters with mocked HTTP: unit normalization, static per-coin fields,
and conversion of every upstream problem into a FetchFailure (never raised).
"""

from __future__ import annotations

import math
from unittest.mock import MagicMock, patch

import pytest
import requests

from mining_monitor.providers.base import CoinRecord, FetchFailure
from mining_monitor.providers.sources.blockchain_info import BlockchainInfoSource
from mining_monitor.providers.sources.blockchair import BlockchairSource
from mining_monitor.providers.sources.mempool_space import MempoolSpaceSource

COINS = {
    "BTC": {"name": "Bitcoin", "algorithm": "SHA-256", "block_reward": 3.125, "block_time_seconds": 600},
    "BCH": {"name": "Bitcoin Cash", "algorithm": "SHA-256", "block_reward": 3.125, "block_time_seconds": 600},
    "XEC": {"name": "eCash", "algorithm": "SHA-256", "block_reward": 1812500, "block_time_seconds": 537},
}

GET = "mining_monitor.providers.sources.base.requests.get"


def _resp(payload, status_code: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status_code}")
    else:
        resp.raise_for_status = MagicMock()
    return resp


class TestBlockchainInfo:
    @patch(GET)
    def test_parses_and_normalizes(self, mock_get):
        mock_get.return_value = _resp({"difficulty": 1.0e14, "hash_rate": 6.5e11})
        r = BlockchainInfoSource(COINS).fetch("BTC")
        assert isinstance(r, CoinRecord)
        assert r.id == r.symbol == "BTC"
        assert r.name == "Bitcoin"
        assert r.difficulty == 1.0e14
        # 6.5e11 GH/s == 650 EH/s
        assert math.isclose(r.network_hashrate, 650.0)
        assert r.block_reward == 3.125
        assert r.block_time_seconds == 600
        assert r.data_source == "Blockchain.info API"
        _, kwargs = mock_get.call_args
        assert kwargs["timeout"] == 15.0
        assert "User-Agent" in kwargs["headers"]

    @patch(GET)
    def test_missing_difficulty_is_failure(self, mock_get):
        mock_get.return_value = _resp({"hash_rate": 1.0})
        r = BlockchainInfoSource(COINS).fetch("BTC")
        assert isinstance(r, FetchFailure)
        assert "difficulty" in r.reason
        assert r.provider_name == "blockchain_info"

    @patch(GET)
    def test_missing_hashrate_defaults_to_zero(self, mock_get):
        mock_get.return_value = _resp({"difficulty": "123.5"})
        r = BlockchainInfoSource(COINS).fetch("BTC")
        assert isinstance(r, CoinRecord)
        assert r.difficulty == 123.5
        assert r.network_hashrate == 0.0

    @patch(GET)
    def test_other_coins_unsupported_without_request(self, mock_get):
        r = BlockchainInfoSource(COINS).fetch("BCH")
        assert isinstance(r, FetchFailure)
        assert "unsupported" in r.reason
        mock_get.assert_not_called()


class TestBlockchair:
    @patch(GET)
    def test_bch_stats(self, mock_get):
        mock_get.return_value = _resp({"data": {"difficulty": 5.0e11, "hashrate_24h": "3500000000000000000"}})
        r = BlockchairSource(COINS).fetch("bch")
        assert isinstance(r, CoinRecord)
        assert r.id == "BCH"
        assert r.name == "Bitcoin Cash"
        assert math.isclose(r.network_hashrate, 3.5)
        assert r.data_source == "Blockchair API"
        url = mock_get.call_args[0][0]
        assert url == "https://api.blockchair.com/bitcoin-cash/stats"

    @patch(GET)
    def test_xec_uses_ecash_chain(self, mock_get):
        mock_get.return_value = _resp({"data": {"difficulty": 1.0e11, "hashrate_24h": 1.0e17}})
        r = BlockchairSource(COINS).fetch("XEC")
        assert isinstance(r, CoinRecord)
        assert r.block_reward == 1812500
        assert mock_get.call_args[0][0].endswith("/ecash/stats")

    @patch(GET)
    def test_missing_data_section(self, mock_get):
        mock_get.return_value = _resp({"context": {"code": 402}})
        r = BlockchairSource(COINS).fetch("BCH")
        assert isinstance(r, FetchFailure)
        assert "malformed payload" in r.reason

    @patch(GET)
    def test_zero_difficulty_rejected(self, mock_get):
        mock_get.return_value = _resp({"data": {"difficulty": 0, "hashrate_24h": 1}})
        r = BlockchairSource(COINS).fetch("BCH")
        assert isinstance(r, FetchFailure)
        assert "non-positive difficulty" in r.reason

    @patch(GET)
    def test_infinite_difficulty_rejected(self, mock_get):
        mock_get.return_value = _resp({"data": {"difficulty": "Infinity", "hashrate_24h": 1}})
        r = BlockchairSource(COINS).fetch("BCH")
        assert isinstance(r, FetchFailure)
        assert "malformed payload" in r.reason

    @patch(GET)
    def test_coin_without_static_config_unsupported(self, mock_get):
        mock_get.return_value = _resp({"data": {"difficulty": 1.0, "hashrate_24h": 1}})
        r = BlockchairSource(COINS).fetch("LTC")
        assert isinstance(r, FetchFailure)
        assert "unsupported" in r.reason


class TestMempoolSpace:
    @patch(GET)
    def test_parses(self, mock_get):
        mock_get.return_value = _resp({"currentHashrate": 7.0e20, "currentDifficulty": 1.1e14})
        r = MempoolSpaceSource(COINS).fetch("BTC")
        assert isinstance(r, CoinRecord)
        assert math.isclose(r.network_hashrate, 700.0)
        assert r.difficulty == 1.1e14
        assert r.data_source == "mempool.space API"


@pytest.mark.parametrize(
    "side_effect",
    [
        requests.Timeout("read timed out"),
        requests.ConnectionError("connection refused"),
    ],
)
@patch(GET)
def test_network_errors_become_failures(mock_get, side_effect):
    mock_get.side_effect = side_effect
    r = BlockchairSource(COINS).fetch("BCH")
    assert isinstance(r, FetchFailure)
    assert r.coin_id == "BCH"


@patch(GET)
def test_timeout_reason_mentions_timeout(mock_get):
    mock_get.side_effect = requests.Timeout("slow")
    r = BlockchainInfoSource(COINS, timeout_s=10).fetch("BTC")
    assert isinstance(r, FetchFailure)
    assert r.reason == "timeout after 10s"


@pytest.mark.parametrize("status", [429, 500, 503])
@patch(GET)
def test_non_2xx_becomes_failure(mock_get, status):
    mock_get.return_value = _resp({}, status_code=status)
    r = MempoolSpaceSource(COINS).fetch("BTC")
    assert isinstance(r, FetchFailure)


@patch(GET)
def test_invalid_json_becomes_failure(mock_get):
    resp = _resp(None)
    resp.json.side_effect = ValueError("Expecting value")
    mock_get.return_value = resp
    r = BlockchairSource(COINS).fetch("BCH")
    assert isinstance(r, FetchFailure)
    assert "malformed payload" in r.reason


@patch(GET)
def test_list_payload_becomes_failure(mock_get):
    mock_get.return_value = _resp([1, 2, 3])
    r = BlockchainInfoSource(COINS).fetch("BTC")
    assert isinstance(r, FetchFailure)


def test_session_is_used_when_given():
    session = MagicMock()
    session.get.return_value = _resp({"data": {"difficulty": 2.0, "hashrate_24h": 0}})
    r = BlockchairSource(COINS, session=session).fetch("BCH")
    assert isinstance(r, CoinRecord)
    session.get.assert_called_once()


def test_host_is_upstream_netloc():
    assert BlockchairSource(COINS).host == "api.blockchair.com"
    assert BlockchainInfoSource(COINS).host == "blockchain.info"
