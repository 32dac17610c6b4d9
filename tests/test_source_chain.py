"""
Tests for the per-coin fallback chain.

Verifies that:
- Primary adapter is used when healthy
- Fallback adapters are tried in priority order when the primary fails
- A result is accepted whole (no merging between candidates)
- Exhausted chains return a FetchFailure joining all reasons, never raise
- Circuit breakers skip adapters that keep failing
- Pacing is applied per upstream host
"""
from __future__ import annotations

from mining_monitor.providers.base import CoinRecord, FetchFailure, ProviderStatus
from mining_monitor.providers.chain import CoinSourceChain
from mining_monitor.providers.resilience import PacingPolicy
from tests.fakes import FakeSource, FakeSourceAlwaysFail, FakeSourceRaises


class TestFallbackOrder:
    def test_primary_used_when_healthy(self):
        primary = FakeSource("primary", {"BTC": 100.0})
        backup = FakeSource("backup", {"BTC": 99.0})
        r = CoinSourceChain("BTC", [primary, backup]).resolve()
        assert isinstance(r, CoinRecord)
        assert r.data_source == "primary"
        assert backup.call_count == 0

    def test_fallback_when_primary_fails(self):
        primary = FakeSourceAlwaysFail("primary")
        backup = FakeSource("backup", {"BTC": 99.0})
        r = CoinSourceChain("BTC", [primary, backup]).resolve()
        assert isinstance(r, CoinRecord)
        assert r.data_source == "backup"
        assert r.difficulty == 99.0
        assert primary.call_count == 1

    def test_third_candidate(self):
        a = FakeSourceAlwaysFail("a")
        b = FakeSourceAlwaysFail("b")
        c = FakeSource("c", {"BCH": 5.0})
        r = CoinSourceChain("BCH", [a, b, c]).resolve()
        assert r.data_source == "c"

    def test_zero_difficulty_record_rejected_whole(self):
        bad = FakeSource("bad", {"BTC": 0.0})
        good = FakeSource("good", {"BTC": 10.0})
        r = CoinSourceChain("BTC", [bad, good]).resolve()
        assert r.data_source == "good"
        assert r.difficulty == 10.0

    def test_infinite_difficulty_record_rejected(self):
        bad = FakeSource("bad", {"BTC": float("inf")})
        good = FakeSource("good", {"BTC": 10.0})
        r = CoinSourceChain("BTC", [bad, good]).resolve()
        assert r.data_source == "good"


class TestExhausted:
    def test_all_fail_returns_failure(self):
        chain = CoinSourceChain("XEC", [FakeSourceAlwaysFail("a"), FakeSourceAlwaysFail("b")])
        r = chain.resolve()
        assert isinstance(r, FetchFailure)
        assert r.coin_id == "XEC"
        assert "a: a always fails" in r.reason
        assert "b: b always fails" in r.reason

    def test_raising_adapter_is_contained(self):
        chain = CoinSourceChain("BTC", [FakeSourceRaises("boom"), FakeSource("ok", {"BTC": 1.0})])
        r = chain.resolve()
        assert isinstance(r, CoinRecord)
        assert r.data_source == "ok"

    def test_only_raising_adapter(self):
        r = CoinSourceChain("BTC", [FakeSourceRaises("boom")]).resolve()
        assert isinstance(r, FetchFailure)
        assert "RuntimeError" in r.reason

    def test_empty_chain(self):
        r = CoinSourceChain("BTC", []).resolve()
        assert isinstance(r, FetchFailure)
        assert r.reason == "no sources configured"


class TestBreakersAndHealth:
    def test_breaker_skips_failing_primary(self):
        primary = FakeSourceAlwaysFail("primary")
        backup = FakeSource("backup", {"BTC": 1.0})
        chain = CoinSourceChain("BTC", [primary, backup], failure_threshold=2, cooldown_seconds=60)
        for _ in range(4):
            assert chain.resolve().data_source == "backup"
        # Opened after the second failure; later resolutions skip it.
        assert primary.call_count == 2
        assert chain.get_breaker_states()["primary"] == "OPEN"
        assert chain.get_breaker_states()["backup"] == "CLOSED"

    def test_breaker_open_reason(self):
        primary = FakeSourceAlwaysFail("primary")
        chain = CoinSourceChain("BTC", [primary], failure_threshold=1)
        chain.resolve()
        r = chain.resolve()
        assert isinstance(r, FetchFailure)
        assert "circuit breaker OPEN" in r.reason

    def test_health_recorded(self):
        primary = FakeSourceAlwaysFail("primary")
        backup = FakeSource("backup", {"BTC": 1.0})
        chain = CoinSourceChain("BTC", [primary, backup], failure_threshold=10)
        chain.resolve()
        chain.resolve()
        health = chain.get_health()
        assert health["primary"].fail_count == 2
        assert health["primary"].status == ProviderStatus.DEGRADED
        assert health["backup"].status == ProviderStatus.OK
        assert health["backup"].last_ok_at is not None

    def test_shared_breakers_between_chains(self):
        shared = FakeSourceAlwaysFail("shared")
        breakers: dict = {}
        health: dict = {}
        btc = CoinSourceChain("BTC", [shared], breakers=breakers, health=health, failure_threshold=2)
        bch = CoinSourceChain("BCH", [shared], breakers=breakers, health=health, failure_threshold=2)
        btc.resolve()
        bch.resolve()
        assert breakers["shared"].is_open
        bch.resolve()
        assert shared.call_count == 2


class TestPacing:
    def test_pacing_called_per_attempt_with_host(self):
        hosts = []

        class RecordingPacing(PacingPolicy):
            def wait(self, host: str) -> float:
                hosts.append(host)
                return 0.0

        a = FakeSourceAlwaysFail("a")
        b = FakeSource("b", {"BTC": 1.0}, host="b.example")
        CoinSourceChain("BTC", [a, b], pacing=RecordingPacing()).resolve()
        assert hosts == ["a.example", "b.example"]


class TestSharedState:
    def test_parallel_chains_share_one_breaker_and_health(self):
        from concurrent.futures import ThreadPoolExecutor

        shared = FakeSourceAlwaysFail("blockchair")
        breakers, health = {}, {}
        chains = [
            CoinSourceChain(c, [shared], breakers=breakers, health=health, failure_threshold=100)
            for c in ("BTC", "BCH", "XEC", "LTC")
        ]
        with ThreadPoolExecutor(max_workers=4) as pool:
            for _ in range(25):
                list(pool.map(lambda ch: ch.resolve(), chains))
        assert health["blockchair"].fail_count == 100
        assert breakers["blockchair"].state == "OPEN"
