"""
Resilience primitives: circuit breaker and per-host pacing.

Adapters never retry; the fallback chain moves on to the next candidate.
The breaker keeps a failing adapter out of the chain for a cooldown, and the
pacing policy spaces out calls to the same upstream host.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


CLOSED = "CLOSED"
OPEN = "OPEN"
HALF_OPEN = "HALF_OPEN"


@dataclass
class CircuitBreaker:
    """
    Keeps a source adapter out of its chains while it keeps failing.

    After `failure_threshold` failures in a row the adapter is skipped
    (OPEN). Once `cooldown_seconds` have passed it gets one more attempt
    (HALF_OPEN): a success closes the breaker, a failure reopens it for
    another cooldown. One breaker may be shared by the chains of every coin
    the adapter serves, so state changes happen under a lock.
    """
    provider_name: str
    failure_threshold: int = 3
    cooldown_seconds: float = 300.0
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    _failures: int = field(default=0, init=False, repr=False)
    _state: str = field(default=CLOSED, init=False, repr=False)
    _opened_at: Optional[float] = field(default=None, init=False, repr=False)
    _last_error: Optional[str] = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    @property
    def state(self) -> str:
        with self._lock:
            if self._state == OPEN and self.clock() - (self._opened_at or 0.0) >= self.cooldown_seconds:
                self._state = HALF_OPEN
            return self._state

    @property
    def is_open(self) -> bool:
        return self.state == OPEN

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def record_success(self) -> None:
        with self._lock:
            self._failures = 0
            self._state = CLOSED
            self._last_error = None

    def record_failure(self, error: str) -> None:
        with self._lock:
            self._failures += 1
            self._last_error = error[:500]
            trip = self._state == HALF_OPEN or self._failures >= self.failure_threshold
            if trip:
                self._state = OPEN
                self._opened_at = self.clock()
            failures = self._failures
        if trip:
            logger.warning(
                "%s skipped for %.0fs after %d failed fetches: %s",
                self.provider_name, self.cooldown_seconds, failures, error[:200],
            )

    def reset(self) -> None:
        with self._lock:
            self._failures = 0
            self._state = CLOSED
            self._opened_at = None
            self._last_error = None


class PacingPolicy:
    """
    Minimum interval between calls to the same upstream host.

    Thread-safe: concurrent resolutions that share a host are serialized on
    that host's slot, calls to different hosts do not wait for each other.
    """

    def __init__(
        self,
        min_interval_s: float = 1.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._min_interval_s = max(0.0, float(min_interval_s))
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._host_locks: Dict[str, threading.Lock] = {}
        self._last_call: Dict[str, float] = {}

    @property
    def min_interval_s(self) -> float:
        return self._min_interval_s

    def _host_lock(self, host: str) -> threading.Lock:
        with self._lock:
            lock = self._host_locks.get(host)
            if lock is None:
                lock = self._host_locks[host] = threading.Lock()
            return lock

    def wait(self, host: str) -> float:
        """Block until `host` may be called again; returns the time slept."""
        if self._min_interval_s <= 0:
            return 0.0
        with self._host_lock(host):
            last = self._last_call.get(host)
            slept = 0.0
            if last is not None:
                remaining = self._min_interval_s - (self._clock() - last)
                if remaining > 0:
                    logger.debug("Pacing %s: sleeping %.2fs", host, remaining)
                    self._sleep(remaining)
                    slept = remaining
            self._last_call[host] = self._clock()
            return slept
