"""
Refresh scheduler: runs the aggregation cycle at startup and on a fixed
interval, plus on manual trigger. Cycles never overlap.

States: IDLE -> RUNNING on timer tick or manual trigger, RUNNING -> IDLE when
the cycle completes (accepted or not). A manual trigger that arrives while a
cycle is RUNNING waits for it and then runs its own cycle. A timer tick that
finds a cycle RUNNING is skipped.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .ingest import CycleResult

logger = logging.getLogger(__name__)

IDLE = "IDLE"
RUNNING = "RUNNING"


class RefreshScheduler:
    """Single-writer driver for the aggregation cycle."""

    def __init__(
        self,
        run_cycle: Callable[[], CycleResult],
        interval_seconds: float = 600.0,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be > 0 (got {interval_seconds})")
        self._run_cycle = run_cycle
        self._interval_s = float(interval_seconds)
        self._cycle_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state = IDLE
        self._last_result: Optional[CycleResult] = None
        self._cycles_run = 0

    @property
    def state(self) -> str:
        return self._state

    @property
    def interval_seconds(self) -> float:
        return self._interval_s

    @property
    def last_result(self) -> Optional[CycleResult]:
        return self._last_result

    @property
    def cycles_run(self) -> int:
        return self._cycles_run

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _execute(self, reason: str) -> CycleResult:
        # Caller holds _cycle_lock.
        self._state = RUNNING
        try:
            logger.info("Cycle triggered (%s)", reason)
            result = self._run_cycle()
        except Exception as exc:
            # run_one_cycle never raises; guard against injected callables.
            logger.exception("Cycle callable raised (%s)", reason)
            result = CycleResult(accepted=False, error=f"{type(exc).__name__}: {exc}")
        finally:
            self._state = IDLE
        self._last_result = result
        self._cycles_run += 1
        return result

    def trigger(self) -> CycleResult:
        """Run one cycle synchronously, waiting for an in-flight cycle to finish first."""
        with self._cycle_lock:
            return self._execute("manual")

    def tick(self) -> Optional[CycleResult]:
        """Timer entry point: run a cycle unless one is in flight (then skip)."""
        if not self._cycle_lock.acquire(blocking=False):
            logger.info("Timer tick skipped: cycle already running")
            return None
        try:
            return self._execute("timer")
        finally:
            self._cycle_lock.release()

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.tick()
            if self._stop.wait(self._interval_s):
                break

    def start(self) -> None:
        """Start the timer thread; the first cycle runs immediately."""
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="refresh-scheduler", daemon=True)
        self._thread.start()
        logger.info("Scheduler started (interval %.0fs)", self._interval_s)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the timer thread. An in-flight cycle finishes; no new tick starts."""
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        self._thread = None
        logger.info("Scheduler stopped")
