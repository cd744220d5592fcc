"""Per-call context: the clock ledger operations read and the timings they record."""

import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LedgerContext:
    """
    Handed to every service call. Tests pass a fixed clock; measured durations
    stay on the context and are dropped with it.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.clock = clock
        self._timer = timer
        self.metrics: Dict[str, List[float]] = {}

    def now(self) -> datetime:
        return self.clock()

    @contextmanager
    def measure(self, label: str) -> Iterator[None]:
        started = self._timer()
        try:
            yield
        finally:
            elapsed_ms = (self._timer() - started) * 1000
            self.metrics.setdefault(label, []).append(elapsed_ms)

    def get_metrics(self, label: str) -> Optional[Dict[str, float]]:
        samples = self.metrics.get(label)
        if not samples:
            return None
        return {
            "avg": sum(samples) / len(samples),
            "min": min(samples),
            "max": max(samples),
            "count": len(samples),
        }


def fixed_clock(moment: datetime) -> Callable[[], datetime]:
    return lambda: moment


def get_ledger_context() -> LedgerContext:
    """FastAPI dependency; a fresh context per request."""
    return LedgerContext()
