from __future__ import annotations

import threading
import time
from typing import Callable, Protocol

PENALTY_NOTICE = "Adblocker detected! While active, each drink added will count as 2!"
PROBE_INTERVAL_SECONDS = 2.0


class PenaltySignal(Protocol):
    def __call__(self) -> bool: ...


def no_penalty() -> bool:
    return False


class ReportedPenalty:
    """Penalty flag fed by a client-side ad probe that reports on an interval.

    A report older than ``stale_after`` seconds counts as inactive, so a client
    that stops polling does not keep the doubled increment forever.
    """

    def __init__(self, stale_after: float = 3 * PROBE_INTERVAL_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        self.stale_after = stale_after
        self._clock = clock
        self._lock = threading.Lock()
        self._active = False
        self._reported_at: float | None = None

    def report(self, active: bool) -> None:
        with self._lock:
            self._active = bool(active)
            self._reported_at = self._clock()

    def __call__(self) -> bool:
        with self._lock:
            if self._reported_at is None:
                return False
            if self._clock() - self._reported_at > self.stale_after:
                return False
            return self._active
