"""Per-source request governor.

Every source adapter owns exactly one `RateGovernor`. The governor holds that
source's `SourceBudget` and enforces two independent constraints on it:

- a minimum interval between consecutive dispatches, and
- a cap on dispatches inside any rolling 60-minute window.

`throttle()` blocks (never drops) until both allow the next request. The lock is
held across the wait, so one source's request stream is strictly serialized
while different sources proceed independently.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Optional

logger = logging.getLogger(__name__)

HOUR_S = 3600.0


@dataclass
class SourceBudget:
    """Mutable request counters for one source. Only its governor touches it."""

    source: str
    hourly_cap: int
    min_interval_s: float
    last_request_at: Optional[float] = None
    total_requests: int = 0
    successful_requests: int = 0
    dispatched: Deque[float] = field(default_factory=deque)

    def prune(self, now: float) -> None:
        cutoff = now - HOUR_S
        while self.dispatched and self.dispatched[0] <= cutoff:
            self.dispatched.popleft()

    @property
    def requests_this_hour(self) -> int:
        return len(self.dispatched)


class RateGovernor:
    """Gate for one source's outbound requests."""

    def __init__(
        self,
        source: str,
        min_interval_s: float,
        hourly_cap: int,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if hourly_cap < 1:
            raise ValueError("hourly_cap must be >= 1")
        self.budget = SourceBudget(source=source, hourly_cap=hourly_cap, min_interval_s=min_interval_s)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()

    @property
    def source(self) -> str:
        return self.budget.source

    def throttle(self) -> float:
        """Block until the next request may be dispatched, then record it.

        Returns the total seconds spent waiting.
        """
        b = self.budget
        waited = 0.0
        with self._lock:
            while True:
                now = self._clock()
                b.prune(now)

                if b.requests_this_hour >= b.hourly_cap:
                    wait = b.dispatched[0] + HOUR_S - now
                    logger.info(
                        "%s: hourly budget of %s requests used, waiting %.0f min",
                        b.source,
                        b.hourly_cap,
                        wait / 60,
                    )
                    self._sleep(wait)
                    waited += wait
                    continue

                if b.last_request_at is not None:
                    wait = b.last_request_at + b.min_interval_s - now
                    if wait > 0:
                        self._sleep(wait)
                        waited += wait
                        continue

                b.last_request_at = now
                b.dispatched.append(now)
                b.total_requests += 1
                return waited

    def record_success(self) -> None:
        with self._lock:
            self.budget.successful_requests += 1

    def backoff(self, seconds: float, reason: str) -> None:
        """Fixed pause before a source's single retry."""
        logger.warning("%s: %s, backing off %.0fs before retrying", self.source, reason, seconds)
        with self._lock:
            self._sleep(seconds)

    def status(self) -> Dict[str, Any]:
        # Lock-free snapshot: throttle() may be holding the lock for a long wait.
        b = self.budget
        cutoff = self._clock() - HOUR_S
        in_window = sum(1 for ts in list(b.dispatched) if ts > cutoff)
        return {
            "source": b.source,
            "requests_this_hour": in_window,
            "hourly_cap": b.hourly_cap,
            "hourly_budget_remaining": max(b.hourly_cap - in_window, 0),
            "total_requests": b.total_requests,
            "successful_requests": b.successful_requests,
            "last_request_at": b.last_request_at,
        }
