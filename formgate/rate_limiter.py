# ================================
# FILE: formgate/rate_limiter.py
# ================================
import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable

log = logging.getLogger("uvicorn.error").getChild("rate_limiter")

MINUTE = 60
HOUR = 3600
DAY = 86400
RETENTION_SECS = DAY
DEFAULT_SWEEP_SECS = 15 * 60


@dataclass(frozen=True)
class RateLimits:
    per_minute: int = 5
    per_hour: int = 20
    per_day: int = 100

    def windows(self) -> list[tuple[str, int, int]]:
        return [
            ("minute", MINUTE, self.per_minute),
            ("hour", HOUR, self.per_hour),
            ("day", DAY, self.per_day),
        ]


@dataclass(frozen=True)
class RateViolation:
    window: str
    count: int
    limit: int


@dataclass
class RateCheckResult:
    violations: list[RateViolation] = field(default_factory=list)
    counts: dict[str, int] = field(default_factory=dict)
    retry_after: int = 0

    @property
    def allowed(self) -> bool:
        return not self.violations


class RateLimiter:
    """In-memory sliding-window limiter keyed by client identity (usually IP).

    Keeps one deque of submission timestamps per client; the minute, hour and
    day windows are all counted from that same history. State lives in this
    process only. A single lock guards the map and the sweep bookkeeping.
    """

    def __init__(
        self,
        limits: RateLimits | None = None,
        sweep_interval: float = DEFAULT_SWEEP_SECS,
        clock: Callable[[], float] = time.time,
    ):
        self.limits = limits or RateLimits()
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._history: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    # -- public ---------------------------------------------------------

    def check(self, client_id: str) -> RateCheckResult:
        """Read-only: report current counts and any breached windows."""
        with self._lock:
            now = self._clock()
            self._maybe_sweep(now)
            return self._evaluate(client_id, now)

    def record(self, client_id: str) -> None:
        with self._lock:
            now = self._clock()
            self._maybe_sweep(now)
            self._append(client_id, now)

    def admit(self, client_id: str) -> RateCheckResult:
        """Check and record under one lock acquisition.

        Records only when the check passes, so two concurrent requests from the
        same client cannot both take the last free slot.
        """
        with self._lock:
            now = self._clock()
            self._maybe_sweep(now)
            result = self._evaluate(client_id, now)
            if result.allowed:
                self._append(client_id, now)
            return result

    def purge(self, now: float | None = None) -> int:
        """Run the retention sweep immediately; returns evicted client count."""
        with self._lock:
            return self._sweep(self._clock() if now is None else now)

    def history(self, client_id: str) -> list[float]:
        with self._lock:
            return list(self._history.get(client_id, ()))

    def stats(self) -> dict:
        with self._lock:
            return {
                "tracked_clients": len(self._history),
                "tracked_submissions": sum(len(h) for h in self._history.values()),
                "limits": {name: limit for name, _, limit in self.limits.windows()},
            }

    def reset(self) -> None:
        with self._lock:
            self._history.clear()
            self._last_sweep = self._clock()

    # -- internals (lock held) -----------------------------------------

    def _evaluate(self, client_id: str, now: float) -> RateCheckResult:
        stamps = self._history.get(client_id, ())
        result = RateCheckResult()
        for name, span, limit in self.limits.windows():
            start = now - span
            in_window = [t for t in stamps if t > start]
            result.counts[name] = len(in_window)
            if len(in_window) >= limit:
                result.violations.append(RateViolation(window=name, count=len(in_window), limit=limit))
                # the slot frees once the (count - limit + 1)-th oldest entry ages out
                oldest = in_window[len(in_window) - limit]
                wait = math.ceil(oldest + span - now)
                result.retry_after = max(result.retry_after, wait, 1)
        return result

    def _append(self, client_id: str, now: float) -> None:
        stamps = self._history.setdefault(client_id, deque())
        # history stays non-decreasing even if the wall clock steps back
        stamps.append(max(now, stamps[-1]) if stamps else now)

    def _maybe_sweep(self, now: float) -> None:
        if now - self._last_sweep >= self.sweep_interval:
            self._sweep(now)

    def _sweep(self, now: float) -> int:
        cutoff = now - RETENTION_SECS
        evicted = 0
        for client_id in list(self._history):
            stamps = self._history[client_id]
            while stamps and stamps[0] <= cutoff:
                stamps.popleft()
            if not stamps:
                del self._history[client_id]
                evicted += 1
        self._last_sweep = now
        if evicted:
            log.info("[ratelimit] sweep evicted %d idle client(s); %d tracked", evicted, len(self._history))
        return evicted
