"""
In-memory sliding-window rate limiter.

Each client key (the caller's IP address) keeps a deque of the timestamps of
its accepted requests. A new request is accepted while fewer than
max_requests timestamps fall inside the trailing window. Rejected requests
are not recorded, so a client that keeps hammering is let back in as soon as
its oldest accepted request leaves the window.

Every sweep_every hits, and on the first hit after a full window with no
sweep, the whole table is pruned and clients with no hits left in the window
are forgotten, so memory tracks recent callers only.

State lives in process memory: with several workers each one enforces its
own limit.
"""

import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable

DEFAULT_MAX_REQUESTS = 100
DEFAULT_WINDOW_SECONDS = 15 * 60
DEFAULT_SWEEP_EVERY = 1000


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int     # seconds until the next request would be accepted (0 if allowed)


class SlidingWindowRateLimiter:
    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sweep_every: int = DEFAULT_SWEEP_EVERY,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if sweep_every < 1:
            raise ValueError("sweep_every must be at least 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._sweep_every = sweep_every
        self._hits_since_sweep = 0
        self._last_sweep = clock()
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, hits: deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def _sweep_locked(self, now: float) -> None:
        for key in list(self._hits):
            hits = self._hits[key]
            self._prune(hits, now)
            if not hits:
                del self._hits[key]
        self._hits_since_sweep = 0
        self._last_sweep = now

    @property
    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._hits)

    def sweep(self) -> None:
        """Forget every client with no hits left in the window."""
        with self._lock:
            self._sweep_locked(self._clock())

    def hit(self, key: str) -> RateLimitDecision:
        """Record a request for key if it is within the limit."""
        now = self._clock()
        with self._lock:
            self._hits_since_sweep += 1
            if (
                self._hits_since_sweep >= self._sweep_every
                or now - self._last_sweep >= self.window_seconds
            ):
                self._sweep_locked(now)

            hits = self._hits.setdefault(key, deque())
            self._prune(hits, now)

            if len(hits) >= self.max_requests:
                retry_after = math.ceil(hits[0] + self.window_seconds - now)
                return RateLimitDecision(
                    allowed=False,
                    limit=self.max_requests,
                    remaining=0,
                    retry_after=max(retry_after, 1),
                )

            hits.append(now)
            return RateLimitDecision(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests - len(hits),
                retry_after=0,
            )

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
