"""
Per-client sliding window rate limiting for the mutating endpoints.
"""

import time
import threading
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: Optional[float] = None


class RateLimiter:
    """
    Sliding window limiter keyed by client id.

    Keys with no hits inside the window are swept at most once per window.

    Usage:
        limiter = RateLimiter(rpm=120)
        result = limiter.check("caller:alice")
        if not result.allowed:
            ...  # 429 with Retry-After: result.retry_after
    """

    def __init__(self, rpm: int, window_seconds: int = 60):
        self._limit = max(1, rpm)
        self._window = window_seconds
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = time.time()
        self._lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._limit

    def allow(self, key: str) -> bool:
        return self.check(key).allowed

    def check(self, key: str) -> RateLimitResult:
        """Record a hit for key unless the window is already full."""
        now = time.time()
        window_start = now - self._window

        with self._lock:
            if now - self._last_sweep >= self._window:
                self._sweep(window_start)
                self._last_sweep = now

            hits = self._hits[key]
            while hits and hits[0] < window_start:
                hits.popleft()

            if len(hits) >= self._limit:
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    retry_after=max(0.0, hits[0] + self._window - now)
                )

            hits.append(now)
            return RateLimitResult(allowed=True, remaining=self._limit - len(hits))

    def reset(self, key: Optional[str] = None) -> None:
        """Reset counters for one key, or all keys."""
        with self._lock:
            if key:
                self._hits.pop(key, None)
            else:
                self._hits.clear()

    def _sweep(self, window_start: float) -> None:
        idle = [k for k, hits in self._hits.items() if not hits or hits[-1] < window_start]
        for k in idle:
            del self._hits[k]

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits)
