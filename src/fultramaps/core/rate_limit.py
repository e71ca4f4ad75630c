"""
Outbound rate limiting for provider calls.

Google and HERE keys carry per-minute quotas. When
`maps.max_requests_per_minute` is set, every provider client shares one bucket
and blocks in `acquire()` until a token is available. The API serves requests
from a thread pool, so the bucket is guarded by a lock.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable


@dataclass
class TokenBucketRateLimiter:
    """Token bucket allowing `max_per_minute` requests, with bursts up to `burst`."""

    max_per_minute: float
    burst: float | None = None
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_per_minute <= 0:
            raise ValueError("max_per_minute must be > 0")
        self._rate = self.max_per_minute / 60.0
        self._capacity = float(self.burst if self.burst is not None else self.max_per_minute)
        self._tokens = self._capacity
        self._stamp = self.clock()

    def try_acquire(self) -> float:
        """Take one token if available. Returns 0.0 on success, else seconds until one is due."""
        with self._lock:
            now = self.clock()
            self._tokens = min(self._capacity, self._tokens + max(0.0, now - self._stamp) * self._rate)
            self._stamp = now
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return 0.0
            return (1.0 - self._tokens) / self._rate

    def acquire(self) -> None:
        """Block until a request may be sent."""
        while (wait := self.try_acquire()) > 0:
            self.sleep(min(1.0, max(0.05, wait)))
