"""Fixed-window submission throttle keyed by client identity.

State lives in memory for the life of the process and is not shared between
instances. Windows reset lazily on the next request from the same identity.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class RateLimitBucket:
    window_start: float
    count: int


class FixedWindowRateLimiter:
    SWEEP_INTERVAL = 256  # sweep expired buckets every N checks

    def __init__(
        self,
        window_seconds: float = 15.0,
        max_requests: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._buckets: dict[str, RateLimitBucket] = {}
        self._check_count = 0

    @property
    def bucket_count(self) -> int:
        return len(self._buckets)

    def check_and_record(self, identity: str, now: float | None = None) -> bool:
        """Record one request for ``identity``. Returns True when it is over quota."""
        if now is None:
            now = self._clock()

        self._check_count += 1
        if self._check_count % self.SWEEP_INTERVAL == 0:
            self.sweep(now)

        bucket = self._buckets.get(identity)
        if bucket is None or now - bucket.window_start > self.window_seconds:
            self._buckets[identity] = RateLimitBucket(window_start=now, count=1)
            return False

        bucket.count += 1
        limited = bucket.count > self.max_requests
        if limited:
            logger.info("rate limited identity=%s count=%d", identity, bucket.count)
        return limited

    def sweep(self, now: float | None = None) -> int:
        if now is None:
            now = self._clock()
        expired = [
            key for key, bucket in self._buckets.items()
            if now - bucket.window_start > self.window_seconds
        ]
        for key in expired:
            del self._buckets[key]
        return len(expired)
