"""Sliding-window throttling for the credential endpoints."""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = 60.0


@dataclass(frozen=True)
class RateLimitRule:
    endpoint: str
    limit: int
    window_seconds: int


@dataclass
class _Bucket:
    window: float
    attempts: deque[float]


class AttemptLimiter:
    """Counts attempts per key inside a sliding window.

    A key is forgotten as soon as its window drains, and a periodic sweep drops
    keys that were never touched again, so memory follows recent traffic only.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._clock = clock
        self._sweep_interval = max(float(sweep_interval), 0.0)
        self._buckets: dict[str, _Bucket] = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    @staticmethod
    def _drain(bucket: _Bucket, now: float) -> None:
        cutoff = now - bucket.window
        while bucket.attempts and bucket.attempts[0] <= cutoff:
            bucket.attempts.popleft()

    def _sweep_locked(self, now: float) -> None:
        for key in list(self._buckets):
            bucket = self._buckets[key]
            self._drain(bucket, now)
            if not bucket.attempts:
                del self._buckets[key]
        self._last_sweep = now

    def hit(self, key: str, *, limit: int, window_seconds: float) -> tuple[bool, int]:
        """Record one attempt. Returns (allowed, retry_after_seconds)."""
        now = self._clock()
        window = max(float(window_seconds), 1.0)
        max_attempts = max(int(limit), 1)
        with self._lock:
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep_locked(now)

            bucket = self._buckets.get(key)
            if bucket is not None:
                bucket.window = window
                self._drain(bucket, now)
                if not bucket.attempts:
                    del self._buckets[key]
                    bucket = None
            if bucket is None:
                bucket = self._buckets[key] = _Bucket(window=window, attempts=deque())

            if len(bucket.attempts) >= max_attempts:
                return False, max(int(bucket.attempts[0] + window - now), 1)
            bucket.attempts.append(now)
            return True, 0


_LIMITER = AttemptLimiter()


def _redact(scope_key: str) -> str:
    # Scope keys carry usernames and client IPs; log a digest only.
    return hashlib.sha256((scope_key or "").encode("utf-8")).hexdigest()[:16]


def enforce_rate_limit(*, rule: RateLimitRule, scope_key: str) -> tuple[bool, int]:
    allowed, retry_after = _LIMITER.hit(
        f"{rule.endpoint}:{scope_key}",
        limit=rule.limit,
        window_seconds=rule.window_seconds,
    )
    if not allowed:
        logger.warning(
            "Rate limit hit on %s scope=%s retry_after=%ss",
            rule.endpoint,
            _redact(scope_key),
            retry_after,
        )
    return allowed, retry_after
