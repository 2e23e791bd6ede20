"""
letlog.ratelimit.limiter

In-process fixed-window rate limiter.

Responsibilities:
- Count requests per identifier in fixed windows (`count`, `reset_at`).
- Serialize every mutation of one key (increment, reset, sweep-delete) with a
  per-bucket lock; distinct keys do not contend.
- Periodically sweep expired buckets from an asyncio task owned by the
  limiter (`start`/`stop`).

Note:
- Fixed windows admit up to 2x `limit` across a window edge. That is accepted
  behaviour for abuse deterrence.
"""

from __future__ import annotations

import asyncio
import contextlib
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from letlog.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    success: bool
    remaining: int
    # Epoch seconds at which the current window ends.
    reset_at: float


@dataclass(slots=True)
class _Bucket:
    count: int
    reset_at: float
    lock: threading.Lock = field(default_factory=threading.Lock)
    evicted: bool = False


class FixedWindowRateLimiter:
    def __init__(
        self,
        *,
        sweep_interval_seconds: float = 300.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._buckets: dict[str, _Bucket] = {}
        # Guards only insertion/removal of buckets in the map, never their counters.
        self._registry_lock = threading.Lock()
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._sweeper: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        return len(self._buckets)

    def now(self) -> float:
        return self._clock()

    def check(self, identifier: str, *, limit: int, window_seconds: int) -> RateLimitResult:
        while True:
            bucket = self._bucket_for(identifier)
            with bucket.lock:
                if bucket.evicted:
                    # Swept between lookup and lock; retry against the live map.
                    continue
                now = self._clock()
                if bucket.count == 0 or bucket.reset_at < now:
                    bucket.count = 1
                    bucket.reset_at = now + window_seconds
                    return RateLimitResult(
                        success=True, remaining=limit - 1, reset_at=bucket.reset_at
                    )
                if bucket.count >= limit:
                    return RateLimitResult(success=False, remaining=0, reset_at=bucket.reset_at)
                bucket.count += 1
                return RateLimitResult(
                    success=True, remaining=limit - bucket.count, reset_at=bucket.reset_at
                )

    def _bucket_for(self, identifier: str) -> _Bucket:
        bucket = self._buckets.get(identifier)
        if bucket is not None:
            return bucket
        with self._registry_lock:
            # count=0 marks a bucket that has not opened a window yet.
            return self._buckets.setdefault(identifier, _Bucket(count=0, reset_at=0.0))

    def sweep(self) -> int:
        now = self._clock()
        removed = 0
        with self._registry_lock:
            snapshot = list(self._buckets.items())
        for key, bucket in snapshot:
            with bucket.lock:
                if bucket.count and bucket.reset_at >= now:
                    continue
                bucket.evicted = True
                with self._registry_lock:
                    if self._buckets.get(key) is bucket:
                        del self._buckets[key]
                        removed += 1
        return removed

    def start(self) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            removed = self.sweep()
            if removed:
                log.debug("rate_limit_sweep", removed=removed, remaining=len(self._buckets))


# --- Module Notes -----------------------------------------------------------
# `check` never awaits, so it is atomic on the event loop; the locks also cover
# sync handlers that FastAPI runs in its threadpool.
