from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from letlog.ratelimit.client import client_identifier
from letlog.ratelimit.limiter import FixedWindowRateLimiter


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_fixed_window_counts_down_then_rejects() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(clock=clock)

    remaining = []
    for _ in range(10):
        r = limiter.check("k", limit=10, window_seconds=60)
        assert r.success
        assert r.reset_at == 1_060.0
        remaining.append(r.remaining)
    assert remaining == list(range(9, -1, -1))

    r = limiter.check("k", limit=10, window_seconds=60)
    assert not r.success
    assert r.remaining == 0
    assert r.reset_at == 1_060.0


def test_rejection_does_not_extend_the_window() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(clock=clock)
    for _ in range(3):
        limiter.check("k", limit=2, window_seconds=10)

    clock.now += 9
    assert limiter.check("k", limit=2, window_seconds=10).reset_at == 1_010.0


def test_new_window_after_reset_at_has_passed() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(clock=clock)
    for _ in range(11):
        limiter.check("k", limit=10, window_seconds=60)

    # Still inside the window at exactly reset_at.
    clock.now = 1_060.0
    assert not limiter.check("k", limit=10, window_seconds=60).success

    clock.now = 1_060.5
    r = limiter.check("k", limit=10, window_seconds=60)
    assert r.success
    assert r.remaining == 9
    assert r.reset_at == 1_120.5


def test_boundary_burst_admits_twice_the_limit() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(clock=clock)
    admitted = 0
    clock.now = 1_059.0
    admitted += sum(limiter.check("k", limit=5, window_seconds=1).success for _ in range(5))
    clock.now = 1_060.5
    admitted += sum(limiter.check("k", limit=5, window_seconds=1).success for _ in range(5))
    assert admitted == 10


def test_keys_are_independent() -> None:
    limiter = FixedWindowRateLimiter(clock=FakeClock())
    for _ in range(2):
        limiter.check("checkout:1.1.1.1", limit=2, window_seconds=60)
    assert not limiter.check("checkout:1.1.1.1", limit=2, window_seconds=60).success
    assert limiter.check("checkout:2.2.2.2", limit=2, window_seconds=60).success
    assert limiter.check("portal:1.1.1.1", limit=2, window_seconds=60).success


def test_sweep_removes_only_expired_buckets() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(clock=clock)
    limiter.check("old", limit=5, window_seconds=10)
    clock.now += 30
    limiter.check("fresh", limit=5, window_seconds=60)

    assert limiter.sweep() == 1
    assert len(limiter) == 1

    r = limiter.check("fresh", limit=5, window_seconds=60)
    assert r.remaining == 3


def test_swept_key_starts_a_fresh_window() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(clock=clock)
    for _ in range(3):
        limiter.check("k", limit=3, window_seconds=10)
    clock.now += 11
    limiter.sweep()

    r = limiter.check("k", limit=3, window_seconds=10)
    assert r.success
    assert r.remaining == 2


def test_concurrent_threads_never_over_admit() -> None:
    limiter = FixedWindowRateLimiter()
    with ThreadPoolExecutor(max_workers=20) as pool:
        results = list(
            pool.map(lambda _: limiter.check("k", limit=10, window_seconds=60), range(20))
        )
    assert sum(r.success for r in results) == 10
    assert sum(not r.success for r in results) == 10


@pytest.mark.asyncio
async def test_concurrent_tasks_never_over_admit() -> None:
    limiter = FixedWindowRateLimiter()
    results = await asyncio.gather(
        *(asyncio.to_thread(limiter.check, "k", limit=10, window_seconds=60) for _ in range(20))
    )
    assert [r.success for r in results].count(True) == 10


@pytest.mark.asyncio
async def test_sweeper_lifecycle() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(sweep_interval_seconds=0.01, clock=clock)
    limiter.check("k", limit=1, window_seconds=1)
    clock.now += 5

    limiter.start()
    for _ in range(100):
        if len(limiter) == 0:
            break
        await asyncio.sleep(0.01)
    assert len(limiter) == 0

    await limiter.stop()
    # Stopping twice is harmless.
    await limiter.stop()


@pytest.mark.parametrize(
    ("headers", "expected"),
    [
        ({"x-forwarded-for": "203.0.113.7, 10.0.0.1"}, "203.0.113.7"),
        ({"x-forwarded-for": " 198.51.100.2 "}, "198.51.100.2"),
        ({"x-real-ip": "192.0.2.9"}, "192.0.2.9"),
        ({"x-forwarded-for": "203.0.113.7", "x-real-ip": "192.0.2.9"}, "203.0.113.7"),
        ({}, "unknown"),
    ],
)
def test_client_identifier(headers: dict[str, str], expected: str) -> None:
    assert client_identifier(headers) == expected
