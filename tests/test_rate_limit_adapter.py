"""Unit tests for in-memory rate limiter adapter."""

import asyncio
from unittest.mock import Mock

import pytest

from kitgate.adapters.rate_limit.in_memory import InMemoryWindowRateLimiter


def test_allows_five_attempts_then_blocks() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryWindowRateLimiter(limit=5, window_seconds=60, clock=clock)

    remaining = [limiter.consume("ip:1.2.3.4").remaining for _ in range(5)]
    assert remaining == [4, 3, 2, 1, 0]

    blocked = limiter.consume("ip:1.2.3.4")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.reset_at == 1060
    assert blocked.retry_after_seconds == 60


def test_stays_blocked_until_window_passes() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    assert limiter.consume("k").allowed is True

    clock.return_value = 1060.0
    blocked = limiter.consume("k")
    assert blocked.allowed is False
    assert blocked.retry_after_seconds == 0

    clock.return_value = 1060.5
    fresh = limiter.consume("k")
    assert fresh.allowed is True
    assert fresh.reset_at == 1121


def test_blocked_attempts_do_not_extend_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

    limiter.consume("k")
    clock.return_value = 1005.0
    assert limiter.consume("k").reset_at == 1010

    clock.return_value = 1011.0
    assert limiter.consume("k").allowed is True


def test_isolated_by_key() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    assert limiter.consume("k1").allowed is True
    assert limiter.consume("k1").allowed is False

    assert limiter.consume("k2").allowed is True


def test_purge_expired_drops_only_finished_windows() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryWindowRateLimiter(limit=5, window_seconds=60, clock=clock)

    limiter.consume("old")
    clock.return_value = 1030.0
    limiter.consume("new")

    clock.return_value = 1061.0
    assert limiter.purge_expired() == 1
    assert len(limiter) == 1

    # The surviving key keeps its count
    assert limiter.consume("new").remaining == 3


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemoryWindowRateLimiter(**kwargs)


def test_invalid_consume_args() -> None:
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=60)

    with pytest.raises(ValueError):
        limiter.consume("")


@pytest.mark.asyncio
async def test_sweeper_purges_in_background() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryWindowRateLimiter(limit=5, window_seconds=60, clock=clock)
    limiter.consume("k")
    clock.return_value = 2000.0

    limiter.start_sweeper(0.01)
    try:
        for _ in range(100):
            if len(limiter) == 0:
                break
            await asyncio.sleep(0.01)
    finally:
        await limiter.stop_sweeper()

    assert len(limiter) == 0


@pytest.mark.asyncio
async def test_stop_sweeper_without_start_is_noop() -> None:
    limiter = InMemoryWindowRateLimiter(limit=5, window_seconds=60)
    await limiter.stop_sweeper()
