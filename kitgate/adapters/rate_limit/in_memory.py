"""In-memory per-client attempt window.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- The window opens on a client's first attempt and lasts ``window_seconds``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from kitgate.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


@dataclass
class _WindowState:
    count: int
    reset_at: float


class InMemoryWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting attempts per key inside a window anchored at the first attempt.

    With ``limit=5`` and ``window_seconds=60`` a client gets five attempts;
    the sixth and later attempts are refused until sixty seconds after the
    first one, at which point the next attempt opens a fresh window.

    Important:
        This limiter is per-process only. It is an abuse deterrent, not a
        security boundary.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed attempts per window.
            window_seconds: Window length in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _WindowState] = {}
        self._sweeper: asyncio.Task | None = None

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    def consume(self, key: str) -> RateLimitResult:
        """Record one attempt for ``key``.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()

        with self._lock:
            state = self._state_by_key.get(key)

            if state is None or now > state.reset_at:
                state = _WindowState(count=1, reset_at=now + self._window_seconds)
                self._state_by_key[key] = state
                return RateLimitResult(
                    allowed=True,
                    limit=self._limit,
                    remaining=self._limit - 1,
                    reset_at=int(math.ceil(state.reset_at)),
                    retry_after_seconds=None,
                )

            if state.count >= self._limit:
                return RateLimitResult(
                    allowed=False,
                    limit=self._limit,
                    remaining=0,
                    reset_at=int(math.ceil(state.reset_at)),
                    retry_after_seconds=max(0, int(math.ceil(state.reset_at - now))),
                )

            state.count += 1
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                remaining=self._limit - state.count,
                reset_at=int(math.ceil(state.reset_at)),
                retry_after_seconds=None,
            )

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, s in self._state_by_key.items() if now > s.reset_at]
            for key in expired:
                del self._state_by_key[key]
        if expired:
            logger.debug("rate_limit.purged", extra={"purged": len(expired)})
        return len(expired)

    def start_sweeper(self, interval_seconds: float) -> None:
        """Schedule ``purge_expired`` every ``interval_seconds`` on the running loop."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(
            self._sweep_forever(interval_seconds)
        )

    async def stop_sweeper(self) -> None:
        task, self._sweeper = self._sweeper, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _sweep_forever(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            self.purge_expired()
