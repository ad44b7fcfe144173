"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so the
storage backend can be swapped later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check/consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max attempts per window.
        remaining: Remaining attempts in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def consume(self, key: str) -> RateLimitResult:
        """Record one attempt for ``key`` and report whether it is allowed.

        Args:
            key: Unique client identifier (e.g., client IP).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def purge_expired(self) -> int:
        """Drop state for keys whose window has elapsed.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError

    def start_sweeper(self, interval_seconds: float) -> None:
        """Start periodic purging; backends that expire keys natively skip this."""

    async def stop_sweeper(self) -> None:
        """Stop periodic purging started by ``start_sweeper``."""
