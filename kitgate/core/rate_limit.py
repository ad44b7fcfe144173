"""Rate limiting for the redemption endpoint.

The limiter instance lives on the service container (``app.state.services``)
so its state survives across requests and its sweeper follows the app
lifespan. Requests are keyed by client IP.
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import Request

from kitgate.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from kitgate.core.config import settings
from kitgate.utils.request_meta import client_ip

logger = logging.getLogger(__name__)


def build_rate_limit_key(request: Request) -> str:
    return f"ip:{client_ip(request)}"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Headers describing the caller's remaining attempts.

    Blocked results also carry ``Retry-After`` and ``X-RateLimit-Reset``.
    """
    headers = {"X-RateLimit-Remaining": str(result.remaining)}
    if not result.allowed:
        headers["Retry-After"] = str(result.retry_after_seconds or 0)
        headers["X-RateLimit-Reset"] = str(result.reset_at)
    return headers


def check_rate_limit(request: Request, limiter: AbstractRateLimiter) -> RateLimitResult | None:
    """Consume one attempt for the requesting client.

    Returns:
        The limiter result, or None when rate limiting is disabled.
    """
    if not settings.app.rate_limit_enabled:
        return None

    key = build_rate_limit_key(request)
    result = limiter.consume(key)

    extra = {
        "key_type": "ip",
        "key_hash": _hash_limiter_key(key),
        "limit": result.limit,
        "remaining": result.remaining,
    }
    if result.allowed:
        logger.info("rate_limit.allowed", extra=extra)
    else:
        logger.warning(
            "rate_limit.exceeded",
            extra={**extra, "retry_after_s": result.retry_after_seconds or 0},
        )
    return result
