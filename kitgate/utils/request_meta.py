"""Helpers extracting client metadata from HTTP headers."""

from __future__ import annotations

from fastapi import Request

UNKNOWN_CLIENT = "unknown"


def client_ip(request: Request) -> str:
    """Best-effort client IP: first X-Forwarded-For hop, X-Real-IP, then socket peer.

    Returns ``"unknown"`` when nothing is available so the rate limiter always
    has a key.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def primary_language(accept_language: str | None) -> str | None:
    """Primary language subtag of the first Accept-Language entry.

    Examples:
        >>> primary_language("es-ES,es;q=0.9,en;q=0.8")
        'es'
        >>> primary_language("en;q=0.7")
        'en'
        >>> primary_language(None) is None
        True
    """
    if not accept_language:
        return None
    first = accept_language.split(",")[0].split(";")[0].strip()
    language = first.split("-")[0].strip().lower()
    if not language or language == "*":
        return None
    return language


def device_from_user_agent(user_agent: str | None) -> str:
    """Coarse platform label for reports."""
    if not user_agent:
        return "Unknown"
    if "iPhone" in user_agent or "iPad" in user_agent:
        return "iOS"
    if "Android" in user_agent:
        return "Android"
    if "Windows" in user_agent:
        return "Windows"
    if "Mac" in user_agent:
        return "macOS"
    if "Linux" in user_agent:
        return "Linux"
    return "Other"
