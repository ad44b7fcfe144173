from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for load balancers and uptime monitors.

    Does not touch the remote stores.
    """

    return {"status": "ok"}
