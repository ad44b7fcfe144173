from __future__ import annotations

from kitgate.api.routes.admin import router as admin_router
from kitgate.api.routes.health import router as health_router
from kitgate.api.routes.pdf import router as pdf_router
from kitgate.api.routes.redeem import router as redeem_router

__all__ = ["admin_router", "health_router", "pdf_router", "redeem_router"]
