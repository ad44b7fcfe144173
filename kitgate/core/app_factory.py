"""Application factory for the FastAPI app.

Centralizes app construction (metadata, services, middleware, handlers,
routers) so tests can build an app around fake stores.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from kitgate.api.routes import admin_router, health_router, pdf_router, redeem_router
from kitgate.core.config import settings
from kitgate.core.container import ServiceContainer
from kitgate.core.exception_handlers import setup_exception_handlers
from kitgate.core.logging import configure_logging
from kitgate.core.middleware import request_id_middleware
from kitgate.core.openapi import apply_openapi_customizations

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    services: ServiceContainer = app.state.services
    services.rate_limiter.start_sweeper(settings.app.rate_limit_sweep_interval_seconds)
    logger.info("app.startup", extra={"app_env": settings.app_env})
    try:
        yield
    finally:
        await services.aclose()
        logger.info("app.shutdown")


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        services: Pre-built service container; defaults to the production
            wiring from settings.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Kit Access API",
        description=(
            "Redeems single-purpose access codes for kit documents. A valid code "
            "yields a 10 minute token that unlocks the kit PDF. Includes an "
            "API-key protected admin API for code management and usage reports."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services or ServiceContainer.from_settings(settings)

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(redeem_router)
    app.include_router(pdf_router)
    app.include_router(admin_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
