"""FastAPI exception handlers for the admin and health surface.

The public redemption and PDF routes answer in their own response shapes and
translate errors locally; everything else falls through to these handlers,
which produce ``{"error": {code, message, request_id, details?}}``.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from kitgate.core.errors import (
    AppError,
    AuthenticationAppError,
    CodeRejectedAppError,
    DataIntegrityAppError,
    NotFoundAppError,
    StoreAppError,
    TokenAppError,
    ValidationAppError,
)
from kitgate.core.logging import get_request_id

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[AppError], int] = {
    ValidationAppError: 400,
    CodeRejectedAppError: 401,
    TokenAppError: 401,
    AuthenticationAppError: 403,
    NotFoundAppError: 404,
    StoreAppError: 500,
    DataIntegrityAppError: 500,
}

GENERIC_SERVER_MESSAGE = "An unexpected error occurred. Please try again later."


def status_for(exc: AppError) -> int:
    """HTTP status for a domain error; unmapped errors are client faults (400)."""

    for error_type, status_code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


def _error_response(status_code: int, code: str, message: str, details: Any = None) -> JSONResponse:
    body: dict[str, Any] = {"code": code, "message": message, "request_id": get_request_id()}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an ``AppError``.

    5xx errors are logged at error level and sent without ``details``, which
    may hold store internals; 4xx errors are logged at warning level.
    """
    status_code = status_for(exc)
    server_side = status_code >= 500
    (logger.error if server_side else logger.warning)(
        "request.app_error",
        extra={
            "error_type": type(exc).__name__,
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "path": request.url.path,
        },
    )
    return _error_response(
        status_code,
        exc.code,
        exc.message,
        None if server_side else exc.details,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort for anything that is not an ``AppError``.

    The client gets a fixed message; the exception type and text go to the log.
    """
    logger.error(
        "request.unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "path": request.url.path,
            "method": request.method,
        },
    )
    return _error_response(500, "internal_server_error", GENERIC_SERVER_MESSAGE)


def setup_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
