"""Public code redemption endpoint.

Responses use the ``{valid, error, errorCode}`` envelope rather than the
global error handlers so clients always get a stable ``errorCode``. Server-side
failures are reported with a generic message; which check failed is only
visible in the logs.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from kitgate.adapters.rate_limit.base import RateLimitResult
from kitgate.api.dependencies import get_redemption_service, get_services
from kitgate.core.container import ServiceContainer
from kitgate.core.errors import (
    AppError,
    CodeRejectedAppError,
    RedemptionErrorCode,
    TokenAppError,
    ValidationAppError,
)
from kitgate.core.rate_limit import check_rate_limit, rate_limit_headers
from kitgate.schemas.redemption import RedeemFailure, RedeemRequest, RedeemSuccess
from kitgate.services.redemption_service import RedemptionService
from kitgate.services.usage_recorder import RequestMeta
from kitgate.utils.request_meta import UNKNOWN_CLIENT, client_ip, primary_language

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Access"])

RATE_LIMITED_MESSAGE = "Too many attempts. Please wait a minute before trying again."
INVALID_INPUT_MESSAGE = "Code is required"
PDF_ACCESS_MESSAGE = "Could not access PDF"
SERVER_ERROR_MESSAGE = "Internal server error"


def _failure(
    error_code: RedemptionErrorCode,
    message: str,
    status_code: int,
    limit: RateLimitResult | None,
) -> JSONResponse:
    body = RedeemFailure(error=message, error_code=error_code)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True),
        headers=rate_limit_headers(limit) if limit else None,
    )


def _request_meta(request: Request) -> RequestMeta:
    ip = client_ip(request)
    return RequestMeta(
        ip_address=None if ip == UNKNOWN_CLIENT else ip,
        user_agent=request.headers.get("user-agent"),
        language=primary_language(request.headers.get("accept-language")),
    )


def _error_response(exc: AppError, limit: RateLimitResult | None) -> JSONResponse:
    """Translate a domain error into the redemption envelope."""

    if isinstance(exc, CodeRejectedAppError):
        return _failure(
            RedemptionErrorCode(exc.code), exc.message, status.HTTP_401_UNAUTHORIZED, limit
        )
    if isinstance(exc, ValidationAppError) and exc.code == RedemptionErrorCode.INVALID_FORMAT.value:
        return _failure(
            RedemptionErrorCode.INVALID_FORMAT, exc.message, status.HTTP_400_BAD_REQUEST, limit
        )
    if isinstance(exc, TokenAppError):
        logger.error("redeem.token_failed", extra={"error_code": exc.code})
        return _failure(
            RedemptionErrorCode.PDF_ACCESS_ERROR,
            PDF_ACCESS_MESSAGE,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            limit,
        )

    logger.error(
        "redeem.server_error",
        extra={"error_type": type(exc).__name__, "error_code": exc.code, "error_message": exc.message},
    )
    return _failure(
        RedemptionErrorCode.SERVER_ERROR,
        SERVER_ERROR_MESSAGE,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        limit,
    )


@router.post(
    "/api/validate-code",
    response_model=RedeemSuccess,
    responses={
        400: {"model": RedeemFailure},
        401: {"model": RedeemFailure},
        429: {"model": RedeemFailure},
        500: {"model": RedeemFailure},
    },
)
async def validate_code(
    request: Request,
    services: ServiceContainer = Depends(get_services),
    redemption: RedemptionService = Depends(get_redemption_service),
) -> JSONResponse:
    """Redeem an access code for a short-lived PDF access token.

    The body is ``{"code": "...", "customerType": "..."}``; ``customerType`` is
    optional and restricts the lookup to one kit.
    """
    limit = check_rate_limit(request, services.rate_limiter)
    if limit is not None and not limit.allowed:
        return _failure(
            RedemptionErrorCode.RATE_LIMITED,
            RATE_LIMITED_MESSAGE,
            status.HTTP_429_TOO_MANY_REQUESTS,
            limit,
        )

    try:
        payload = RedeemRequest.model_validate(await request.json())
    except ValueError as exc:
        # Covers malformed JSON as well as pydantic's ValidationError
        logger.info("redeem.invalid_input", extra={"error_type": type(exc).__name__})
        return _failure(
            RedemptionErrorCode.INVALID_INPUT,
            INVALID_INPUT_MESSAGE,
            status.HTTP_400_BAD_REQUEST,
            limit,
        )

    try:
        result = await redemption.redeem(
            payload.code, payload.customer_type, _request_meta(request)
        )
    except AppError as exc:
        return _error_response(exc, limit)
    except Exception:
        logger.exception("redeem.unexpected_error")
        return _failure(
            RedemptionErrorCode.SERVER_ERROR,
            SERVER_ERROR_MESSAGE,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            limit,
        )

    body = RedeemSuccess(token=result.token, customer_type=result.customer_type)
    return JSONResponse(
        content=body.model_dump(mode="json", by_alias=True),
        headers=rate_limit_headers(limit) if limit else None,
    )


@router.get("/api/validate-code", include_in_schema=False)
async def validate_code_wrong_method() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={"error": "Method not allowed"},
        headers={"Allow": "POST"},
    )
