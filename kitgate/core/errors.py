"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, NotRequired, TypedDict


class RedemptionErrorCode(str, Enum):
    """Stable error codes returned by the redemption endpoint."""

    INVALID_INPUT = "INVALID_INPUT"
    INVALID_FORMAT = "INVALID_FORMAT"
    RATE_LIMITED = "RATE_LIMITED"
    CODE_NOT_FOUND = "CODE_NOT_FOUND"
    CODE_EXPIRED = "CODE_EXPIRED"
    MAX_USES_REACHED = "MAX_USES_REACHED"
    PDF_ACCESS_ERROR = "PDF_ACCESS_ERROR"
    SERVER_ERROR = "SERVER_ERROR"


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: int
    remaining: int
    reset_at: int
    code_id: str
    customer_type: str
    match_count: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class NotFoundAppError(AppError):
    """Raised when an addressed resource does not exist."""


class CodeRejectedAppError(AppError):
    """Raised when an access code is unknown, expired or exhausted."""


class TokenAppError(AppError):
    """Raised when a PDF access token cannot be minted or verified."""


class StoreAppError(AppError):
    """Raised when the remote record or blob store fails or times out."""


class DataIntegrityAppError(AppError):
    """Raised when stored records violate an invariant (e.g., duplicate secrets)."""
