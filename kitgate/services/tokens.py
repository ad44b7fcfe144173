"""PDF access tokens (HS256 JWT).

A token binds a redeemed code to its kit for a short window:
``{"codeId", "customerType", "purpose": "pdf_access", "iat", "exp"}``.
Expiry is checked against the issuer's own clock so it can be injected in
tests; PyJWT still enforces the signature and the presence of both timestamps.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

import jwt

from kitgate.core.errors import RedemptionErrorCode, TokenAppError

logger = logging.getLogger(__name__)

PDF_ACCESS_PURPOSE = "pdf_access"
DEFAULT_TTL_SECONDS = 600


@dataclass(frozen=True)
class PdfAccessClaims:
    """Verified content of a PDF access token."""

    code_id: str
    customer_type: str
    expires_at: int


def _invalid_token() -> TokenAppError:
    return TokenAppError(code="invalid_token", message="Invalid or expired token")


class PdfTokenIssuer:
    """Mints and verifies PDF access tokens."""

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("token secret must be a non-empty string")
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def issue(self, code_id: str, customer_type: str) -> str:
        """Sign a token for one redeemed code.

        Raises:
            TokenAppError: PDF_ACCESS_ERROR if signing fails.
        """
        issued_at = int(self._clock())
        payload = {
            "codeId": code_id,
            "customerType": customer_type,
            "purpose": PDF_ACCESS_PURPOSE,
            "iat": issued_at,
            "exp": issued_at + self._ttl_seconds,
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=self._algorithm)
        except Exception as exc:
            logger.error(
                "token.sign_failed",
                extra={"error_type": type(exc).__name__, "algorithm": self._algorithm},
            )
            raise TokenAppError(
                code=RedemptionErrorCode.PDF_ACCESS_ERROR.value,
                message="Could not access PDF",
            ) from exc

    def verify(self, token: str) -> PdfAccessClaims:
        """Check signature, expiry and purpose of ``token``.

        Every failure raises the same generic error so callers cannot tell
        which check rejected the token.

        Raises:
            TokenAppError: If the token is malformed, forged, expired or not a
                PDF access token.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "require": ["exp", "iat"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.PyJWTError as exc:
            logger.info("token.rejected", extra={"reason": type(exc).__name__})
            raise _invalid_token() from exc

        expires_at = payload.get("exp")
        if not isinstance(expires_at, int) or self._clock() >= expires_at:
            logger.info("token.rejected", extra={"reason": "expired"})
            raise _invalid_token()

        if payload.get("purpose") != PDF_ACCESS_PURPOSE:
            logger.info("token.rejected", extra={"reason": "wrong_purpose"})
            raise _invalid_token()

        code_id = payload.get("codeId")
        customer_type = payload.get("customerType")
        if not isinstance(code_id, str) or not isinstance(customer_type, str):
            logger.info("token.rejected", extra={"reason": "missing_claims"})
            raise _invalid_token()

        return PdfAccessClaims(
            code_id=code_id,
            customer_type=customer_type,
            expires_at=expires_at,
        )
