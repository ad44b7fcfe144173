"""Code redemption: validate, record usage, then issue a PDF access token.

Rate limiting and request parsing happen in the HTTP layer before this service
runs. Any failing step raises an ``AppError`` and leaves later steps unrun, so a
rejected code is never counted and a token is only minted after the usage was
recorded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from kitgate.services.code_validator import CodeValidator
from kitgate.services.tokens import PdfTokenIssuer
from kitgate.services.usage_recorder import RequestMeta, UsageRecorder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Redemption:
    """Outcome of a successful redemption."""

    token: str
    customer_type: str
    code_id: str


class RedemptionService:
    """Runs the redemption pipeline for one submitted code."""

    def __init__(
        self,
        validator: CodeValidator,
        recorder: UsageRecorder,
        issuer: PdfTokenIssuer,
    ) -> None:
        self.validator = validator
        self.recorder = recorder
        self.issuer = issuer

    async def redeem(
        self,
        raw_code: str,
        customer_type_hint: str | None,
        meta: RequestMeta,
    ) -> Redemption:
        """Redeem ``raw_code`` and return a PDF access token.

        Raises:
            AppError: The first failing step's error (format, lookup, expiry,
                usage limit, store failure or signing failure).
        """
        result = await self.validator.validate(raw_code, customer_type_hint)
        updated = await self.recorder.record(result.record, meta)
        token = self.issuer.issue(updated.id, result.customer_type)

        logger.info(
            "redeem.success",
            extra={
                "code_id": updated.id,
                "customer_type": result.customer_type,
                "use_count": updated.use_count,
            },
        )
        return Redemption(token=token, customer_type=result.customer_type, code_id=updated.id)
