"""Access code validation.

Normalizes the submitted code, checks its format, and resolves it against the
active candidates of the record store. Validation never mutates anything; the
usage recorder runs only after every check here has passed.

Every candidate secret is evaluated, so the outcome does not depend on the
order rows come back in. Two active records opening the same code is a data
problem, reported as ``DataIntegrityAppError`` rather than resolved silently.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from kitgate.adapters.store.base import AbstractCodeRepository
from kitgate.core.codes import is_valid_format, normalize_code
from kitgate.core.errors import (
    CodeRejectedAppError,
    DataIntegrityAppError,
    RedemptionErrorCode,
    ValidationAppError,
)
from kitgate.schemas.records import AccessCodeRecord

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ValidationResult:
    """A code that passed every check."""

    record: AccessCodeRecord
    customer_type: str


def find_matches(normalized_code: str, candidates: list[AccessCodeRecord]) -> list[AccessCodeRecord]:
    """Return every candidate whose stored secret opens ``normalized_code``."""

    matches = []
    for candidate in candidates:
        secret = candidate.secret
        if secret is not None and secret.matches(normalized_code):
            matches.append(candidate)
    return matches


def ensure_redeemable(record: AccessCodeRecord, now: datetime) -> None:
    """Raise when a matched record is expired or used up.

    Expiry is checked first so an expired code reports CODE_EXPIRED whatever
    its remaining uses.
    """
    if record.is_expired(now):
        raise CodeRejectedAppError(
            code=RedemptionErrorCode.CODE_EXPIRED.value,
            message="Code has expired",
            details={"code_id": record.id},
        )
    if record.is_exhausted():
        raise CodeRejectedAppError(
            code=RedemptionErrorCode.MAX_USES_REACHED.value,
            message="Code has reached maximum uses",
            details={"code_id": record.id},
        )


class CodeValidator:
    """Validates submitted access codes against the record store."""

    def __init__(
        self,
        repository: AbstractCodeRepository,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repository = repository
        self.clock = clock

    async def validate(
        self, raw_code: str, customer_type_hint: str | None = None
    ) -> ValidationResult:
        """Resolve ``raw_code`` to a redeemable record.

        Args:
            raw_code: Code as submitted by the visitor.
            customer_type_hint: Optional kit slug restricting the candidates.

        Returns:
            ValidationResult with the matched record and its kit slug.

        Raises:
            ValidationAppError: INVALID_FORMAT, raised before any store access.
            CodeRejectedAppError: CODE_NOT_FOUND, CODE_EXPIRED or MAX_USES_REACHED.
            DataIntegrityAppError: More than one active record matched.
            StoreAppError: The record store failed.
        """
        normalized = normalize_code(raw_code)
        if not is_valid_format(normalized):
            raise ValidationAppError(
                code=RedemptionErrorCode.INVALID_FORMAT.value,
                message="Invalid code format",
            )

        candidates = await self.repository.list_active_candidates(
            customer_type_hint, plaintext=normalized
        )

        # bcrypt comparisons are CPU-bound; keep them off the event loop
        loop = asyncio.get_running_loop()
        matches = await loop.run_in_executor(None, find_matches, normalized, candidates)

        if not matches:
            logger.info(
                "validate.no_match",
                extra={
                    "customer_type": customer_type_hint,
                    "candidates": len(candidates),
                },
            )
            raise CodeRejectedAppError(
                code=RedemptionErrorCode.CODE_NOT_FOUND.value,
                message="Invalid code",
            )

        if len(matches) > 1:
            logger.error(
                "validate.duplicate_match",
                extra={
                    "code_ids": [m.id for m in matches],
                    "match_count": len(matches),
                },
            )
            raise DataIntegrityAppError(
                code="duplicate_code_match",
                message="More than one active access code matches the submitted code",
                details={"match_count": len(matches)},
            )

        record = matches[0]
        ensure_redeemable(record, self.clock())

        customer_type = record.customer_type or customer_type_hint
        if not customer_type:
            logger.error("validate.missing_customer_type", extra={"code_id": record.id})
            raise DataIntegrityAppError(
                code="code_without_customer_type",
                message="Access code is not linked to a customer type",
                details={"code_id": record.id},
            )

        return ValidationResult(record=record, customer_type=customer_type)
