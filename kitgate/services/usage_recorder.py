"""Usage recording for redeemed codes.

The use counter is advanced with a compare-and-set update so concurrent
redemptions of one code can never push ``use_count`` past ``max_uses``. When
the conditional update loses a race the fresh row is re-read and re-checked
before trying again.

The usage log is appended after the increment. If that write fails the
increment has already happened, so the failure is logged with the code id and
raised, never dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from kitgate.adapters.store.base import AbstractCodeRepository
from kitgate.core.errors import CodeRejectedAppError, RedemptionErrorCode, StoreAppError
from kitgate.schemas.records import AccessCodeRecord, NewUsageLog
from kitgate.services.code_validator import ensure_redeemable

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RequestMeta:
    """Client details captured in the usage log."""

    ip_address: str | None
    user_agent: str | None
    language: str | None


class UsageRecorder:
    """Increments use counters and appends usage log entries."""

    def __init__(
        self,
        repository: AbstractCodeRepository,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.repository = repository
        self.max_attempts = max_attempts
        self.clock = clock

    async def _increment(self, record: AccessCodeRecord) -> AccessCodeRecord:
        current = record
        for attempt in range(1, self.max_attempts + 1):
            updated = await self.repository.compare_and_increment_use(
                current.id, current.use_count
            )
            if updated is not None:
                return updated

            logger.info(
                "usage.increment_conflict",
                extra={"code_id": current.id, "attempt": attempt},
            )
            fresh = await self.repository.get_code(current.id)
            if fresh is None or not fresh.is_active:
                raise CodeRejectedAppError(
                    code=RedemptionErrorCode.CODE_NOT_FOUND.value,
                    message="Invalid code",
                )
            ensure_redeemable(fresh, self.clock())
            current = fresh

        logger.error(
            "usage.increment_exhausted_retries",
            extra={"code_id": record.id, "attempts": self.max_attempts},
        )
        raise StoreAppError(
            code="use_count_contention",
            message="Could not record code usage",
            details={"code_id": record.id},
        )

    async def record(self, record: AccessCodeRecord, meta: RequestMeta) -> AccessCodeRecord:
        """Count one redemption of ``record`` and log it.

        Args:
            record: The validated code row as read during validation.
            meta: Client details for the usage log.

        Returns:
            The code row after the increment.

        Raises:
            CodeRejectedAppError: The code was exhausted, expired or disabled
                by a concurrent writer.
            StoreAppError: The store failed, or the log write failed after the
                increment was applied.
        """
        updated = await self._increment(record)

        entry = NewUsageLog(
            code_id=updated.id,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
            language=meta.language,
            country=None,
        )
        try:
            await self.repository.insert_usage_log(entry)
        except StoreAppError as exc:
            logger.error(
                "usage.log_write_failed",
                extra={
                    "code_id": updated.id,
                    "use_count": updated.use_count,
                    "error_code": exc.code,
                },
            )
            raise StoreAppError(
                code="usage_log_write_failed",
                message="Code usage was counted but could not be logged",
                details={"code_id": updated.id},
            ) from exc

        logger.info(
            "usage.recorded",
            extra={
                "code_id": updated.id,
                "use_count": updated.use_count,
                "max_uses": updated.max_uses,
            },
        )
        return updated
