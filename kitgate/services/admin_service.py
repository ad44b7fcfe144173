"""Admin operations: code issuance and management, usage reporting."""

from __future__ import annotations

import asyncio
import csv
import io
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable

from kitgate.adapters.store.base import AbstractCodeRepository, UsageLogPage
from kitgate.core.codes import generate_code, hash_code
from kitgate.core.errors import NotFoundAppError, ValidationAppError
from kitgate.schemas.admin import (
    GeneratedCode,
    GeneratedCodesResponse,
    KitStats,
    RecentActivity,
    StatsResponse,
)
from kitgate.schemas.records import AccessCodeRecord, NewAccessCode, UsageLogRecord
from kitgate.utils.request_meta import device_from_user_agent

logger = logging.getLogger(__name__)

STATS_LOG_WINDOW = 100
RECENT_ACTIVITY_SIZE = 10
CSV_HEADERS = ["Date", "Code", "Type", "IP", "Device", "Language", "Country"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC start of ``day`` and of the following day."""

    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def _hash_batch(codes: list[str]) -> list[str]:
    return [hash_code(c) for c in codes]


def build_usage_csv(logs: list[UsageLogRecord]) -> str:
    """Render usage logs as CSV with a header row."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for log in logs:
        writer.writerow(
            [
                log.accessed_at.isoformat() if log.accessed_at else "",
                log.code or "Unknown",
                log.customer_type or "Unknown",
                log.ip_address or "",
                device_from_user_agent(log.user_agent),
                log.language or "",
                log.country or "",
            ]
        )
    return buffer.getvalue()


class AdminService:
    """Admin-facing use cases over the code repository."""

    def __init__(
        self,
        repository: AbstractCodeRepository,
        *,
        max_generate_count: int = 500,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repository = repository
        self.max_generate_count = max_generate_count
        self.clock = clock

    async def _customer_type_id(self, slug: str) -> str:
        for customer_type in await self.repository.list_customer_types():
            if customer_type.slug == slug:
                return customer_type.id
        raise NotFoundAppError(
            code="customer_type_not_found",
            message=f"Customer type '{slug}' not found",
            details={"customer_type": slug},
        )

    async def generate_codes(
        self,
        customer_type: str,
        count: int,
        *,
        max_uses: int | None = None,
        expires_at: datetime | None = None,
    ) -> GeneratedCodesResponse:
        """Issue ``count`` hashed codes for a kit.

        Only the hash is stored; the plaintext codes exist solely in the
        returned value.

        Raises:
            ValidationAppError: ``count`` outside ``1..max_generate_count`` or
                ``max_uses`` below 1.
            NotFoundAppError: Unknown kit slug.
        """
        if count < 1 or count > self.max_generate_count:
            raise ValidationAppError(
                code="invalid_count",
                message=f"count must be between 1 and {self.max_generate_count}",
            )
        if max_uses is not None and max_uses < 1:
            raise ValidationAppError(
                code="invalid_max_uses",
                message="max_uses must be at least 1",
                details={"max_uses": max_uses},
            )
        type_id = await self._customer_type_id(customer_type)

        plaintexts: list[str] = []
        seen: set[str] = set()
        while len(plaintexts) < count:
            candidate = generate_code()
            if candidate not in seen:
                seen.add(candidate)
                plaintexts.append(candidate)

        loop = asyncio.get_running_loop()
        digests = await loop.run_in_executor(None, _hash_batch, plaintexts)

        rows = await self.repository.insert_codes(
            [
                NewAccessCode(
                    code=None,
                    code_hash=digest,
                    customer_type_id=type_id,
                    is_active=True,
                    max_uses=max_uses,
                    expires_at=expires_at,
                )
                for digest in digests
            ]
        )
        if len(rows) != len(plaintexts):
            logger.error(
                "admin.generate_row_mismatch",
                extra={"requested": len(plaintexts), "inserted": len(rows)},
            )

        logger.info(
            "admin.codes_generated",
            extra={"customer_type": customer_type, "count": len(rows)},
        )
        # PostgREST returns inserted rows in request order
        return GeneratedCodesResponse(
            customer_type=customer_type,
            codes=[GeneratedCode(id=row.id, code=plain) for row, plain in zip(rows, plaintexts)],
        )

    async def list_codes(
        self, *, customer_type: str | None = None, search: str | None = None
    ) -> list[AccessCodeRecord]:
        return await self.repository.list_codes(
            customer_type=customer_type,
            search=search.strip().upper() if search else None,
        )

    async def set_active(self, code_id: str, is_active: bool) -> AccessCodeRecord:
        record = await self.repository.set_code_active(code_id, is_active)
        if record is None:
            raise NotFoundAppError(code="code_not_found", message="Access code not found")
        logger.info("admin.code_updated", extra={"code_id": code_id, "is_active": is_active})
        return record

    async def delete_code(self, code_id: str) -> None:
        if not await self.repository.delete_code(code_id):
            raise NotFoundAppError(code="code_not_found", message="Access code not found")
        logger.info("admin.code_deleted", extra={"code_id": code_id})

    async def list_usage_logs(
        self,
        *,
        page: int = 0,
        page_size: int = 25,
        customer_type: str | None = None,
        day: date | None = None,
    ) -> UsageLogPage:
        since = until = None
        if day is not None:
            since, until = day_bounds(day)
        return await self.repository.list_usage_logs(
            offset=page * page_size,
            limit=page_size,
            customer_type=customer_type,
            since=since,
            until=until,
        )

    async def export_usage_csv(
        self,
        *,
        customer_type: str | None = None,
        day: date | None = None,
        limit: int = 1000,
    ) -> str:
        result = await self.list_usage_logs(
            page=0, page_size=limit, customer_type=customer_type, day=day
        )
        return build_usage_csv(result.items)

    async def stats(self) -> StatsResponse:
        """Dashboard counters over all codes and the latest usage logs."""

        codes = await self.repository.list_codes()
        recent = await self.repository.list_usage_logs(offset=0, limit=STATS_LOG_WINDOW)

        now = self.clock()
        today_start, _ = day_bounds(now.date())
        week_start = today_start - timedelta(days=7)

        by_kit: dict[str, KitStats] = {}
        for code in codes:
            slug = code.customer_type or "unknown"
            kit = by_kit.setdefault(slug, KitStats(slug=slug, count=0, uses=0))
            kit.count += 1
            kit.uses += code.use_count

        logs = recent.items
        return StatsResponse(
            total_codes=len(codes),
            active_codes=sum(1 for c in codes if c.is_active),
            total_uses=sum(c.use_count for c in codes),
            today_uses=sum(1 for log in logs if log.accessed_at and log.accessed_at >= today_start),
            week_uses=sum(1 for log in logs if log.accessed_at and log.accessed_at >= week_start),
            customer_types=list(by_kit.values()),
            recent_activity=[
                RecentActivity(
                    code=log.code or "Unknown",
                    customer_type=log.customer_type or "unknown",
                    accessed_at=log.accessed_at,
                    country=log.country,
                )
                for log in logs[:RECENT_ACTIVITY_SIZE]
            ],
        )
