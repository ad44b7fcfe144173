"""PostgREST-backed code repository.

Filters follow PostgREST syntax (``column=eq.value``); embedded resources
(``customer_types(slug)``) are flattened by the record models. Joined filters
use ``!inner`` embeds so rows without a matching parent are excluded server-side.

PostgREST caps every response at its ``max-rows`` setting, so full scans are
read in ``offset``/``limit`` pages under a stable order until a short page
comes back. ``page_size`` must not exceed the server's ``max-rows``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from kitgate.adapters.store.base import AbstractCodeRepository, UsageLogPage
from kitgate.adapters.supabase_http import SupabaseHttpClient
from kitgate.core.errors import DataIntegrityAppError
from kitgate.schemas.records import (
    AccessCodeRecord,
    CustomerTypeRecord,
    NewAccessCode,
    NewUsageLog,
    UsageLogRecord,
)

logger = logging.getLogger(__name__)

REST_PREFIX = "/rest/v1"
CODE_COLUMNS = (
    "id,code,code_hash,customer_type_id,is_active,expires_at,"
    "max_uses,use_count,created_at,pdf_url"
)
RETURN_REPRESENTATION = {"Prefer": "return=representation"}
DEFAULT_PAGE_SIZE = 1000

RecordT = TypeVar("RecordT", bound=BaseModel)


def _code_select(*, inner: bool) -> str:
    embed = "customer_types!inner(slug)" if inner else "customer_types(slug)"
    return f"{CODE_COLUMNS},{embed}"


def parse_content_range_total(header: str | None) -> int | None:
    """Extract the total from a ``Content-Range`` header like ``0-24/123``."""

    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


def _log_invalid_row(row: Any, exc: ValidationError, operation: str) -> Any:
    row_id = row.get("id") if isinstance(row, dict) else None
    logger.error(
        "store.invalid_row",
        extra={
            "operation": operation,
            "row_id": row_id,
            "error_fields": [".".join(map(str, e["loc"])) for e in exc.errors()],
        },
    )
    return row_id


def parse_rows(model: type[RecordT], rows: list[dict], *, operation: str) -> list[RecordT]:
    """Validate listed rows; rows that do not fit ``model`` are logged and left out."""

    records: list[RecordT] = []
    for row in rows:
        try:
            records.append(model.model_validate(row))
        except ValidationError as exc:
            _log_invalid_row(row, exc, operation)
    return records


def parse_row(model: type[RecordT], row: dict, *, operation: str) -> RecordT:
    """Validate a single addressed row; a malformed one is a data integrity error."""

    try:
        return model.model_validate(row)
    except ValidationError as exc:
        row_id = _log_invalid_row(row, exc, operation)
        raise DataIntegrityAppError(
            code="invalid_store_row",
            message="A stored record is malformed",
            details={"operation": operation, "row_id": row_id},
        ) from exc


class SupabaseRestRepository(AbstractCodeRepository):
    """Repository talking to the project's PostgREST endpoint."""

    def __init__(self, http: SupabaseHttpClient, *, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._http = http
        self.page_size = page_size

    async def _get_rows(self, table: str, params: Any, *, operation: str) -> list[dict]:
        response = await self._http.request(
            "GET", f"{REST_PREFIX}/{table}", params=params, operation=operation
        )
        return response.json()

    async def _get_all_rows(
        self, table: str, params: list[tuple[str, str]], *, order: str, operation: str
    ) -> list[dict]:
        rows: list[dict] = []
        while True:
            page = await self._get_rows(
                table,
                [
                    *params,
                    ("order", order),
                    ("offset", str(len(rows))),
                    ("limit", str(self.page_size)),
                ],
                operation=operation,
            )
            rows.extend(page)
            if len(page) < self.page_size:
                return rows

    async def list_active_candidates(
        self, customer_type: str | None = None, *, plaintext: str | None = None
    ) -> list[AccessCodeRecord]:
        params = [
            ("select", _code_select(inner=customer_type is not None)),
            ("is_active", "is.true"),
        ]
        if customer_type is not None:
            params.append(("customer_types.slug", f"eq.{customer_type}"))
        if plaintext is not None:
            # Legacy plaintext may differ in case or whitespace; exact match is local
            params.append(("or", f"(code_hash.not.is.null,code.ilike.*{plaintext}*)"))
        rows = await self._get_all_rows(
            "access_codes", params, order="id.asc", operation="list_active_candidates"
        )
        return parse_rows(AccessCodeRecord, rows, operation="list_active_candidates")

    async def get_code(self, code_id: str) -> AccessCodeRecord | None:
        params = {"select": _code_select(inner=False), "id": f"eq.{code_id}"}
        rows = await self._get_rows("access_codes", params, operation="get_code")
        return parse_row(AccessCodeRecord, rows[0], operation="get_code") if rows else None

    async def compare_and_increment_use(
        self, code_id: str, expected_use_count: int
    ) -> AccessCodeRecord | None:
        response = await self._http.request(
            "PATCH",
            f"{REST_PREFIX}/access_codes",
            params={
                "id": f"eq.{code_id}",
                "use_count": f"eq.{expected_use_count}",
                "select": _code_select(inner=False),
            },
            json={"use_count": expected_use_count + 1},
            headers=RETURN_REPRESENTATION,
            operation="increment_use_count",
        )
        rows = response.json()
        if not rows:
            return None
        return parse_row(AccessCodeRecord, rows[0], operation="increment_use_count")

    async def insert_usage_log(self, entry: NewUsageLog) -> None:
        await self._http.request(
            "POST",
            f"{REST_PREFIX}/code_usage_logs",
            json=entry.model_dump(),
            headers={"Prefer": "return=minimal"},
            operation="insert_usage_log",
        )

    async def list_customer_types(self) -> list[CustomerTypeRecord]:
        rows = await self._get_rows(
            "customer_types",
            {"select": "id,slug,name_es,name_en", "order": "slug.asc"},
            operation="list_customer_types",
        )
        return parse_rows(CustomerTypeRecord, rows, operation="list_customer_types")

    async def list_codes(
        self, *, customer_type: str | None = None, search: str | None = None
    ) -> list[AccessCodeRecord]:
        params = [("select", _code_select(inner=customer_type is not None))]
        if customer_type is not None:
            params.append(("customer_types.slug", f"eq.{customer_type}"))
        if search:
            params.append(("code", f"ilike.*{search}*"))
        rows = await self._get_all_rows(
            "access_codes", params, order="created_at.desc,id.desc", operation="list_codes"
        )
        return parse_rows(AccessCodeRecord, rows, operation="list_codes")

    async def insert_codes(self, codes: list[NewAccessCode]) -> list[AccessCodeRecord]:
        if not codes:
            return []
        response = await self._http.request(
            "POST",
            f"{REST_PREFIX}/access_codes",
            params={"select": _code_select(inner=False)},
            json=[c.model_dump(mode="json") for c in codes],
            headers=RETURN_REPRESENTATION,
            operation="insert_codes",
        )
        return [
            parse_row(AccessCodeRecord, row, operation="insert_codes") for row in response.json()
        ]

    async def set_code_active(self, code_id: str, is_active: bool) -> AccessCodeRecord | None:
        response = await self._http.request(
            "PATCH",
            f"{REST_PREFIX}/access_codes",
            params={"id": f"eq.{code_id}", "select": _code_select(inner=False)},
            json={"is_active": is_active},
            headers=RETURN_REPRESENTATION,
            operation="set_code_active",
        )
        rows = response.json()
        return parse_row(AccessCodeRecord, rows[0], operation="set_code_active") if rows else None

    async def delete_code(self, code_id: str) -> bool:
        response = await self._http.request(
            "DELETE",
            f"{REST_PREFIX}/access_codes",
            params={"id": f"eq.{code_id}", "select": "id"},
            headers=RETURN_REPRESENTATION,
            operation="delete_code",
        )
        return bool(response.json())

    async def list_usage_logs(
        self,
        *,
        offset: int = 0,
        limit: int = 25,
        customer_type: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> UsageLogPage:
        if customer_type is not None:
            embed = "access_codes!inner(code,customer_types!inner(slug))"
        else:
            embed = "access_codes(code,customer_types(slug))"
        params = [
            ("select", f"*,{embed}"),
            ("order", "accessed_at.desc"),
            ("offset", str(offset)),
            ("limit", str(limit)),
        ]
        if customer_type is not None:
            params.append(("access_codes.customer_types.slug", f"eq.{customer_type}"))
        if since is not None:
            params.append(("accessed_at", f"gte.{since.isoformat()}"))
        if until is not None:
            params.append(("accessed_at", f"lt.{until.isoformat()}"))

        response = await self._http.request(
            "GET",
            f"{REST_PREFIX}/code_usage_logs",
            params=params,
            headers={"Prefer": "count=exact"},
            operation="list_usage_logs",
        )
        items = parse_rows(UsageLogRecord, response.json(), operation="list_usage_logs")
        total = parse_content_range_total(response.headers.get("Content-Range"))
        return UsageLogPage(items=items, total=total if total is not None else offset + len(items))
