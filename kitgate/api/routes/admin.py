from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status

from kitgate.api.dependencies import get_admin_service
from kitgate.core.auth import verify_api_key
from kitgate.schemas.admin import (
    AccessCodeOut,
    GenerateCodesRequest,
    GeneratedCodesResponse,
    StatsResponse,
    UpdateCodeRequest,
    UsageLogOut,
    UsageLogPageOut,
)
from kitgate.services.admin_service import AdminService
from kitgate.utils.request_meta import device_from_user_agent

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_api_key)],
)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(admin: AdminService = Depends(get_admin_service)) -> StatsResponse:
    """Dashboard counters: codes, uses, per-kit totals and recent activity."""
    return await admin.stats()


@router.get("/codes", response_model=list[AccessCodeOut])
async def list_codes(
    customer_type: str | None = Query(default=None, description="Kit slug filter."),
    search: str | None = Query(default=None, description="Substring of a plaintext code."),
    admin: AdminService = Depends(get_admin_service),
) -> list[AccessCodeOut]:
    records = await admin.list_codes(customer_type=customer_type, search=search)
    return [AccessCodeOut.from_record(r) for r in records]


@router.post(
    "/codes",
    response_model=GeneratedCodesResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_codes(
    body: GenerateCodesRequest,
    admin: AdminService = Depends(get_admin_service),
) -> GeneratedCodesResponse:
    """Generate hashed codes for a kit.

    The plaintext codes are returned only in this response; store them before
    closing it.
    """
    return await admin.generate_codes(
        body.customer_type,
        body.count,
        max_uses=body.max_uses,
        expires_at=body.expires_at,
    )


@router.patch("/codes/{code_id}", response_model=AccessCodeOut)
async def update_code(
    code_id: str,
    body: UpdateCodeRequest,
    admin: AdminService = Depends(get_admin_service),
) -> AccessCodeOut:
    record = await admin.set_active(code_id, body.is_active)
    return AccessCodeOut.from_record(record)


@router.delete("/codes/{code_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_code(
    code_id: str,
    admin: AdminService = Depends(get_admin_service),
) -> Response:
    await admin.delete_code(code_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/usage-logs", response_model=UsageLogPageOut)
async def list_usage_logs(
    page: int = Query(default=0, ge=0),
    page_size: int = Query(default=25, ge=1, le=200),
    customer_type: str | None = Query(default=None),
    day: date | None = Query(default=None, alias="date", description="UTC day, YYYY-MM-DD."),
    admin: AdminService = Depends(get_admin_service),
) -> UsageLogPageOut:
    result = await admin.list_usage_logs(
        page=page, page_size=page_size, customer_type=customer_type, day=day
    )
    return UsageLogPageOut(
        items=[UsageLogOut.from_record(r, device_from_user_agent(r.user_agent)) for r in result.items],
        total=result.total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/usage-logs/export",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}},
)
async def export_usage_logs(
    customer_type: str | None = Query(default=None),
    day: date | None = Query(default=None, alias="date"),
    admin: AdminService = Depends(get_admin_service),
) -> Response:
    """Usage logs as a CSV download (at most 1000 rows, newest first)."""
    content = await admin.export_usage_csv(customer_type=customer_type, day=day)
    filename = f"usage-logs-{admin.clock().date().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
