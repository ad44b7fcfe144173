"""Pydantic schemas for the admin API."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from kitgate.schemas.records import AccessCodeRecord, UsageLogRecord


class AccessCodeOut(BaseModel):
    """Access code as shown to administrators (hashes are never returned)."""

    id: str
    code: str | None = Field(
        default=None,
        description="Legacy plaintext code; null for hashed codes.",
    )
    hashed: bool = Field(..., description="Whether the code is stored as a hash.")
    customer_type: str | None = None
    is_active: bool
    use_count: int
    max_uses: int | None = None
    expires_at: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: AccessCodeRecord) -> "AccessCodeOut":
        return cls(
            id=record.id,
            code=None if record.code_hash else record.code,
            hashed=bool(record.code_hash),
            customer_type=record.customer_type,
            is_active=record.is_active,
            use_count=record.use_count,
            max_uses=record.max_uses,
            expires_at=record.expires_at,
            created_at=record.created_at,
        )


class GenerateCodesRequest(BaseModel):
    customer_type: str = Field(..., min_length=1, description="Kit slug the codes unlock.")
    count: int = Field(1, ge=1, description="Number of codes to generate.")
    max_uses: int | None = Field(default=None, ge=1)
    expires_at: datetime | None = None


class GeneratedCode(BaseModel):
    id: str
    code: str = Field(..., description="Plaintext code; shown only in this response.")


class GeneratedCodesResponse(BaseModel):
    customer_type: str
    codes: List[GeneratedCode]


class UpdateCodeRequest(BaseModel):
    is_active: bool


class UsageLogOut(BaseModel):
    id: str | None = None
    code_id: str
    code: str | None = None
    customer_type: str | None = None
    accessed_at: datetime | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    device: str
    language: str | None = None
    country: str | None = None

    @classmethod
    def from_record(cls, record: UsageLogRecord, device: str) -> "UsageLogOut":
        return cls(device=device, **record.model_dump())


class UsageLogPageOut(BaseModel):
    items: List[UsageLogOut]
    total: int
    page: int
    page_size: int


class KitStats(BaseModel):
    slug: str
    count: int = Field(..., description="Codes issued for the kit.")
    uses: int = Field(..., description="Sum of use counts of the kit's codes.")


class RecentActivity(BaseModel):
    code: str
    customer_type: str
    accessed_at: datetime | None = None
    country: str | None = None


class StatsResponse(BaseModel):
    total_codes: int
    active_codes: int
    total_uses: int
    today_uses: int
    week_uses: int
    customer_types: List[KitStats]
    recent_activity: List[RecentActivity]
