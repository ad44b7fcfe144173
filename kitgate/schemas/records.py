"""Row models for the remote record store.

Rows arrive as PostgREST JSON, where joined tables are embedded as nested
objects (``"customer_types": {"slug": "oro"}``). The models flatten those
embeds so services work with plain attributes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from kitgate.core.codes import CodeSecret, secret_from_columns


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _embedded_slug(embed: Any) -> str | None:
    if isinstance(embed, dict):
        return embed.get("slug")
    return None


class CustomerTypeRecord(BaseModel):
    """A kit tier."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    slug: str
    name_es: str | None = None
    name_en: str | None = None


class AccessCodeRecord(BaseModel):
    """One row of ``access_codes`` with its customer type slug."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    code: str | None = None
    code_hash: str | None = None
    customer_type_id: str | None = None
    customer_type: str | None = None
    is_active: bool = True
    expires_at: datetime | None = None
    max_uses: int | None = Field(default=None, ge=0)
    use_count: int = Field(default=0, ge=0)
    created_at: datetime | None = None
    pdf_url: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_customer_type(cls, data: Any) -> Any:
        if isinstance(data, dict) and "customer_types" in data:
            data = dict(data)
            data.setdefault("customer_type", _embedded_slug(data.pop("customer_types")))
        return data

    @field_validator("expires_at", "created_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @property
    def secret(self) -> CodeSecret | None:
        return secret_from_columns(self.code, self.code_hash)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.use_count >= self.max_uses


class UsageLogRecord(BaseModel):
    """One row of ``code_usage_logs`` with the redeemed code's display data."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str | None = None
    code_id: str
    accessed_at: datetime | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    language: str | None = None
    country: str | None = None
    code: str | None = None
    customer_type: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_access_code(cls, data: Any) -> Any:
        if isinstance(data, dict) and "access_codes" in data:
            data = dict(data)
            embed = data.pop("access_codes") or {}
            data.setdefault("code", embed.get("code"))
            data.setdefault("customer_type", _embedded_slug(embed.get("customer_types")))
        return data

    @field_validator("accessed_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class NewUsageLog(BaseModel):
    """Payload appended to ``code_usage_logs`` after a successful redemption."""

    code_id: str
    ip_address: str | None = None
    user_agent: str | None = None
    language: str | None = None
    country: str | None = None


class NewAccessCode(BaseModel):
    """Payload inserted into ``access_codes`` by the admin API and CLI."""

    code: str | None = None
    code_hash: str | None = None
    customer_type_id: str
    is_active: bool = True
    max_uses: int | None = None
    expires_at: datetime | None = None
