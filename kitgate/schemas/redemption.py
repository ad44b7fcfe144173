"""Pydantic schemas for the public redemption endpoint."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from kitgate.core.errors import RedemptionErrorCode


class RedeemRequest(BaseModel):
    """Body of ``POST /api/validate-code``."""

    model_config = ConfigDict(populate_by_name=True)

    code: StrictStr = Field(..., min_length=1, description="Access code as typed by the visitor.")
    customer_type: StrictStr | None = Field(
        default=None,
        alias="customerType",
        description="Kit slug the visitor is unlocking; restricts the candidate codes.",
    )

    @field_validator("customer_type")
    @classmethod
    def _blank_hint_is_none(cls, value: str | None) -> str | None:
        # An empty hint means "any kit", not a kit with an empty slug
        if value is None or not value.strip():
            return None
        return value.strip()


class RedeemSuccess(BaseModel):
    """Successful redemption carrying the PDF access token."""

    model_config = ConfigDict(populate_by_name=True)

    valid: Literal[True] = True
    token: str = Field(..., description="Signed token accepted by the PDF endpoint for 10 minutes.")
    customer_type: str = Field(..., serialization_alias="customerType")


class RedeemFailure(BaseModel):
    """Rejected redemption with a stable error code."""

    model_config = ConfigDict(populate_by_name=True)

    valid: Literal[False] = False
    error: str = Field(..., description="Human-readable message.")
    error_code: RedemptionErrorCode = Field(..., serialization_alias="errorCode")
