"""
Coupons Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from notevault.modules.coupons.models import CouponScope, CouponType


class CouponCreate(BaseModel):
    code: str = Field(..., pattern=r"^[A-Z0-9-]{4,20}$", description="Uppercase letters, digits and hyphens")
    description: str | None = Field(None, max_length=500)
    type: CouponType
    value: float = Field(..., gt=0)
    min_order_value: float | None = Field(None, gt=0)
    max_discount_amount: float | None = Field(None, gt=0)
    scope: CouponScope = CouponScope.GLOBAL
    scope_ids: list[uuid.UUID] = []
    start_date: datetime | None = None
    end_date: datetime | None = None
    usage_limit_global: int | None = Field(None, ge=1)
    usage_limit_per_user: int | None = Field(None, ge=1)
    is_active: bool = True

    @field_validator("code", mode="before")
    @classmethod
    def upper_code(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class CouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    description: str | None = None
    type: str
    value: float
    min_order_value: float | None = None
    max_discount_amount: float | None = None
    scope: str
    scope_ids: list[uuid.UUID] = []
    start_date: datetime
    end_date: datetime | None = None
    usage_limit_global: int | None = None
    usage_limit_per_user: int | None = None
    usage_count: int
    is_active: bool
    created_at: datetime
