"""
Coupons Module - Database Models

Coupon: a discount code applied after the bulk discount at checkout.
CouponUsage: one row per paid order that used a coupon.
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notevault.core.models import Base, JSONType, Money


class CouponType(str, Enum):
    FLAT = "FLAT"
    PERCENTAGE = "PERCENTAGE"


class CouponScope(str, Enum):
    GLOBAL = "GLOBAL"
    NOTE = "NOTE"
    CATEGORY = "CATEGORY"
    SELLER = "SELLER"


class Coupon(Base):
    __tablename__ = "coupon"

    code: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    value: Mapped[float] = mapped_column(Money, nullable=False, comment="Rupees (FLAT) or percent")
    min_order_value: Mapped[float | None] = mapped_column(Money, nullable=True)
    max_discount_amount: Mapped[float | None] = mapped_column(Money, nullable=True)

    scope: Mapped[str] = mapped_column(String(20), nullable=False, default=CouponScope.GLOBAL.value)
    scope_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    usage_limit_global: Mapped[int | None] = mapped_column(Integer, nullable=True)
    usage_limit_per_user: Mapped[int | None] = mapped_column(Integer, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class CouponUsage(Base):
    __tablename__ = "coupon_usage"

    coupon_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("coupon.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    payment_order_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("payment_order.id", ondelete="SET NULL"),
        nullable=True,
    )
    discount_amount_inr: Mapped[float] = mapped_column(Money, nullable=False)
