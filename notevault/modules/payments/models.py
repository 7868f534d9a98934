"""
Payments Module - Database Models

PaymentOrder: one gateway checkout covering one or more notes.
Transaction: one row per (order, note), the ledger entry for a sale.
Purchase: access grant created once a transaction succeeds.
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notevault.core.models import Base, JSONType, Money


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentOrder(Base):
    __tablename__ = "payment_order"

    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    idempotency_key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    gateway_order_id: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)

    total_amount_inr: Mapped[float] = mapped_column(Money, nullable=False)
    discount_amount_inr: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    coupon_discount_inr: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    final_amount_inr: Mapped[float] = mapped_column(Money, nullable=False)
    coupon_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("coupon.id", ondelete="SET NULL"),
        nullable=True,
    )
    coupon_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    note_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)


class Transaction(Base):
    __tablename__ = "transaction"

    __table_args__ = (
        Index("idx_transaction_escrow", "status", "escrow_released", "escrow_release_at"),
    )

    transaction_id: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        comment="Human readable reference (TXN_...)",
    )
    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("user.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    seller_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("user.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("note.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    payment_order_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("payment_order.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    amount_inr: Mapped[float] = mapped_column(Money, nullable=False, comment="List price")
    commission_inr: Mapped[float] = mapped_column(Money, nullable=False)
    seller_earning_inr: Mapped[float] = mapped_column(Money, nullable=False)
    coupon_discount_inr: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    final_amount_inr: Mapped[float] = mapped_column(Money, nullable=False, comment="Price after discount")

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TransactionStatus.PENDING.value, index=True
    )
    payment_method: Mapped[str] = mapped_column(String(30), nullable=False, default="razorpay")
    gateway_order_id: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    gateway_payment_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    gateway_signature: Mapped[str | None] = mapped_column(String(255), nullable=True)

    escrow_release_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    escrow_released: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Purchase(Base):
    __tablename__ = "purchase"

    __table_args__ = (
        UniqueConstraint("user_id", "note_id"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("note.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    transaction_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("transaction.id", ondelete="SET NULL"),
        nullable=True,
    )
    download_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
