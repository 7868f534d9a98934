"""
Refunds Module - Database Models
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notevault.core.models import Base, Money


class RefundStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"


class RefundReason(str, Enum):
    FILE_CORRUPTION = "FILE_CORRUPTION"
    NOT_AS_DESCRIBED = "NOT_AS_DESCRIBED"
    QUALITY_ISSUES = "QUALITY_ISSUES"
    ACCIDENTAL_PURCHASE = "ACCIDENTAL_PURCHASE"
    DUPLICATE_PURCHASE = "DUPLICATE_PURCHASE"
    TECHNICAL_ISSUES = "TECHNICAL_ISSUES"
    OTHER = "OTHER"


class Refund(Base):
    """
    A buyer's request to return one purchased note.

    At most one refund exists per transaction. COMPLETED refunds have moved
    the transaction to REFUNDED and revoked the buyer's access.
    """
    __tablename__ = "refund"

    refund_reference: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("transaction.id", ondelete="RESTRICT"),
        unique=True,
        nullable=False,
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
    )

    amount_inr: Mapped[float] = mapped_column(Money, nullable=False)
    reason: Mapped[str] = mapped_column(String(30), nullable=False)
    reason_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RefundStatus.PENDING.value, index=True
    )
    gateway_refund_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
