"""
Wallet Module - Database Models
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notevault.core.models import Base, JSONType, Money


class PayoutStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    REJECTED = "REJECTED"


class SellerWallet(Base):
    """
    Seller earnings.

    Sale earnings land in ``pending_balance_inr`` and move to
    ``available_balance_inr`` once the escrow hold expires. Balances are only
    changed with single UPDATE statements (``column = column + delta``).
    """
    __tablename__ = "seller_wallet"

    seller_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    available_balance_inr: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    pending_balance_inr: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    total_earned_inr: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    total_withdrawn_inr: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    minimum_withdrawal_amount: Mapped[float] = mapped_column(Money, nullable=False, default=100)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class PayoutRequest(Base):
    """A withdrawal from the available balance, settled by an admin."""
    __tablename__ = "payout_request"

    seller_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount_inr: Mapped[float] = mapped_column(Money, nullable=False)
    bank_details: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PayoutStatus.PENDING.value, index=True
    )
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
