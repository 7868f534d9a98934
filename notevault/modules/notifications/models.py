"""
Notification Module - Database Models
In-app notifications shown in the bell menu.
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notevault.core.models import Base


class NotificationType(str, Enum):
    SALE = "SALE"            # a seller's note was bought
    PURCHASE = "PURCHASE"    # buyer's order completed
    MESSAGE = "MESSAGE"      # new direct message
    REFUND = "REFUND"        # refund requested, approved or rejected
    PAYOUT = "PAYOUT"        # seller payout processed
    INFO = "INFO"
    SYSTEM = "SYSTEM"


class Notification(Base):
    __tablename__ = "notification"

    __table_args__ = (
        Index("idx_notification_user_read", "user_id", "is_read", "created_at"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=NotificationType.INFO.value)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
