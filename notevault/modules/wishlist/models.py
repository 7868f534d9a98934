"""
Wishlist Module - Database Models
"""
import uuid

from sqlalchemy import ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notevault.core.models import Base


class WishlistItem(Base):
    __tablename__ = "wishlist_item"

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
    )
