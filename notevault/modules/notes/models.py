"""
Notes Module - Database Models
"""
import uuid

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notevault.core.models import Base, JSONType, Money


class Note(Base):
    """
    A set of notes listed for sale by a seller.

    Notes are never hard-deleted: ``is_deleted`` hides them from the catalog
    while keeping purchases and transactions referentially intact.
    """
    __tablename__ = "note"

    __table_args__ = (
        Index("idx_note_catalog", "is_active", "is_approved", "is_deleted", "created_at"),
    )

    seller_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("category.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    university_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("university.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Listing
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    degree: Mapped[str] = mapped_column(String(100), nullable=False, default="Other")
    specialization: Mapped[str | None] = mapped_column(String(255), nullable=True)
    college_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    semester: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    language: Mapped[str] = mapped_column(String(20), nullable=False, default="english")
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Media
    cover_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    preview_pages: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    table_of_contents: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    file_url: Mapped[str] = mapped_column(Text, nullable=False, comment="Object storage key")
    file_type: Mapped[str] = mapped_column(String(20), nullable=False, default="pdf")
    file_size_bytes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_pages: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Pricing
    price_inr: Mapped[float] = mapped_column(Money, nullable=False)
    commission_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=15.0)
    commission_amount_inr: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    seller_earning_inr: Mapped[float] = mapped_column(Money, nullable=False, default=0)

    # Stats
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    download_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    purchase_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_flagged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    @property
    def is_listed(self) -> bool:
        """Visible in the catalog and purchasable."""
        return self.is_active and self.is_approved and not self.is_deleted

    def __repr__(self) -> str:
        return f"<Note {self.title!r}>"
