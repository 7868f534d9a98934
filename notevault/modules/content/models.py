"""
Content Module - Database Models
Reference data used to classify notes.
"""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from notevault.core.models import Base


class University(Base):
    __tablename__ = "university"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    short_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)


class Category(Base):
    __tablename__ = "category"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    icon: Mapped[str | None] = mapped_column(String(50), nullable=True)
