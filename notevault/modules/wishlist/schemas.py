"""
Wishlist Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel

from notevault.core.pagination import Pagination
from notevault.modules.notes.schemas import NoteSummary


class WishlistToggleResponse(BaseModel):
    note_id: uuid.UUID
    is_wishlisted: bool


class WishlistItemResponse(BaseModel):
    id: uuid.UUID
    added_at: datetime
    note: NoteSummary


class WishlistResponse(BaseModel):
    items: list[WishlistItemResponse]
    pagination: Pagination
