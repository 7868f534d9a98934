"""
Wishlist Module - Business Logic Service
"""
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.modules.auth.models import User
from notevault.modules.content.service import listed_notes_filter
from notevault.modules.notes.models import Note
from notevault.modules.notes.service import NoteService
from notevault.modules.wishlist.models import WishlistItem


class WishlistService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def toggle(self, user: User, note_id: uuid.UUID) -> bool:
        """Add the note if absent, remove it if present. Returns the new state."""
        result = await self.db.execute(
            select(WishlistItem).where(
                WishlistItem.user_id == user.id,
                WishlistItem.note_id == note_id,
            )
        )
        item = result.scalar_one_or_none()
        if item is not None:
            await self.db.delete(item)
            await self.db.commit()
            return False

        await NoteService(self.db).get_listed(note_id)
        self.db.add(WishlistItem(user_id=user.id, note_id=note_id))
        await self.db.commit()
        return True

    async def list_items(
        self,
        user: User,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[tuple[WishlistItem, Note]], int]:
        filters = (WishlistItem.user_id == user.id, *listed_notes_filter())
        total = await self.db.scalar(
            select(func.count())
            .select_from(WishlistItem)
            .join(Note, Note.id == WishlistItem.note_id)
            .where(*filters)
        )
        result = await self.db.execute(
            select(WishlistItem, Note)
            .join(Note, Note.id == WishlistItem.note_id)
            .where(*filters)
            .order_by(WishlistItem.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return [(item, note) for item, note in result.all()], total or 0
