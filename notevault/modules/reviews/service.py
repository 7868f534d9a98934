"""
Reviews Module - Business Logic Service
Only buyers of a note can review it, once.
"""
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.exceptions import BadRequestError, ForbiddenError
from notevault.core.logging import get_logger
from notevault.core.security import sanitize_text
from notevault.modules.auth.models import User
from notevault.modules.notes.models import Note
from notevault.modules.notes.service import NoteService
from notevault.modules.payments.models import Purchase
from notevault.modules.reviews.models import Review
from notevault.modules.reviews.schemas import ReviewCreate

logger = get_logger(__name__)


class ReviewService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_reviews(self, note_id: uuid.UUID) -> list[Review]:
        await NoteService(self.db).get_listed(note_id)
        result = await self.db.execute(
            select(Review)
            .where(Review.note_id == note_id, Review.is_approved.is_(True))
            .order_by(Review.created_at.desc())
        )
        return list(result.scalars().all())

    async def _refresh_note_rating(self, note: Note) -> None:
        row = (
            await self.db.execute(
                select(func.avg(Review.rating), func.count(Review.id)).where(
                    Review.note_id == note.id,
                    Review.is_approved.is_(True),
                )
            )
        ).one()
        average, count = row
        note.average_rating = round(float(average or 0), 2)
        note.total_reviews = count or 0

    async def create_review(self, user: User, note_id: uuid.UUID, payload: ReviewCreate) -> Review:
        note = await NoteService(self.db).get_listed(note_id)

        purchase = (
            await self.db.execute(
                select(Purchase).where(
                    Purchase.user_id == user.id,
                    Purchase.note_id == note_id,
                    Purchase.is_active.is_(True),
                )
            )
        ).scalar_one_or_none()
        if purchase is None:
            raise ForbiddenError("Only buyers can review this note", code="PURCHASE_REQUIRED")

        existing = await self.db.execute(
            select(Review.id).where(Review.note_id == note_id, Review.user_id == user.id)
        )
        if existing.first() is not None:
            raise BadRequestError("You have already reviewed this note", code="ALREADY_REVIEWED")

        review = Review(
            note_id=note_id,
            user_id=user.id,
            transaction_id=purchase.transaction_id,
            rating=payload.rating,
            title=sanitize_text(payload.title) if payload.title else None,
            comment=sanitize_text(payload.comment) if payload.comment else None,
            is_verified_purchase=True,
            is_approved=True,
        )
        self.db.add(review)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise BadRequestError("You have already reviewed this note", code="ALREADY_REVIEWED")

        await self._refresh_note_rating(note)
        await self.db.commit()
        await self.db.refresh(review)

        logger.info("Review created", note_id=str(note_id), user_id=str(user.id), rating=payload.rating)
        return review
