"""
Notes Module - Business Logic Service
Catalog browsing, seller listings and purchase-gated downloads.
"""
import os
import re
import uuid

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from notevault.core.config import settings
from notevault.core.exceptions import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    ServiceUnavailableError,
)
from notevault.core.logging import get_logger
from notevault.core.metrics import record_download
from notevault.core.security import sanitize_text
from notevault.core.storage import get_storage_service
from notevault.modules.auth.models import User
from notevault.modules.content.models import Category, University
from notevault.modules.content.service import listed_notes_filter
from notevault.modules.notes.models import Note
from notevault.modules.notes.schemas import (
    DownloadResponse,
    NoteCreate,
    NoteSort,
    NoteUpdate,
    UploadResponse,
)
from notevault.modules.payments.models import Purchase
from notevault.modules.reviews.models import Review
from notevault.modules.wishlist.models import WishlistItem

logger = get_logger(__name__)

ALLOWED_FILE_TYPES = {
    "application/pdf": "pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
}
MAX_UPLOAD_BYTES = 50 * 1024 * 1024

SORT_ORDER = {
    NoteSort.NEWEST: (Note.created_at.desc(),),
    NoteSort.OLDEST: (Note.created_at.asc(),),
    NoteSort.POPULAR: (Note.purchase_count.desc(), Note.created_at.desc()),
    NoteSort.PRICE_LOW: (Note.price_inr.asc(), Note.created_at.desc()),
    NoteSort.PRICE_HIGH: (Note.price_inr.desc(), Note.created_at.desc()),
    NoteSort.RATING: (Note.average_rating.desc(), Note.total_reviews.desc()),
}


def calculate_commission(price_inr: float, total_pages: int) -> tuple[float, float, float]:
    """
    Platform commission by note length.

    Returns (commission_percentage, commission_amount_inr, seller_earning_inr):
    15% up to 50 pages, 12% for 51-150 pages, 10% above 150 pages.
    """
    if total_pages > 150:
        percentage = 10.0
    elif total_pages > 50:
        percentage = 12.0
    else:
        percentage = 15.0
    commission = round(price_inr * percentage / 100, 2)
    return percentage, commission, round(price_inr - commission, 2)


def _download_name(title: str, file_type: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "_", title).strip("_")[:80] or "note"
    return f"{slug}.{file_type}"


class NoteService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ============== Lookups ==============

    async def get_by_id(self, note_id: uuid.UUID) -> Note | None:
        return await self.db.get(Note, note_id)

    async def get_listed(self, note_id: uuid.UUID) -> Note:
        """Return a note that is visible to buyers, or raise 404."""
        note = await self.get_by_id(note_id)
        if not note or note.is_deleted or not note.is_active:
            raise NotFoundError("Note", note_id)
        return note

    async def has_purchased(self, user_id: uuid.UUID, note_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(Purchase.id).where(
                Purchase.user_id == user_id,
                Purchase.note_id == note_id,
                Purchase.is_active.is_(True),
            )
        )
        return result.first() is not None

    async def _get_owned(self, note_id: uuid.UUID, seller: User) -> Note:
        note = await self.get_by_id(note_id)
        if not note or note.is_deleted:
            raise NotFoundError("Note", note_id)
        if note.seller_id != seller.id:
            raise ForbiddenError("You can only modify your own notes")
        return note

    # ============== Catalog ==============

    async def list_notes(
        self,
        page: int = 1,
        limit: int = 20,
        degree: str | None = None,
        semester: int | None = None,
        university_id: uuid.UUID | None = None,
        category_id: uuid.UUID | None = None,
        search: str | None = None,
        sort: NoteSort = NoteSort.NEWEST,
    ) -> tuple[list[Note], int]:
        """List catalog notes with filters. Returns (items, total)."""
        filters = list(listed_notes_filter())
        if degree:
            filters.append(Note.degree == degree)
        if semester:
            filters.append(Note.semester == semester)
        if university_id:
            filters.append(Note.university_id == university_id)
        if category_id:
            filters.append(Note.category_id == category_id)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            filters.append(
                or_(
                    Note.title.ilike(pattern),
                    Note.description.ilike(pattern),
                    Note.subject.ilike(pattern),
                )
            )

        total = await self.db.scalar(select(func.count()).select_from(Note).where(*filters))

        result = await self.db.execute(
            select(Note)
            .where(*filters)
            .order_by(*SORT_ORDER[sort])
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def get_note_detail(self, note_id: uuid.UUID, user: User | None) -> dict:
        """
        Note detail page.

        Counts a view, flags the viewer's relation to the note and reveals the
        file key only to the owner or a purchaser.
        """
        note = await self.get_listed(note_id)
        await self.db.execute(
            update(Note).where(Note.id == note.id).values(view_count=Note.view_count + 1)
        )
        await self.db.commit()
        await self.db.refresh(note)

        is_owner = bool(user and note.seller_id == user.id)
        is_purchased = bool(user and not is_owner and await self.has_purchased(user.id, note.id))
        is_wishlisted = False
        if user:
            wishlisted = await self.db.execute(
                select(WishlistItem.id).where(
                    WishlistItem.user_id == user.id,
                    WishlistItem.note_id == note.id,
                )
            )
            is_wishlisted = wishlisted.first() is not None

        seller = await self.db.get(User, note.seller_id)
        reviews = await self.db.execute(
            select(Review)
            .where(Review.note_id == note.id, Review.is_approved.is_(True))
            .order_by(Review.created_at.desc())
            .limit(5)
        )

        data = {column.key: getattr(note, column.key) for column in Note.__table__.columns}
        data.update(
            seller={"id": note.seller_id, "full_name": seller.full_name if seller else "Unknown"},
            file_url=note.file_url if (is_owner or is_purchased) else None,
            is_owner=is_owner,
            is_purchased=is_purchased,
            is_wishlisted=is_wishlisted,
            reviews=list(reviews.scalars().all()),
        )
        return data

    # ============== Seller Listings ==============

    async def upload_file(self, seller: User, file: UploadFile) -> UploadResponse:
        """Store a PDF/DOCX in object storage and return its key."""
        file_type = ALLOWED_FILE_TYPES.get(file.content_type or "")
        if not file_type:
            raise BadRequestError("Only PDF and DOCX files are allowed", code="INVALID_FILE_TYPE")

        size = file.size
        if size is None:
            file.file.seek(0, os.SEEK_END)
            size = file.file.tell()
            file.file.seek(0)
        if size > MAX_UPLOAD_BYTES:
            raise BadRequestError("File exceeds the 50 MB limit", code="FILE_TOO_LARGE")

        storage = get_storage_service()
        try:
            object_key = await run_in_threadpool(
                storage.upload_file,
                file.file,
                file.filename or f"note.{file_type}",
                file.content_type,
                f"notes/{seller.id}",
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Note upload failed", seller_id=str(seller.id), error=str(e))
            raise ServiceUnavailableError("Storage", "File upload failed, please retry")

        return UploadResponse(file_url=object_key, file_type=file_type, file_size_bytes=size)

    async def create_note(self, seller: User, payload: NoteCreate) -> Note:
        university_id = payload.university_id
        if university_id is None:
            # Fall back to the first university so listings always have one
            result = await self.db.execute(select(University.id).order_by(University.created_at).limit(1))
            university_id = result.scalar_one_or_none()
            if university_id is None:
                raise ServiceUnavailableError("Catalog", "No universities configured")
        elif not await self.db.get(University, university_id):
            raise BadRequestError("Unknown university", code="INVALID_UNIVERSITY")

        if payload.category_id and not await self.db.get(Category, payload.category_id):
            raise BadRequestError("Unknown category", code="INVALID_CATEGORY")

        percentage, commission, earning = calculate_commission(payload.price_inr, payload.total_pages)

        note = Note(
            seller_id=seller.id,
            category_id=payload.category_id,
            university_id=university_id,
            title=sanitize_text(payload.title),
            description=sanitize_text(payload.description) or "",
            subject=sanitize_text(payload.subject),
            degree=payload.degree or "Other",
            specialization=sanitize_text(payload.specialization),
            college_name=sanitize_text(payload.college_name),
            semester=payload.semester or 1,
            year=payload.year,
            language=payload.language,
            tags=[t for t in (sanitize_text(tag) for tag in payload.tags) if t],
            cover_image=payload.cover_image or (payload.preview_pages[0] if payload.preview_pages else None),
            preview_pages=payload.preview_pages,
            table_of_contents=[sanitize_text(item) for item in payload.table_of_contents],
            file_url=payload.file_url,
            file_type=payload.file_type,
            file_size_bytes=payload.file_size_bytes,
            total_pages=payload.total_pages,
            price_inr=payload.price_inr,
            commission_percentage=percentage,
            commission_amount_inr=commission,
            seller_earning_inr=earning,
            is_active=True,
            is_approved=True,
            is_deleted=False,
            is_flagged=False,
        )
        self.db.add(note)
        await self.db.commit()
        await self.db.refresh(note)

        logger.info("Note created", note_id=str(note.id), seller_id=str(seller.id), price_inr=note.price_inr)
        return note

    async def update_note(self, note_id: uuid.UUID, seller: User, payload: NoteUpdate) -> Note:
        note = await self._get_owned(note_id, seller)
        update_data = payload.model_dump(exclude_unset=True)

        for field in ("title", "description"):
            if update_data.get(field) is not None:
                update_data[field] = sanitize_text(update_data[field])
        if update_data.get("table_of_contents") is not None:
            update_data["table_of_contents"] = [sanitize_text(i) for i in update_data["table_of_contents"]]

        for field, value in update_data.items():
            if value is not None or field == "cover_image":
                setattr(note, field, value)

        if payload.price_inr is not None:
            (
                note.commission_percentage,
                note.commission_amount_inr,
                note.seller_earning_inr,
            ) = calculate_commission(note.price_inr, note.total_pages)

        await self.db.commit()
        await self.db.refresh(note)

        logger.info("Note updated", note_id=str(note.id), fields=list(update_data))
        return note

    async def delete_note(self, note_id: uuid.UUID, seller: User) -> None:
        """Soft delete: purchases of the note keep working."""
        note = await self._get_owned(note_id, seller)
        note.is_deleted = True
        note.is_active = False
        await self.db.commit()
        logger.info("Note deleted", note_id=str(note.id))

    async def list_seller_notes(self, seller: User) -> list[Note]:
        result = await self.db.execute(
            select(Note)
            .where(Note.seller_id == seller.id, Note.is_deleted.is_(False))
            .order_by(Note.created_at.desc())
        )
        return list(result.scalars().all())

    # ============== Buyer Library & Downloads ==============

    async def list_library(self, user: User) -> list[tuple[Purchase, Note]]:
        result = await self.db.execute(
            select(Purchase, Note)
            .join(Note, Note.id == Purchase.note_id)
            .where(Purchase.user_id == user.id, Purchase.is_active.is_(True))
            .order_by(Purchase.created_at.desc())
        )
        return [(purchase, note) for purchase, note in result.all()]

    async def download(self, note_id: uuid.UUID, user: User) -> DownloadResponse:
        """Issue a signed, expiring download link to the owner or a purchaser."""
        note = await self.get_listed(note_id)

        is_owner = note.seller_id == user.id
        if not is_owner and not await self.has_purchased(user.id, note.id):
            raise ForbiddenError("Purchase required to download this note", code="PURCHASE_REQUIRED")

        file_name = _download_name(note.title, note.file_type)
        storage = get_storage_service()
        try:
            url = await run_in_threadpool(
                storage.get_presigned_url,
                note.file_url,
                settings.download_url_expire_seconds,
                file_name,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Signed URL generation failed", note_id=str(note.id), error=str(e))
            raise ServiceUnavailableError("Storage", "Download temporarily unavailable")

        try:
            await self.db.execute(
                update(Note)
                .where(Note.id == note.id)
                .values(download_count=Note.download_count + 1)
            )
            if not is_owner:
                await self.db.execute(
                    update(Purchase)
                    .where(Purchase.user_id == user.id, Purchase.note_id == note.id)
                    .values(download_count=Purchase.download_count + 1)
                )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning("Download counter update failed", note_id=str(note.id), error=str(e))

        record_download()
        logger.info("Download link issued", note_id=str(note.id), user_id=str(user.id), owner=is_owner)
        return DownloadResponse(
            download_url=url,
            expires_in=settings.download_url_expire_seconds,
            file_name=file_name,
        )
