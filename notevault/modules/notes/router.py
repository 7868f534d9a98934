"""
Notes Endpoints

- GET    /api/v1/notes                  - Catalog with filters, search, sort
- GET    /api/v1/notes/my-notes         - Seller's own listings
- GET    /api/v1/notes/library          - Buyer's purchased notes
- POST   /api/v1/notes/upload           - Upload the note file (seller)
- POST   /api/v1/notes                  - Create listing (seller)
- GET    /api/v1/notes/{note_id}        - Note detail
- PATCH  /api/v1/notes/{note_id}        - Update own listing
- DELETE /api/v1/notes/{note_id}        - Soft delete own listing
- GET    /api/v1/notes/{note_id}/download - Signed download link
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.database import get_db
from notevault.core.pagination import Pagination
from notevault.modules.auth.dependencies import CurrentSeller, CurrentUser, OptionalUser
from notevault.modules.auth.schemas import MessageResponse
from notevault.modules.notes.schemas import (
    DownloadResponse,
    LibraryItem,
    NoteCreate,
    NoteCreateResponse,
    NoteDetail,
    NoteListResponse,
    NoteSort,
    NoteSummary,
    NoteUpdate,
    SellerNoteResponse,
    UploadResponse,
)
from notevault.modules.notes.service import NoteService

router = APIRouter(prefix="/notes", tags=["Notes"])


async def get_note_service(db: Annotated[AsyncSession, Depends(get_db)]) -> NoteService:
    return NoteService(db)


NoteServiceDep = Annotated[NoteService, Depends(get_note_service)]


@router.get("", response_model=NoteListResponse, summary="Browse Notes")
async def list_notes(
    service: NoteServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    degree: str | None = Query(None),
    semester: int | None = Query(None, ge=1, le=12),
    university_id: uuid.UUID | None = Query(None),
    category_id: uuid.UUID | None = Query(None),
    search: str | None = Query(None, max_length=100),
    sort: NoteSort = Query(NoteSort.NEWEST),
) -> NoteListResponse:
    """Active, approved notes only."""
    notes, total = await service.list_notes(
        page=page,
        limit=limit,
        degree=degree,
        semester=semester,
        university_id=university_id,
        category_id=category_id,
        search=search,
        sort=sort,
    )
    return NoteListResponse(
        items=[NoteSummary.model_validate(n) for n in notes],
        pagination=Pagination.build(total, page, limit),
    )


@router.get("/my-notes", response_model=list[SellerNoteResponse], summary="My Listings")
async def my_notes(current_user: CurrentSeller, service: NoteServiceDep) -> list[SellerNoteResponse]:
    notes = await service.list_seller_notes(current_user)
    return [SellerNoteResponse.model_validate(n) for n in notes]


@router.get("/library", response_model=list[LibraryItem], summary="My Library")
async def library(current_user: CurrentUser, service: NoteServiceDep) -> list[LibraryItem]:
    rows = await service.list_library(current_user)
    return [
        LibraryItem(
            purchase_id=purchase.id,
            purchased_at=purchase.created_at,
            download_count=purchase.download_count,
            note=NoteSummary.model_validate(note),
        )
        for purchase, note in rows
    ]


@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Note File",
)
async def upload_note_file(
    current_user: CurrentSeller,
    service: NoteServiceDep,
    file: UploadFile = File(...),
) -> UploadResponse:
    """PDF or DOCX, up to 50 MB. Returns the storage key for note creation."""
    return await service.upload_file(current_user, file)


@router.post(
    "",
    response_model=NoteCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Listing",
    description="""
Creates a listing from a previously uploaded file.

Platform commission by page count:

| Pages | Commission |
|-------|------------|
| up to 50 | 15% |
| 51-150 | 12% |
| above 150 | 10% |
    """,
)
async def create_note(
    payload: NoteCreate,
    current_user: CurrentSeller,
    service: NoteServiceDep,
) -> NoteCreateResponse:
    note = await service.create_note(current_user, payload)
    return NoteCreateResponse(id=note.id)


@router.get("/{note_id}", response_model=NoteDetail, summary="Note Detail")
async def get_note(
    note_id: uuid.UUID,
    current_user: OptionalUser,
    service: NoteServiceDep,
) -> NoteDetail:
    data = await service.get_note_detail(note_id, current_user)
    return NoteDetail.model_validate(data, from_attributes=True)


@router.patch("/{note_id}", response_model=SellerNoteResponse, summary="Update Listing")
async def update_note(
    note_id: uuid.UUID,
    payload: NoteUpdate,
    current_user: CurrentUser,
    service: NoteServiceDep,
) -> SellerNoteResponse:
    note = await service.update_note(note_id, current_user, payload)
    return SellerNoteResponse.model_validate(note)


@router.delete("/{note_id}", response_model=MessageResponse, summary="Delete Listing")
async def delete_note(
    note_id: uuid.UUID,
    current_user: CurrentUser,
    service: NoteServiceDep,
) -> MessageResponse:
    await service.delete_note(note_id, current_user)
    return MessageResponse(message="Note deleted successfully")


@router.get("/{note_id}/download", response_model=DownloadResponse, summary="Download Note")
async def download_note(
    note_id: uuid.UUID,
    current_user: CurrentUser,
    service: NoteServiceDep,
) -> DownloadResponse:
    """Owner or purchaser only (403 PURCHASE_REQUIRED otherwise)."""
    return await service.download(note_id, current_user)
