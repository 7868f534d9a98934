"""
Wishlist Endpoints

- GET  /api/v1/wishlist                  - Saved notes (paginated)
- POST /api/v1/wishlist/{note_id}/toggle - Save / unsave a note
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.database import get_db
from notevault.core.pagination import Pagination
from notevault.modules.auth.dependencies import CurrentUser
from notevault.modules.notes.schemas import NoteSummary
from notevault.modules.wishlist.schemas import WishlistItemResponse, WishlistResponse, WishlistToggleResponse
from notevault.modules.wishlist.service import WishlistService

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])


async def get_wishlist_service(db: Annotated[AsyncSession, Depends(get_db)]) -> WishlistService:
    return WishlistService(db)


WishlistServiceDep = Annotated[WishlistService, Depends(get_wishlist_service)]


@router.get("", response_model=WishlistResponse, summary="My Wishlist")
async def list_wishlist(
    current_user: CurrentUser,
    service: WishlistServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> WishlistResponse:
    rows, total = await service.list_items(current_user, page, limit)
    return WishlistResponse(
        items=[
            WishlistItemResponse(id=item.id, added_at=item.created_at, note=NoteSummary.model_validate(note))
            for item, note in rows
        ],
        pagination=Pagination.build(total, page, limit),
    )


@router.post("/{note_id}/toggle", response_model=WishlistToggleResponse, summary="Toggle Wishlist")
async def toggle_wishlist(
    note_id: uuid.UUID,
    current_user: CurrentUser,
    service: WishlistServiceDep,
) -> WishlistToggleResponse:
    is_wishlisted = await service.toggle(current_user, note_id)
    return WishlistToggleResponse(note_id=note_id, is_wishlisted=is_wishlisted)
