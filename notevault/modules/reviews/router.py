"""
Review Endpoints

- GET  /api/v1/notes/{note_id}/reviews  - Approved reviews, newest first
- POST /api/v1/notes/{note_id}/reviews  - Review a purchased note
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.database import get_db
from notevault.modules.auth.dependencies import CurrentUser
from notevault.modules.reviews.schemas import ReviewCreate, ReviewResponse
from notevault.modules.reviews.service import ReviewService

router = APIRouter(prefix="/notes/{note_id}/reviews", tags=["Reviews"])


async def get_review_service(db: Annotated[AsyncSession, Depends(get_db)]) -> ReviewService:
    return ReviewService(db)


ReviewServiceDep = Annotated[ReviewService, Depends(get_review_service)]


@router.get("", response_model=list[ReviewResponse], summary="List Reviews")
async def list_reviews(note_id: uuid.UUID, service: ReviewServiceDep) -> list[ReviewResponse]:
    reviews = await service.list_reviews(note_id)
    return [ReviewResponse.model_validate(r) for r in reviews]


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED, summary="Create Review")
async def create_review(
    note_id: uuid.UUID,
    payload: ReviewCreate,
    current_user: CurrentUser,
    service: ReviewServiceDep,
) -> ReviewResponse:
    review = await service.create_review(current_user, note_id, payload)
    return ReviewResponse.model_validate(review)
