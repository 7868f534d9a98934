"""
Messages Endpoints

- GET  /api/v1/messages/conversations       - Conversation list
- GET  /api/v1/messages/{other_user_id}     - Thread with one user
- POST /api/v1/messages                     - Send a message
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.database import get_db
from notevault.modules.auth.dependencies import CurrentUser
from notevault.modules.messages.schemas import ConversationResponse, MessageCreate, MessageResponse
from notevault.modules.messages.service import MessageService

router = APIRouter(prefix="/messages", tags=["Messages"])


async def get_message_service(db: Annotated[AsyncSession, Depends(get_db)]) -> MessageService:
    return MessageService(db)


MessageServiceDep = Annotated[MessageService, Depends(get_message_service)]


@router.get("/conversations", response_model=list[ConversationResponse], summary="Conversations")
async def list_conversations(current_user: CurrentUser, service: MessageServiceDep) -> list[ConversationResponse]:
    return await service.conversations(current_user)


@router.get("/{other_user_id}", response_model=list[MessageResponse], summary="Thread")
async def get_thread(
    other_user_id: uuid.UUID,
    current_user: CurrentUser,
    service: MessageServiceDep,
) -> list[MessageResponse]:
    messages = await service.thread(current_user, other_user_id)
    return [MessageResponse.model_validate(m) for m in messages]


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED, summary="Send Message")
async def send_message(
    payload: MessageCreate,
    current_user: CurrentUser,
    service: MessageServiceDep,
) -> MessageResponse:
    message = await service.send(current_user, payload.receiver_id, payload.content)
    return MessageResponse.model_validate(message)
